"""
Bookmark data models
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, timezone
from urllib.parse import quote

from .resource import Resource


def _id_part(value: str) -> str:
    # "/" would address a sub-path and "_" is the separator
    return quote(value, safe="").replace("_", "%5F")


def bookmark_doc_id(user_id: str, resource_id: str) -> str:
    """Deterministic document id: one bookmark per (user, resource) pair"""
    return f"{_id_part(user_id)}_{_id_part(resource_id)}"


class Bookmark(BaseModel):
    id: Optional[str] = None
    user_id: str
    resource_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    notes: Optional[str] = None


class BookmarkCreate(BaseModel):
    resource_id: Optional[str] = None  # presence checked by the service for a 400, not a 422
    notes: Optional[str] = None


class BookmarkResponse(BaseModel):
    id: str
    user_id: str
    resource_id: str
    created_at: datetime
    notes: Optional[str] = None
    resource: Optional[Resource] = None


class BookmarkListResponse(BaseModel):
    bookmarks: List[BookmarkResponse]


class BookmarkCreatedResponse(BaseModel):
    bookmark: BookmarkResponse
