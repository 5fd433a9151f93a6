"""
Resource catalog data models
"""
import json
import logging
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

ARRAY_FIELDS = ("topics", "tag_categories", "tag_subcategories", "key_takeaways")

_DELIMITERS = re.compile(r"[,\n]")


class SortField(str, Enum):
    date_added = "date_added"
    rating = "rating"
    title = "title"
    difficulty = "difficulty"


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


def text_to_array(value: Any) -> List[str]:
    """
    Normalize a multi-value column into a list of strings.

    Accepts a real list, a JSON-encoded array string, or a comma/newline
    delimited string. Anything else yields an empty list.
    """
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return text_to_array(parsed)
        return [part.strip() for part in _DELIMITERS.split(value) if part.strip()]
    return []


def facet_key(value: Optional[str]) -> str:
    """Comparison form of a facet value: trimmed and case-folded"""
    return (value or "").strip().casefold()


def normalize_facet_values(values: Iterable[Any]) -> List[str]:
    """Trim, drop empties and de-duplicate case-insensitively, keeping the first spelling"""
    seen = set()
    result = []
    for raw in values:
        if raw is None:
            continue
        value = str(raw).strip()
        key = value.casefold()
        if not value or key in seen:
            continue
        seen.add(key)
        result.append(value)
    return result


class Resource(BaseModel):
    """A catalog entry. Owned by the content pipeline, read-only here."""
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    url: str
    author: Optional[str] = None
    source: Optional[str] = None
    publisher: Optional[str] = None
    topics: Optional[List[str]] = None
    tag_categories: Optional[List[str]] = None
    tag_subcategories: Optional[List[str]] = None
    key_takeaways: Optional[List[str]] = None
    difficulty: Optional[str] = None  # open vocabulary, conventionally Beginner/Intermediate/Advanced
    content_type: Optional[str] = None
    rating: Optional[float] = None  # 0-5
    date_added: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator(*ARRAY_FIELDS, mode="before")
    @classmethod
    def coerce_array(cls, value: Any) -> Optional[List[str]]:
        if value is None:
            return None
        return text_to_array(value)

    @field_validator("rating", mode="before")
    @classmethod
    def coerce_rating(cls, value: Any) -> Optional[float]:
        if value is None or value == "":
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring non-numeric rating {value!r}")
            return None

    @field_validator("date_added", "created_at", "updated_at", mode="before")
    @classmethod
    def coerce_timestamp(cls, value: Any) -> Any:
        if value == "":
            return None
        # Firestore Timestamp objects expose to_datetime()
        if hasattr(value, "to_datetime"):
            value = value.to_datetime()
        return value

    @field_validator("date_added", "created_at", "updated_at")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class FilterOptions(BaseModel):
    """Selected facet values; an empty list places no constraint on that facet"""
    model_config = ConfigDict(populate_by_name=True)

    topics: List[str] = Field(default_factory=list)
    tag_categories: List[str] = Field(default_factory=list, alias="tagCategories")
    tag_subcategories: List[str] = Field(default_factory=list, alias="tagSubcategories")
    difficulty: List[str] = Field(default_factory=list)
    content_type: List[str] = Field(default_factory=list)

    @field_validator("topics", "tag_categories", "tag_subcategories", "difficulty", "content_type", mode="before")
    @classmethod
    def normalize(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return normalize_facet_values(value)

    def is_empty(self) -> bool:
        return not (
            self.topics or self.tag_categories or self.tag_subcategories
            or self.difficulty or self.content_type
        )

    def cache_key(self) -> tuple:
        """Hashable, order-insensitive representation for cache keys"""
        return tuple(
            tuple(sorted(facet_key(v) for v in values))
            for values in (
                self.topics, self.tag_categories, self.tag_subcategories,
                self.difficulty, self.content_type,
            )
        )

    def to_query_params(self) -> dict:
        """Comma-joined query parameters as accepted by GET /resources"""
        params = {}
        for alias, values in (
            ("topics", self.topics),
            ("tagCategories", self.tag_categories),
            ("tagSubcategories", self.tag_subcategories),
            ("difficulty", self.difficulty),
            ("content_type", self.content_type),
        ):
            if values:
                params[alias] = ",".join(values)
        return params


class FacetOptions(BaseModel):
    """Every value available for each facet, sorted and de-duplicated"""
    model_config = ConfigDict(populate_by_name=True)

    topics: List[str] = Field(default_factory=list)
    tag_categories: List[str] = Field(default_factory=list, alias="tagCategories")
    tag_subcategories: List[str] = Field(default_factory=list, alias="tagSubcategories")
    difficulties: List[str] = Field(default_factory=list)
    content_types: List[str] = Field(default_factory=list)
