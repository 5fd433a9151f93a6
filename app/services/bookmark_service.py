"""
Bookmark persistence service
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from ..core.config import settings
from ..core.exceptions import ValidationException
from ..models.bookmark import Bookmark, BookmarkResponse, bookmark_doc_id
from .base.firestore_service import FirestoreBaseService
from .resource_service import parse_resources

logger = logging.getLogger(__name__)


class BookmarkService(FirestoreBaseService):
    """Per-user bookmarks; at most one per (user, resource) pair"""

    def __init__(self, db=None):
        super().__init__(settings.BOOKMARKS_COLLECTION, db=db)
        self.resources = FirestoreBaseService(settings.RESOURCES_COLLECTION, db=self.db)

    async def list_bookmarks(self, user_id: str) -> List[BookmarkResponse]:
        """
        All bookmarks of a user joined with their resource, newest first

        Raises:
            FirestoreException: If the backend read fails
        """
        rows = await self.query([("user_id", "==", user_id)])

        # Sorted here rather than in Firestore to avoid a composite index
        rows.sort(key=lambda row: _as_utc(row.get("created_at")), reverse=True)

        resource_rows = await self.resources.get_many(row["resource_id"] for row in rows if row.get("resource_id"))
        resources = {resource.id: resource for resource in parse_resources(resource_rows.values())}

        bookmarks = []
        for row in rows:
            bookmarks.append(BookmarkResponse(
                id=row["id"],
                user_id=row.get("user_id", user_id),
                resource_id=row.get("resource_id", ""),
                created_at=_as_utc(row.get("created_at")),
                notes=row.get("notes"),
                resource=resources.get(row.get("resource_id")),
            ))

        logger.info(f"Listed {len(bookmarks)} bookmarks for user {user_id}")
        return bookmarks

    async def create_bookmark(self, user_id: str, resource_id: Optional[str], notes: Optional[str] = None) -> BookmarkResponse:
        """
        Create a bookmark, or update the notes of the existing one

        Raises:
            ValidationException: If resource_id is missing
            FirestoreException: If the backend write fails
        """
        resource_id = (resource_id or "").strip()
        if not resource_id:
            raise ValidationException("Resource ID is required")

        doc_id = bookmark_doc_id(user_id, resource_id)
        existing = await self.get_many([doc_id])

        bookmark = Bookmark(
            id=doc_id,
            user_id=user_id,
            resource_id=resource_id,
            notes=notes or None,
        )
        if doc_id in existing and existing[doc_id].get("created_at"):
            bookmark.created_at = _as_utc(existing[doc_id]["created_at"])

        await self.upsert(doc_id, bookmark.model_dump(exclude={"id"}))
        return BookmarkResponse(**bookmark.model_dump())

    async def delete_bookmark(self, user_id: str, resource_id: Optional[str]) -> None:
        """
        Remove a bookmark. Removing one that does not exist succeeds.

        Raises:
            ValidationException: If resource_id is missing
            FirestoreException: If the backend write fails
        """
        resource_id = (resource_id or "").strip()
        if not resource_id:
            raise ValidationException("Resource ID is required")
        await self.delete(bookmark_doc_id(user_id, resource_id))


_MISSING_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)


def _as_utc(value) -> datetime:
    if value is None:
        return _MISSING_TIMESTAMP
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            logger.warning(f"Ignoring malformed bookmark timestamp {value!r}")
            return _MISSING_TIMESTAMP
    if not isinstance(value, datetime):
        logger.warning(f"Ignoring bookmark timestamp of type {type(value).__name__}")
        return _MISSING_TIMESTAMP
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value
