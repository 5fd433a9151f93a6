"""
Shared FastAPI dependencies
"""
from fastapi import Depends, Request

from ...core.cache import TaggedCache
from ...core.exceptions import FirestoreException
from ...services.bookmark_service import BookmarkService
from ...services.resource_service import PreviewService, ResourceService


def get_cache(request: Request) -> TaggedCache:
    """Process-wide response cache created at startup"""
    return request.app.state.cache


def get_db(request: Request):
    """Firestore client created at startup"""
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise FirestoreException("Backend not configured. Please set the Firebase environment variables.")
    return db


def get_resource_service(cache: TaggedCache = Depends(get_cache), db=Depends(get_db)) -> ResourceService:
    return ResourceService(cache=cache, db=db)


def get_preview_service(cache: TaggedCache = Depends(get_cache), db=Depends(get_db)) -> PreviewService:
    return PreviewService(cache=cache, db=db)


def get_bookmark_service(db=Depends(get_db)) -> BookmarkService:
    return BookmarkService(db=db)
