"""
Bookmarks management endpoints
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, status

from ....core.responses import ERROR_RESPONSES, SuccessResponse
from ....models.bookmark import BookmarkCreate, BookmarkCreatedResponse, BookmarkListResponse
from ....services.bookmark_service import BookmarkService
from ..dependencies import get_bookmark_service
from .auth import CurrentUser, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=BookmarkListResponse, responses=ERROR_RESPONSES)
async def list_bookmarks(
    current_user: CurrentUser = Depends(get_current_user),
    bookmark_service: BookmarkService = Depends(get_bookmark_service),
):
    """Get all bookmarks for the current user with their resources, newest first"""
    bookmarks = await bookmark_service.list_bookmarks(current_user.uid)
    return BookmarkListResponse(bookmarks=bookmarks)


@router.post(
    "",
    response_model=BookmarkCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
)
async def create_bookmark(
    bookmark_data: BookmarkCreate,
    current_user: CurrentUser = Depends(get_current_user),
    bookmark_service: BookmarkService = Depends(get_bookmark_service),
):
    """Bookmark a resource. Bookmarking it again only updates the notes."""
    bookmark = await bookmark_service.create_bookmark(
        current_user.uid,
        bookmark_data.resource_id,
        bookmark_data.notes,
    )
    logger.info(f"User {current_user.uid} bookmarked {bookmark.resource_id}")
    return BookmarkCreatedResponse(bookmark=bookmark)


@router.delete("", response_model=SuccessResponse, responses=ERROR_RESPONSES)
async def delete_bookmark(
    resource_id: Optional[str] = None,
    current_user: CurrentUser = Depends(get_current_user),
    bookmark_service: BookmarkService = Depends(get_bookmark_service),
):
    """Remove the bookmark for a resource; succeeds when none exists"""
    await bookmark_service.delete_bookmark(current_user.uid, resource_id)
    logger.info(f"User {current_user.uid} removed bookmark {resource_id}")
    return SuccessResponse()
