"""
Cache invalidation endpoints
"""
import hmac
import logging
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from ....core.cache import TaggedCache
from ....core.config import settings
from ....core.responses import ERROR_RESPONSES
from ....services.resource_service import CACHE_TAGS
from ..dependencies import get_cache
from .auth import CurrentUser, get_admin_user

logger = logging.getLogger(__name__)

router = APIRouter()


class RevalidateResponse(BaseModel):
    revalidated: bool = True
    tags: List[str]
    now: int  # epoch milliseconds


def _invalidate(cache: TaggedCache, tags: List[str]) -> RevalidateResponse:
    dropped = cache.invalidate_tags(tags)
    logger.info(f"Revalidated tags {tags} ({dropped} entries dropped)")
    return RevalidateResponse(tags=tags, now=int(time.time() * 1000))


@router.post("/revalidate", response_model=RevalidateResponse, responses=ERROR_RESPONSES)
async def revalidate(
    secret: Optional[str] = None,
    tags: Optional[str] = None,
    cache: TaggedCache = Depends(get_cache),
):
    """
    Invalidate cache tags after the catalog was updated

    Usage: POST /api/v1/revalidate?secret=...&tags=resources,resource-options,sneak-peek-content
    """
    if not settings.REVALIDATE_SECRET:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Revalidation not configured. Set REVALIDATE_SECRET in environment variables.",
        )

    if not secret or not hmac.compare_digest(secret, settings.REVALIDATE_SECRET):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    tag_list = [tag.strip() for tag in (tags or "").split(",") if tag.strip()]
    if not tag_list:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"No tags provided. Use ?tags={','.join(CACHE_TAGS)}",
        )

    return _invalidate(cache, tag_list)


@router.post("/admin/refresh-cache", response_model=RevalidateResponse, responses=ERROR_RESPONSES)
async def refresh_cache(
    admin: CurrentUser = Depends(get_admin_user),
    cache: TaggedCache = Depends(get_cache),
):
    """Invalidate every cache tag (admin only)"""
    logger.info(f"Cache refresh requested by {admin.email}")
    return _invalidate(cache, list(CACHE_TAGS))
