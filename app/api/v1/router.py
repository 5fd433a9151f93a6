"""
Main API router
"""
from fastapi import APIRouter

from .endpoints import auth, bookmarks, cache, resources, verify

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(resources.router, tags=["resources"])
api_router.include_router(bookmarks.router, prefix="/bookmarks", tags=["bookmarks"])
api_router.include_router(cache.router, tags=["cache"])
api_router.include_router(verify.router, tags=["health"])
