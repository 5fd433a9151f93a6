"""
Backend connectivity check
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ....core.exceptions import ResourceHubException
from ....services.resource_service import ResourceService
from ..dependencies import get_resource_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/verify")
async def verify_backend(resource_service: ResourceService = Depends(get_resource_service)):
    """Read one catalog row and the row count to confirm credentials and access rules"""
    try:
        data = await resource_service.verify_connection()
    except ResourceHubException as e:
        logger.error(f"Backend verification failed: {e.message}")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": e.details.get("error", e.message),
                "message": "Could not connect to the database. Check credentials and security rules.",
            },
        )

    return {
        "success": True,
        "message": "Database connection successful",
        "data": data,
    }
