"""
Standardized API response models
"""
from typing import Any, Optional, Dict
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    details: Optional[Dict[str, Any]] = None

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Resource ID is required",
            }
        }


class SuccessResponse(BaseModel):
    """Acknowledgement for mutations that return no entity"""
    success: bool = True


# Documented error shapes shared by routers
ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Malformed input"},
    401: {"model": ErrorResponse, "description": "Missing or invalid credentials"},
    500: {"model": ErrorResponse, "description": "Backend failure"},
}


def error_response(error: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Helper function to create error response"""
    response: Dict[str, Any] = {"error": error}
    if details:
        response["details"] = details
    return response
