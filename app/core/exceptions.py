"""
Custom exception classes for better error handling
"""
from typing import Optional, Dict, Any


class ResourceHubException(Exception):
    """Base exception for all custom exceptions"""
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class BackendException(ResourceHubException):
    """Raised when the backend (storage or remote API) fails"""
    status_code = 500


class FirestoreException(BackendException):
    """Raised when Firestore operations fail"""
    pass


class ValidationException(ResourceHubException):
    """Raised when input validation fails"""
    status_code = 400


class AuthenticationException(ResourceHubException):
    """Raised when authentication fails or no session is present"""
    status_code = 401


class AuthorizationException(ResourceHubException):
    """Raised when user is not authorized"""
    status_code = 403
