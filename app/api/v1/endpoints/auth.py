"""
Authentication endpoints and dependencies
"""
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from ....services.auth_service import AuthService, is_admin

router = APIRouter()
security = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    uid: str
    email: Optional[str] = None


class SessionResponse(BaseModel):
    uid: str
    email: Optional[str] = None
    is_admin: bool = False


def get_auth_service() -> AuthService:
    return AuthService()


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service),
) -> CurrentUser:
    """Get current user from Firebase ID token"""
    if credentials is None:
        raise _unauthorized()

    decoded_token = auth_service.verify_firebase_token(credentials.credentials)
    if decoded_token is None:
        raise _unauthorized()

    firebase_uid = decoded_token.get("uid")
    if firebase_uid is None:
        raise _unauthorized()

    return CurrentUser(uid=firebase_uid, email=decoded_token.get("email"))


async def get_admin_user(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Current user, restricted to the configured admin"""
    if not is_admin(current_user.email):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user


@router.get("/session", response_model=SessionResponse)
async def get_session(current_user: CurrentUser = Depends(get_current_user)):
    """Who the bearer token belongs to, and whether they may use admin actions"""
    return SessionResponse(
        uid=current_user.uid,
        email=current_user.email,
        is_admin=is_admin(current_user.email),
    )
