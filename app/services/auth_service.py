"""
Authentication service backed by Firebase Auth
"""
import logging
from typing import Optional

from firebase_admin import auth as firebase_auth

from ..core.config import settings

logger = logging.getLogger(__name__)


class AuthService:
    """Verifies ID tokens issued by the hosted auth provider"""

    def verify_firebase_token(self, id_token: str) -> Optional[dict]:
        """Return the decoded token claims, or None when the token is not valid"""
        if not id_token:
            return None
        try:
            return firebase_auth.verify_id_token(id_token)
        except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError,
                firebase_auth.RevokedIdTokenError, firebase_auth.CertificateFetchError) as e:
            logger.info(f"Rejected ID token: {e}")
            return None


def is_admin(email: Optional[str]) -> bool:
    """True when email matches the configured admin address (case-insensitive)"""
    if not email:
        return False
    if not settings.ADMIN_EMAIL:
        logger.warning("ADMIN_EMAIL not set - admin actions are unavailable")
        return False
    return email.strip().lower() == settings.ADMIN_EMAIL.strip().lower()
