"""
Firebase configuration and initialization
"""
import logging
import firebase_admin
from firebase_admin import credentials, firestore
from .config import settings

logger = logging.getLogger(__name__)


def get_firebase_credentials() -> dict:
    """Get Firebase credentials from environment variables"""
    return {
        "type": "service_account",
        "project_id": settings.FIREBASE_PROJECT_ID,
        "private_key_id": settings.FIREBASE_PRIVATE_KEY_ID,
        "private_key": (settings.FIREBASE_PRIVATE_KEY or "").replace('\\n', '\n'),
        "client_email": settings.FIREBASE_CLIENT_EMAIL,
        "client_id": settings.FIREBASE_CLIENT_ID,
        "auth_uri": settings.FIREBASE_AUTH_URI,
        "token_uri": settings.FIREBASE_TOKEN_URI,
        "auth_provider_x509_cert_url": "https://www.googleapis.com/oauth2/v1/certs",
        "client_x509_cert_url": f"https://www.googleapis.com/robot/v1/metadata/x509/{settings.FIREBASE_CLIENT_EMAIL}"
    }


def initialize_firebase() -> bool:
    """Initialize Firebase Admin SDK. Returns True when an app is available."""
    try:
        if not settings.FIREBASE_PROJECT_ID:
            logger.warning("⚠️  Firebase credentials not configured. Skipping Firebase initialization.")
            return False

        if not firebase_admin._apps:
            cred = credentials.Certificate(get_firebase_credentials())
            firebase_admin.initialize_app(cred)
        logger.info("✅ Firebase initialized successfully")
        return True
    except Exception as e:
        logger.error(f"❌ Firebase initialization error: {e}")
        # Allow the app to start; data endpoints will report the failure
        return False


def get_db():
    """Get Firestore database instance"""
    try:
        return firestore.client()
    except ValueError:
        logger.error("❌ Firebase not initialized. Cannot access Firestore.")
        raise RuntimeError("Firebase not configured. Please set environment variables.")
