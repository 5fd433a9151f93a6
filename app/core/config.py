"""
Application configuration settings
"""
import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # App Configuration
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    HOST: str = "0.0.0.0"
    PORT: int = int(os.getenv("PORT", "8000"))

    # Firebase Configuration (optional for local development)
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_PRIVATE_KEY_ID: Optional[str] = None
    FIREBASE_PRIVATE_KEY: Optional[str] = None
    FIREBASE_CLIENT_EMAIL: Optional[str] = None
    FIREBASE_CLIENT_ID: Optional[str] = None
    FIREBASE_AUTH_URI: str = "https://accounts.google.com/o/oauth2/auth"
    FIREBASE_TOKEN_URI: str = "https://oauth2.googleapis.com/token"

    # Firestore collections
    RESOURCES_COLLECTION: str = "technical_content"
    BOOKMARKS_COLLECTION: str = "user_bookmarks"
    PREVIEW_COLLECTION: str = "sneak_peek_content"
    # Pre-filter one facet in Firestore (requires canonical facet spellings in the data)
    FIRESTORE_PUSHDOWN: bool = False

    # Caching (seconds)
    CACHE_TTL_SECONDS: int = 60 * 60 * 24  # catalog is refreshed once a day
    CLIENT_STALE_SECONDS: int = 60 * 60 * 12

    # Cache invalidation and admin
    REVALIDATE_SECRET: Optional[str] = None
    ADMIN_EMAIL: Optional[str] = None

    # Rate limiting (requests per client per period)
    RATE_LIMIT_CALLS: int = 100
    RATE_LIMIT_PERIOD: int = 60

    # Search
    MAX_SEARCH_LENGTH: int = 500
    GLOBAL_SEARCH_LIMIT: int = 10

    # Client layer
    API_BASE_URL: str = "http://localhost:8000/api/v1"
    CLIENT_TIMEOUT_SECONDS: float = 15.0

    # Hosting URL for CORS (comma-separated)
    HOSTING_URL: Optional[str] = os.getenv("HOSTING_URL")

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = 'ignore'


# Global settings instance
settings = Settings()
