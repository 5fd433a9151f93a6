"""
Resource Hub Backend API
FastAPI application with Firebase integration
"""
import os
import logging
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import uvicorn

from app.core.cache import TaggedCache
from app.core.config import settings
from app.core.exceptions import ResourceHubException
from app.core.firebase_config import initialize_firebase, get_db
from app.core.middleware import RateLimitMiddleware, SecurityHeadersMiddleware
from app.core.responses import error_response
from app.api.v1.router import api_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    logger.info("🚀 Starting Resource Hub Backend...")
    logger.debug(f"Debug mode: {settings.DEBUG}")

    app.state.cache = TaggedCache(ttl_seconds=settings.CACHE_TTL_SECONDS)
    app.state.db = get_db() if initialize_firebase() else None
    if app.state.db is None:
        logger.warning("⚠️  Running without a backend; data endpoints will fail")

    yield

    logger.info("🛑 Shutting down Resource Hub Backend...")
    app.state.cache.clear()


app = FastAPI(
    title="Resource Hub API",
    description="Curated technical learning resources: search, facets and bookmarks",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


@app.exception_handler(ResourceHubException)
async def resource_hub_exception_handler(request: Request, exc: ResourceHubException):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} {exc.details}")
    return JSONResponse(status_code=exc.status_code, content=error_response(exc.message))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content=error_response("Invalid request", details={"errors": jsonable_encoder(exc.errors())}),
    )


# Security middleware (order matters - these run first)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RateLimitMiddleware, calls=settings.RATE_LIMIT_CALLS, period=settings.RATE_LIMIT_PERIOD)

# CORS middleware - environment-based configuration
allowed_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

# Add hosting URLs for production (supports comma-separated domains)
if settings.HOSTING_URL:
    for hosting_url in (url.strip() for url in settings.HOSTING_URL.split(",")):
        if not hosting_url:
            continue
        host = hosting_url.split("://", 1)[-1]
        allowed_origins.append(f"https://{host}")
        allowed_origins.append(f"http://{host}")
    logger.info(f"Added hosting URLs to CORS: {settings.HOSTING_URL}")

# In production, don't use wildcard
if settings.DEBUG:
    logger.warning("⚠️  CORS wildcard enabled - DEBUG mode. Disable in production!")
    allowed_origins.append("*")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# API routes
app.include_router(api_router, prefix="/api/v1")


# Health check
@app.get("/health")
async def health_check():
    return {"status": "healthy", "message": "Resource Hub Backend is running"}


if __name__ == "__main__":
    # Read PORT from environment (Cloud Run sets this)
    port = int(os.getenv("PORT", settings.PORT))
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=port,
        reload=settings.DEBUG,
        log_level="info",
        access_log=True,
        log_config=None  # Use our custom logging config
    )
