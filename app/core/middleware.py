"""
Security and rate limiting middleware
"""
import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from time import time
from collections import defaultdict
from typing import Dict, List

logger = logging.getLogger(__name__)

EXEMPT_PATHS = {"/health"}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding-window rate limiting per client IP"""

    def __init__(self, app, calls: int = 100, period: int = 60):
        super().__init__(app)
        self.calls = calls
        self.period = period
        self.clients: Dict[str, List[float]] = defaultdict(list)

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"

        current_time = time()
        recent = [
            timestamp for timestamp in self.clients[client_ip]
            if current_time - timestamp < self.period
        ]

        if len(recent) >= self.calls:
            self.clients[client_ip] = recent
            logger.warning(f"Rate limit exceeded for {client_ip}")
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Too many requests. Please try again later.",
                    "retry_after": self.period
                },
                headers={"Retry-After": str(self.period)},
            )

        recent.append(current_time)
        self.clients[client_ip] = recent
        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses"""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # Bookmark responses are per-user and must never be cached by proxies
        if request.url.path.startswith("/api/v1/bookmarks"):
            response.headers["Cache-Control"] = "private, no-store"

        return response
