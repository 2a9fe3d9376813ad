# =============================================================================
# IDENTITY API SCAFFOLD - RATE LIMITER AND HEADER MIDDLEWARE
# =============================================================================
# File: api/middleware/rate_limiter.py
# Description: Fixed-window rate limiting on Redis, security headers and
#              request id propagation
# =============================================================================

from typing import Callable, Optional
import logging
import uuid

from fastapi import Request, Response
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from auth.dependencies import get_client_ip
from db.factory import DBFactory
from core.config import settings
from core.exceptions import RateLimitExceededError


logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60


class RateLimiterMiddleware(BaseHTTPMiddleware):
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    RATE LIMITER MIDDLEWARE                               │
    │  Per-IP, per-path request counting in one-minute Redis windows          │
    └─────────────────────────────────────────────────────────────────────────┘

    Credential endpoints get the stricter ``rate_limit_auth_per_minute``.
    Without Redis, or when Redis errors, requests pass unthrottled.

    Headers Added:
        - X-RateLimit-Limit: Maximum requests allowed
        - X-RateLimit-Remaining: Requests remaining
        - X-RateLimit-Reset: Seconds until reset
        - Retry-After: Seconds to wait (when limited)
    """

    STRICT_ENDPOINTS = {
        "/api/auth/login",
        "/api/auth/register",
        "/api/auth/cookie/login",
    }

    EXEMPT_ENDPOINTS = {
        "/health",
        "/health/ready",
        "/health/live",
        "/docs",
        "/redoc",
        "/openapi.json",
    }

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        path = request.url.path

        if not settings.rate_limit_enabled or path in self.EXEMPT_ENDPOINTS:
            return await call_next(request)

        if path in self.STRICT_ENDPOINTS:
            limit = settings.rate_limit_auth_per_minute
        else:
            limit = settings.rate_limit_per_minute

        counted = await self._count(f"rate:{get_client_ip(request)}:{path}")
        if counted is None:
            return await call_next(request)

        current, ttl = counted

        if current > limit:
            logger.warning("Rate limit exceeded: %s %s", get_client_ip(request), path)
            error = RateLimitExceededError(retry_after=ttl)
            return JSONResponse(
                status_code=error.status_code,
                content=error.to_dict(),
                headers={
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(ttl),
                    "Retry-After": str(ttl),
                },
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - current))
        response.headers["X-RateLimit-Reset"] = str(ttl)

        return response

    async def _count(self, key: str) -> Optional[tuple[int, int]]:
        """
        Increment the window counter.

        Returns:
            (count, seconds until reset), or None when Redis is unusable
        """
        redis = DBFactory._redis_adapter
        if redis is None:
            return None

        try:
            current = await redis.incr(key)
            if current == 1:
                await redis.expire(key, WINDOW_SECONDS)

            ttl = await redis.ttl(key)
            if ttl < 0:
                ttl = WINDOW_SECONDS
        except RedisError as e:
            logger.warning("Rate limiter unavailable, request allowed: %s", e)
            return None

        return current, ttl


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    SECURITY HEADERS MIDDLEWARE                           │
    │  Adds security-related HTTP headers to all responses                    │
    └─────────────────────────────────────────────────────────────────────────┘
    """

    # Swagger UI loads its assets from a CDN
    DOCS_PREFIXES = ("/docs", "/redoc", "/openapi.json")

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if settings.is_production:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        if request.url.path.startswith(self.DOCS_PREFIXES):
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; "
                "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "img-src 'self' data: https://fastapi.tiangolo.com;"
            )
        else:
            response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with ``X-Request-ID`` (client supplied or a new UUID),
    stored on ``request.state`` and echoed on the response.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response
