# =============================================================================
# API MODULE INITIALIZATION
# =============================================================================
# File: api/__init__.py
# Description: API module exports
# =============================================================================

from api.routes import api_router, health_router
from api.middleware import (
    RateLimiterMiddleware,
    SecurityHeadersMiddleware,
    RequestIDMiddleware,
    LoggingMiddleware,
)

__all__ = [
    "api_router",
    "health_router",
    "RateLimiterMiddleware",
    "SecurityHeadersMiddleware",
    "RequestIDMiddleware",
    "LoggingMiddleware",
]
