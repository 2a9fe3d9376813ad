# =============================================================================
# IDENTITY API SCAFFOLD - REQUEST LOGGING MIDDLEWARE
# =============================================================================
# File: api/middleware/logging_middleware.py
# Description: One log line per request with status, duration and client IP
# =============================================================================

from typing import Callable
import logging
import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from auth.dependencies import get_client_ip
from utils.helpers import mask_ip


logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    LOGGING MIDDLEWARE                                    │
    │  Logs request/response details for monitoring and debugging             │
    └─────────────────────────────────────────────────────────────────────────┘
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        start_time = time.perf_counter()

        method = request.method
        path = request.url.path
        client_ip = mask_ip(get_client_ip(request))
        request_id = getattr(request.state, "request_id", "unknown")

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            logger.error(
                "%s %s - ERROR - %sms - IP: %s - RequestID: %s - %s",
                method, path, duration_ms, client_ip, request_id, e,
            )
            raise

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        logger.info(
            "%s %s - %s - %sms - IP: %s - RequestID: %s",
            method, path, response.status_code, duration_ms, client_ip, request_id,
        )

        return response
