# =============================================================================
# IDENTITY API SCAFFOLD - MAIN APPLICATION
# =============================================================================
# File: main.py
# Description: FastAPI application entry point with lifecycle management,
#              logging setup and the error envelope handlers
# =============================================================================

import sys
import logging
from contextlib import asynccontextmanager

import structlog

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.routes import api_router, health_router
from auth.schemas import ApiResponse
from api.middleware import (
    RateLimiterMiddleware,
    SecurityHeadersMiddleware,
    RequestIDMiddleware,
    LoggingMiddleware,
)
from db.factory import DBFactory
from db.seeder import seed_database
from core.config import settings
from core.exceptions import AppException


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def build_json_formatter() -> structlog.stdlib.ProcessorFormatter:
    """
    Formatter rendering stdlib log records as one JSON object per line.

    Keys: event, level, logger, timestamp (and exception when present).
    """
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )


def configure_logging() -> None:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == "json":
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(build_json_formatter())
        logging.basicConfig(level=level, handlers=[handler])
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )


configure_logging()

logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle manager.

    - Startup: connect database and Redis, create tables, seed roles/admin
    - Shutdown: close all connections
    """
    logger.info("Starting %s in %s mode", settings.app_name, settings.app_env)

    try:
        await DBFactory.connect_all()
        logger.info("Database connections established")

        if settings.db_auto_create_tables:
            await DBFactory.create_tables()
            logger.info("Database tables created/verified")

        async with DBFactory.get_db_adapter().get_session() as session:
            await seed_database(session)

        logger.info("%s started successfully", settings.app_name)

    except Exception:
        logger.exception("Startup failed")
        raise

    yield

    logger.info("Shutting down %s", settings.app_name)

    try:
        await DBFactory.disconnect_all()
        logger.info("Database connections closed")
    except Exception:
        logger.exception("Shutdown error")


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

def _envelope(message: str, error_code: str, errors=None) -> dict:
    body = ApiResponse.fail(message, errors).model_dump(exclude={"data"})
    body["error_code"] = error_code
    return body


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Malformed bodies and failed field rules: 400 with one message per error."""
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "Invalid value")
        errors.append(f"{location}: {message}" if location else message)

    return JSONResponse(
        status_code=400,
        content=_envelope("Invalid data", "VALIDATION_ERROR", errors),
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(str(exc.detail), f"HTTP_{exc.status_code}"),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    # Don't expose internal errors in production
    message = "An internal error occurred" if settings.is_production else str(exc)

    return JSONResponse(
        status_code=500,
        content=_envelope(message, "INTERNAL_ERROR"),
    )


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_application() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    app = FastAPI(
        title=settings.app_name,
        description="Identity backend: registration, JWT and cookie login, roles and user administration",
        version=settings.app_version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    # =========================================================================
    # MIDDLEWARE STACK (last added = outermost)
    # =========================================================================

    app.add_middleware(RateLimiterMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(LoggingMiddleware)
    # Outside logging so the request id is set before the log line
    app.add_middleware(RequestIDMiddleware)

    if settings.is_development:
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=".*",
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Request-ID", "Token-Expired"],
        )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins_list,
            allow_credentials=settings.cors_allow_credentials,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Request-ID", "Token-Expired"],
        )

    # =========================================================================
    # EXCEPTION HANDLERS
    # =========================================================================

    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # =========================================================================
    # ROUTES
    # =========================================================================

    app.include_router(api_router)
    app.include_router(health_router)

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "status": "running",
            "docs": "/docs" if settings.is_development else None,
        }

    return app


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = create_application()


# =============================================================================
# ENTRYPOINT
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
