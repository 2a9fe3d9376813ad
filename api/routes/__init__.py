# =============================================================================
# API ROUTES INITIALIZATION
# =============================================================================
# File: api/routes/__init__.py
# Description: Router aggregation
# =============================================================================

from fastapi import APIRouter

from api.routes.auth_routes import router as auth_router
from api.routes.user_routes import router as user_router
from api.routes.health_routes import router as health_router


# Versionless /api prefix shared by auth and user routes
api_router = APIRouter(prefix="/api")

api_router.include_router(auth_router)
api_router.include_router(user_router)


__all__ = [
    "api_router",
    "auth_router",
    "user_router",
    "health_router",
]
