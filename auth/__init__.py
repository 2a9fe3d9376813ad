# =============================================================================
# AUTH MODULE INITIALIZATION
# =============================================================================
# File: auth/__init__.py
# Description: Auth module exports
#              Services and dependencies are imported from their modules
#              directly (session.manager depends on auth.repository)
# =============================================================================

from auth.schemas import (
    ApiResponse,
    AuthResponse,
    UserDto,
    RegisterRequest,
    LoginRequest,
    RefreshRequest,
    UpdateUserRequest,
    ChangePasswordRequest,
)
from auth.repository import (
    UserRepository,
    RoleRepository,
    RefreshTokenRepository,
    SessionRepository,
)

__all__ = [
    # Schemas
    "ApiResponse",
    "AuthResponse",
    "UserDto",
    "RegisterRequest",
    "LoginRequest",
    "RefreshRequest",
    "UpdateUserRequest",
    "ChangePasswordRequest",

    # Repositories
    "UserRepository",
    "RoleRepository",
    "RefreshTokenRepository",
    "SessionRepository",
]
