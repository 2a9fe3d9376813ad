# =============================================================================
# CORE MODULE INITIALIZATION
# =============================================================================
# File: core/__init__.py
# Description: Core module exports for centralized access
# =============================================================================

from core.config import settings, get_settings, Settings
from core.exceptions import (
    # Base
    AppException,

    # Authentication
    AuthenticationError,
    InvalidCredentialsError,
    AccountDeactivatedError,
    AccountLockedError,
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    TokenRevokedError,
    TokenMissingError,
    SessionInvalidError,

    # Authorization
    AuthorizationError,
    InsufficientPermissionsError,

    # Not found
    NotFoundError,
    UserNotFoundError,
    RoleNotFoundError,

    # Validation
    ValidationError,
    UserExistsError,
    PasswordValidationError,
    PasswordMismatchError,
    RoleAssignmentError,

    # Rate Limiting
    RateLimitExceededError,

    # Infrastructure
    DatabaseError,
    DatabaseConnectionError,
    RedisError,
    RedisConnectionError,
)
from core.security import (
    PasswordManager,
    JWTManager,
    PasswordValidator,
    TokenPayload,
    IssuedToken,
    password_manager,
    jwt_manager,
    password_validator,
    generate_secure_token,
    hash_token,
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    "Settings",

    # Exceptions
    "AppException",
    "AuthenticationError",
    "InvalidCredentialsError",
    "AccountDeactivatedError",
    "AccountLockedError",
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenRevokedError",
    "TokenMissingError",
    "SessionInvalidError",
    "AuthorizationError",
    "InsufficientPermissionsError",
    "NotFoundError",
    "UserNotFoundError",
    "RoleNotFoundError",
    "ValidationError",
    "UserExistsError",
    "PasswordValidationError",
    "PasswordMismatchError",
    "RoleAssignmentError",
    "RateLimitExceededError",
    "DatabaseError",
    "DatabaseConnectionError",
    "RedisError",
    "RedisConnectionError",

    # Security
    "PasswordManager",
    "JWTManager",
    "PasswordValidator",
    "TokenPayload",
    "IssuedToken",
    "password_manager",
    "jwt_manager",
    "password_validator",
    "generate_secure_token",
    "hash_token",
]
