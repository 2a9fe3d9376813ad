# =============================================================================
# IDENTITY API SCAFFOLD - CORE EXCEPTIONS MODULE
# =============================================================================
# File: core/exceptions.py
# Description: Exception hierarchy mapped onto HTTP status codes and the
#              uniform failure envelope {success, message, errors}
# =============================================================================

from typing import Optional, Dict, Any, List
from fastapi import status


class AppException(Exception):
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    BASE EXCEPTION CLASS                                  │
    │  All application exceptions inherit from this base class                 │
    │  Rendered by main.py as the uniform failure envelope                     │
    └─────────────────────────────────────────────────────────────────────────┘

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error identifier
        status_code: HTTP status code for API responses
        errors: Detailed error messages (e.g. password policy violations)
        headers: Extra response headers
    """

    def __init__(
        self,
        message: str = "An error occurred",
        error_code: str = "APP_ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        errors: Optional[List[str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.errors = list(errors or [])
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to the failure envelope."""
        return {
            "success": False,
            "message": self.message,
            "errors": self.errors,
            "error_code": self.error_code,
        }


# =============================================================================
# AUTHENTICATION EXCEPTIONS (401)
# =============================================================================

class AuthenticationError(AppException):
    """
    Raised when the caller cannot be authenticated.

    Examples:
        - Invalid email/password combination
        - Expired or malformed JWT token
        - Missing credentials
    """

    def __init__(
        self,
        message: str = "Authentication failed",
        error_code: str = "AUTHENTICATION_FAILED",
        errors: Optional[List[str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_401_UNAUTHORIZED,
            errors=errors,
            headers=headers,
        )


class InvalidCredentialsError(AuthenticationError):
    """Raised when the login/password combination is invalid."""

    def __init__(self):
        super().__init__(
            message="Invalid credentials",
            error_code="INVALID_CREDENTIALS",
        )


class AccountDeactivatedError(AuthenticationError):
    """Raised when a deactivated account tries to authenticate."""

    def __init__(self):
        super().__init__(
            message="This account has been deactivated",
            error_code="ACCOUNT_DEACTIVATED",
        )


class AccountLockedError(AuthenticationError):
    """Raised when the account is locked out after repeated failed logins."""

    def __init__(self, locked_until: Optional[str] = None):
        errors = [f"Locked until {locked_until}"] if locked_until else None
        super().__init__(
            message="Account locked. Please try again later.",
            error_code="ACCOUNT_LOCKED",
            errors=errors,
        )


class TokenError(AuthenticationError):
    """Base class for all token-related errors."""

    def __init__(
        self,
        message: str = "Token error",
        error_code: str = "TOKEN_ERROR",
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            headers=headers,
        )


class TokenExpiredError(TokenError):
    """Raised when a JWT has expired. Flags the response with Token-Expired."""

    def __init__(self):
        super().__init__(
            message="Token has expired",
            error_code="TOKEN_EXPIRED",
            headers={"Token-Expired": "true"},
        )


class TokenInvalidError(TokenError):
    """Raised when a token is malformed, badly signed or of the wrong type."""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(
            message=message,
            error_code="TOKEN_INVALID",
        )


class TokenRevokedError(TokenError):
    """Raised when a token was revoked (logout, rotation)."""

    def __init__(self):
        super().__init__(
            message="Token has been revoked",
            error_code="TOKEN_REVOKED",
        )


class TokenMissingError(TokenError):
    """Raised when no bearer token or session cookie is present."""

    def __init__(self):
        super().__init__(
            message="Authentication required",
            error_code="TOKEN_MISSING",
        )


class SessionInvalidError(AuthenticationError):
    """Raised when a cookie session is unknown, expired or signed out."""

    def __init__(self):
        super().__init__(
            message="Session is invalid or has expired",
            error_code="SESSION_INVALID",
        )


# =============================================================================
# AUTHORIZATION EXCEPTIONS (403)
# =============================================================================

class AuthorizationError(AppException):
    """Raised when an authenticated caller is not allowed to act."""

    def __init__(
        self,
        message: str = "Access denied",
        error_code: str = "ACCESS_DENIED",
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_403_FORBIDDEN,
        )


class InsufficientPermissionsError(AuthorizationError):
    """Raised when the user lacks every one of the required roles."""

    def __init__(self, required_role: Optional[str] = None):
        message = "Insufficient permissions"
        if required_role:
            message = f"Insufficient permissions. Required role: {required_role}"
        super().__init__(
            message=message,
            error_code="INSUFFICIENT_PERMISSIONS",
        )


# =============================================================================
# RESOURCE EXCEPTIONS (404)
# =============================================================================

class NotFoundError(AppException):
    """Base class for missing resources."""

    def __init__(self, message: str = "Resource not found", error_code: str = "NOT_FOUND"):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_404_NOT_FOUND,
        )


class UserNotFoundError(NotFoundError):
    """Raised when the requested user does not exist."""

    def __init__(self):
        super().__init__(message="User not found", error_code="USER_NOT_FOUND")


class RoleNotFoundError(NotFoundError):
    """Raised when the requested role does not exist."""

    def __init__(self, role_name: Optional[str] = None):
        message = "Role not found"
        if role_name:
            message = f"Role '{role_name}' not found"
        super().__init__(message=message, error_code="ROLE_NOT_FOUND")


# =============================================================================
# VALIDATION EXCEPTIONS (400)
# =============================================================================

class ValidationError(AppException):
    """Raised when input is rejected by business rules."""

    def __init__(
        self,
        message: str = "Invalid data",
        error_code: str = "VALIDATION_ERROR",
        errors: Optional[List[str]] = None,
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_400_BAD_REQUEST,
            errors=errors,
        )


class UserExistsError(ValidationError):
    """Raised when registering an email or username that is already taken."""

    def __init__(self, field: str = "email"):
        if field == "email":
            message = "A user with this email already exists"
        else:
            message = "Username is already taken"
        super().__init__(message=message, error_code="USER_EXISTS")


class PasswordValidationError(ValidationError):
    """Raised when a password breaks the configured policy."""

    def __init__(
        self,
        errors: Optional[List[str]] = None,
        message: str = "Password does not meet requirements",
    ):
        super().__init__(
            message=message,
            error_code="PASSWORD_POLICY",
            errors=errors,
        )


class PasswordMismatchError(ValidationError):
    """Raised when the current password supplied for a change is wrong."""

    def __init__(self):
        super().__init__(
            message="Password change failed. Please verify your current password.",
            error_code="PASSWORD_MISMATCH",
        )


class RoleAssignmentError(ValidationError):
    """Raised when a role cannot be added to or removed from a user."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="ROLE_ASSIGNMENT_FAILED")


# =============================================================================
# RATE LIMITING EXCEPTIONS (429)
# =============================================================================

class RateLimitExceededError(AppException):
    """Raised when rate limit is exceeded."""

    def __init__(self, retry_after: Optional[int] = None):
        message = "Rate limit exceeded. Please try again later"
        headers = None
        if retry_after:
            message = f"Rate limit exceeded. Retry after {retry_after} seconds"
            headers = {"Retry-After": str(retry_after)}
        super().__init__(
            message=message,
            error_code="RATE_LIMIT_EXCEEDED",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            headers=headers,
        )


# =============================================================================
# INFRASTRUCTURE EXCEPTIONS (500)
# =============================================================================

class DatabaseError(AppException):
    """Base class for database errors."""

    def __init__(
        self,
        message: str = "Database error",
        error_code: str = "DATABASE_ERROR",
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


class DatabaseConnectionError(DatabaseError):
    """Raised when the database cannot be reached."""

    def __init__(self):
        super().__init__(
            message="Unable to connect to database",
            error_code="DATABASE_CONNECTION_ERROR",
        )


class RedisError(AppException):
    """Base class for Redis errors."""

    def __init__(
        self,
        message: str = "Cache error",
        error_code: str = "REDIS_ERROR",
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


class RedisConnectionError(RedisError):
    """Raised when Redis cannot be reached."""

    def __init__(self):
        super().__init__(
            message="Unable to connect to Redis",
            error_code="REDIS_CONNECTION_ERROR",
        )
