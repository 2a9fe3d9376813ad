# =============================================================================
# IDENTITY API SCAFFOLD - AUTH SCHEMAS
# =============================================================================
# File: auth/schemas.py
# Description: Request DTOs and the uniform response envelopes
#              (ApiResponse[T], AuthResponse, UserDto)
# =============================================================================

from typing import Any, ClassVar, Optional, List, Generic, TypeVar
from datetime import datetime
import re

from pydantic import (
    BaseModel,
    EmailStr,
    Field,
    field_validator,
    model_validator,
    computed_field,
    ConfigDict,
)

from db.models import ApplicationUser


T = TypeVar("T")

# CUSTOMIZATION: characters accepted in user names
USERNAME_PATTERN = r"^[a-zA-Z0-9\-._@+]+$"


# =============================================================================
# BASE SCHEMAS
# =============================================================================

class BaseSchema(BaseModel):
    """Base schema with common configuration."""
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
    )


class CredentialSchema(BaseModel):
    """
    Base for requests carrying passwords.

    Passwords are taken verbatim; only the fields listed in ``_STRIPPED``
    are trimmed.
    """
    model_config = ConfigDict(from_attributes=True)

    _STRIPPED: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="before")
    @classmethod
    def strip_identity_fields(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = {
                key: value.strip() if key in cls._STRIPPED and isinstance(value, str) else value
                for key, value in data.items()
            }
        return data


# =============================================================================
# RESPONSE ENVELOPES
# =============================================================================

class ApiResponse(BaseModel, Generic[T]):
    """
    Uniform envelope returned by every endpoint.

    Failures are rendered with the same keys by the exception handlers in
    main.py (``data`` omitted, ``errors`` populated).
    """
    success: bool = True
    message: str = "Operation successful"
    data: Optional[T] = None
    errors: List[str] = Field(default_factory=list)

    @classmethod
    def ok(cls, data: Optional[T] = None, message: str = "Operation successful") -> "ApiResponse[T]":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str, errors: Optional[List[str]] = None) -> "ApiResponse[T]":
        return cls(success=False, message=message, errors=list(errors or []))


class UserDto(BaseSchema):
    """Public view of a user (no password hash, no lockout internals)."""
    id: str = Field(..., description="User UUID")
    user_name: str = Field(..., description="User name")
    email: str = Field(..., description="Email address")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email_confirmed: bool = False
    phone_number: Optional[str] = None
    created_at: datetime
    is_active: bool = True
    roles: List[str] = Field(default_factory=list)

    @computed_field
    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @classmethod
    def from_user(cls, user: ApplicationUser) -> "UserDto":
        return cls(
            id=user.id,
            user_name=user.username,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            email_confirmed=user.email_confirmed,
            phone_number=user.phone_number,
            created_at=user.created_at,
            is_active=user.is_active,
            roles=user.role_names,
        )


class AuthResponse(BaseModel):
    """
    Result of register / login / refresh / cookie login.

    ``token`` and ``refresh_token`` are None for cookie logins; the session
    travels in the cookie instead.
    """
    success: bool = True
    message: str = "Authentication successful"
    token: Optional[str] = None
    refresh_token: Optional[str] = None
    expiration: Optional[datetime] = None
    user: Optional[UserDto] = None


# =============================================================================
# AUTH REQUESTS
# =============================================================================

class RegisterRequest(CredentialSchema):
    """
    Registration request.

    Validation Rules:
        - email: valid address, at most 256 characters
        - user_name: optional, defaults to the email (which must then fit
          the user name character set)
        - password: 8-100 characters (complexity enforced by the password policy)
        - confirm_password: must equal password
    """
    email: EmailStr = Field(..., examples=["user@example.com"])
    user_name: Optional[str] = Field(
        None,
        max_length=256,
        pattern=USERNAME_PATTERN,
        description="Defaults to the email address",
        examples=["john.doe"],
    )
    password: str = Field(..., min_length=8, max_length=100, examples=["SecurePass123!"])
    confirm_password: str = Field(..., examples=["SecurePass123!"])
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)

    _STRIPPED: ClassVar[tuple[str, ...]] = ("email", "user_name", "first_name", "last_name")

    @field_validator("email")
    @classmethod
    def validate_email_length(cls, v: str) -> str:
        if len(v) > 256:
            raise ValueError("Email must not exceed 256 characters")
        return v

    @model_validator(mode="after")
    def check_passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("The password and confirmation password do not match")
        return self

    @model_validator(mode="after")
    def check_default_username(self) -> "RegisterRequest":
        if self.user_name is None and not re.fullmatch(USERNAME_PATTERN, str(self.email)):
            raise ValueError(
                "Email contains characters not allowed in a user name; provide user_name"
            )
        return self

    @property
    def effective_username(self) -> str:
        return self.user_name or str(self.email)


class LoginRequest(CredentialSchema):
    """Login with email or user name."""
    _STRIPPED: ClassVar[tuple[str, ...]] = ("email_or_username",)

    email_or_username: str = Field(..., min_length=1, examples=["user@example.com"])
    password: str = Field(..., min_length=1)
    remember_me: bool = False


class RefreshRequest(BaseSchema):
    refresh_token: str = Field(..., min_length=1)


# =============================================================================
# USER REQUESTS
# =============================================================================

class UpdateUserRequest(BaseSchema):
    """Profile fields a user may change on their own account."""
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=32, pattern=r"^\+?[0-9 ().\-]{3,32}$")


class ChangePasswordRequest(CredentialSchema):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=100)
    confirm_new_password: str

    @model_validator(mode="after")
    def check_passwords_match(self) -> "ChangePasswordRequest":
        if self.new_password != self.confirm_new_password:
            raise ValueError("The new password and confirmation password do not match")
        return self
