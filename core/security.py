# =============================================================================
# IDENTITY API SCAFFOLD - CORE SECURITY MODULE
# =============================================================================
# File: core/security.py
# Description: Password hashing, password policy and JWT issuance/validation
#              Argon2id for new hashes, bcrypt accepted for legacy hashes
# =============================================================================

from typing import Optional, Dict, Any, Literal, List
from datetime import datetime, timedelta, timezone
from uuid import uuid4
import hashlib
import secrets

from passlib.context import CryptContext
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, InvalidHash, VerificationError
from jose import jwt, JWTError, ExpiredSignatureError
from pydantic import BaseModel, ConfigDict

from core.config import settings
from core.exceptions import (
    TokenExpiredError,
    TokenInvalidError,
    PasswordValidationError,
)


TokenType = Literal["access", "refresh"]


# =============================================================================
# PASSWORD HASHER CONFIGURATION
# =============================================================================

class PasswordManager:
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    PASSWORD HASHING MANAGER                              │
    │  Argon2id for every new hash, bcrypt verification for legacy hashes     │
    │  Flags hashes that should be upgraded on the next successful login      │
    └─────────────────────────────────────────────────────────────────────────┘

    Argon2id Parameters (configurable, OWASP defaults):
        - Memory:      64 MB (65536 KB)
        - Iterations:  3
        - Parallelism: 4
        - Salt:        16 bytes (auto-generated)
    """

    def __init__(self):
        self._argon2_hasher = PasswordHasher(
            time_cost=settings.argon2_time_cost,
            memory_cost=settings.argon2_memory_cost,
            parallelism=settings.argon2_parallelism,
            hash_len=32,
            salt_len=16,
        )

        # Imported user stores often carry bcrypt hashes
        self._bcrypt_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

    def hash_password(self, password: str) -> str:
        """
        Hash a password with Argon2id.

        Args:
            password: Plain text password to hash

        Returns:
            str: Encoded hash string

        Example:
            >>> hashed = password_manager.hash_password("SecurePassword123!")
            >>> hashed.startswith("$argon2id$")
            True
        """
        return self._argon2_hasher.hash(password)

    def verify_password(
        self,
        plain_password: str,
        hashed_password: str
    ) -> tuple[bool, bool]:
        """
        Verify a password against its stored hash.

        Args:
            plain_password: Plain text password to verify
            hashed_password: Stored password hash

        Returns:
            tuple[bool, bool]: (is_valid, needs_rehash)
                - is_valid: True if password matches
                - needs_rehash: True if the hash should be replaced by a
                  fresh Argon2id hash with the current parameters
        """
        if not hashed_password:
            return False, False

        if hashed_password.startswith("$argon2"):
            try:
                self._argon2_hasher.verify(hashed_password, plain_password)
            except (VerifyMismatchError, VerificationError, InvalidHash):
                return False, False
            return True, self._argon2_hasher.check_needs_rehash(hashed_password)

        if hashed_password.startswith("$2"):
            try:
                is_valid = self._bcrypt_context.verify(plain_password, hashed_password)
            except ValueError:
                return False, False
            return is_valid, is_valid

        # Unknown hash format
        return False, False


# =============================================================================
# JWT TOKEN PAYLOAD MODELS
# =============================================================================

class TokenPayload(BaseModel):
    """
    Decoded JWT claims.

    Attributes:
        sub: Subject (user ID)
        jti: Unique token identifier
        type: Token type (access, refresh)
        iat: Issued at timestamp
        exp: Expiration timestamp
        email: User email (access tokens)
        name: Username (access tokens)
        given_name: First name (access tokens)
        family_name: Last name (access tokens)
        roles: Role names (access tokens)
    """
    model_config = ConfigDict(from_attributes=True)

    sub: str
    jti: str
    type: TokenType
    iat: datetime
    exp: datetime
    email: Optional[str] = None
    name: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    roles: List[str] = []


class IssuedToken(BaseModel):
    """Freshly signed token together with its identifier and expiry."""
    token: str
    jti: str
    expires_at: datetime


# =============================================================================
# JWT TOKEN MANAGER
# =============================================================================

class JWTManager:
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    JWT TOKEN MANAGER                                     │
    │  Signs and validates access and refresh tokens                          │
    │  Issuer, audience and expiry are always enforced, with no clock skew   │
    └─────────────────────────────────────────────────────────────────────────┘

    Token Types:
        - Access Token:  60 minutes, or 7 days with "remember me"
        - Refresh Token: 7 days, stored hashed server-side and rotated on use
    """

    def __init__(self):
        self._secret_key = settings.jwt_secret_key
        self._algorithm = settings.jwt_algorithm
        self._issuer = settings.jwt_issuer
        self._audience = settings.jwt_audience
        self._access_token_expire = timedelta(minutes=settings.jwt_access_token_expire_minutes)
        self._remember_me_expire = timedelta(days=settings.jwt_remember_me_expire_days)
        self._refresh_token_expire = timedelta(days=settings.jwt_refresh_token_expire_days)

        # Load RSA keys if using asymmetric algorithm
        self._private_key: Optional[str] = None
        self._public_key: Optional[str] = None

        if self._algorithm.startswith("RS"):
            self._load_rsa_keys()

    def _load_rsa_keys(self) -> None:
        """Load RSA keys from configured paths."""
        if settings.jwt_private_key_path:
            with open(settings.jwt_private_key_path, "r") as f:
                self._private_key = f.read()

        if settings.jwt_public_key_path:
            with open(settings.jwt_public_key_path, "r") as f:
                self._public_key = f.read()

    def _get_signing_key(self) -> str:
        if self._algorithm.startswith("RS") and self._private_key:
            return self._private_key
        return self._secret_key

    def _get_verification_key(self) -> str:
        if self._algorithm.startswith("RS") and self._public_key:
            return self._public_key
        return self._secret_key

    def _encode(
        self,
        user_id: str,
        token_type: TokenType,
        expires_delta: timedelta,
        additional_claims: Optional[Dict[str, Any]] = None,
    ) -> IssuedToken:
        now = datetime.now(timezone.utc)
        expires_at = now + expires_delta
        jti = str(uuid4())

        claims = {
            "sub": user_id,
            "jti": jti,
            "type": token_type,
            "iss": self._issuer,
            "aud": self._audience,
            "iat": now,
            "exp": expires_at,
        }
        if additional_claims:
            claims.update(additional_claims)

        token = jwt.encode(claims, self._get_signing_key(), algorithm=self._algorithm)
        return IssuedToken(token=token, jti=jti, expires_at=expires_at)

    def create_access_token(
        self,
        user_id: str,
        email: str,
        username: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        roles: Optional[List[str]] = None,
        remember_me: bool = False,
    ) -> IssuedToken:
        """
        Create a signed access token carrying the user's identity claims.

        Args:
            user_id: User identifier (subject)
            email: Email claim
            username: Name claim
            first_name: Given name claim
            last_name: Family name claim
            roles: Role names used for authorization
            remember_me: Use the extended lifetime

        Returns:
            IssuedToken: Encoded token, its jti and its expiry
        """
        expires_delta = self._remember_me_expire if remember_me else self._access_token_expire
        return self._encode(
            user_id,
            "access",
            expires_delta,
            {
                "email": email,
                "name": username,
                "given_name": first_name or "",
                "family_name": last_name or "",
                "roles": roles or [],
            },
        )

    def create_refresh_token(self, user_id: str) -> IssuedToken:
        """Create a signed refresh token for the given user."""
        return self._encode(user_id, "refresh", self._refresh_token_expire)

    def decode_token(
        self,
        token: str,
        verify_exp: bool = True,
    ) -> TokenPayload:
        """
        Decode and validate a JWT.

        Args:
            token: Encoded JWT
            verify_exp: Whether to verify expiration

        Returns:
            TokenPayload: Decoded and validated token payload

        Raises:
            TokenExpiredError: If token has expired
            TokenInvalidError: If token is malformed, badly signed, or has the
                               wrong issuer/audience
        """
        try:
            payload = jwt.decode(
                token,
                self._get_verification_key(),
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
                options={"verify_exp": verify_exp, "leeway": 0},
            )
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError:
            raise TokenInvalidError()

        if payload.get("type") not in ("access", "refresh"):
            raise TokenInvalidError()

        return TokenPayload(
            sub=payload.get("sub", ""),
            jti=payload.get("jti", ""),
            type=payload["type"],
            iat=datetime.fromtimestamp(payload.get("iat", 0), tz=timezone.utc),
            exp=datetime.fromtimestamp(payload.get("exp", 0), tz=timezone.utc),
            email=payload.get("email"),
            name=payload.get("name"),
            given_name=payload.get("given_name"),
            family_name=payload.get("family_name"),
            roles=payload.get("roles", []),
        )

    def verify_token(
        self,
        token: str,
        expected_type: Optional[TokenType] = None,
    ) -> TokenPayload:
        """
        Verify a token and optionally check its type.

        Raises:
            TokenExpiredError: If token has expired
            TokenInvalidError: If token is invalid or of the wrong type
        """
        payload = self.decode_token(token)

        if expected_type and payload.type != expected_type:
            raise TokenInvalidError(f"Expected a {expected_type} token")

        return payload

    @staticmethod
    def get_remaining_ttl(payload: TokenPayload) -> int:
        """Seconds until the token expires, 0 if already expired."""
        remaining = (payload.exp - datetime.now(timezone.utc)).total_seconds()
        return max(0, int(remaining))


# =============================================================================
# PASSWORD VALIDATION
# =============================================================================

class PasswordValidator:
    """
    Password policy check driven by settings.

    Rules (each can be toggled):
        - Minimum / maximum length
        - At least one digit
        - At least one lowercase letter
        - At least one uppercase letter
        - At least one non-alphanumeric character
        - Not in the common passwords list
    """

    COMMON_PASSWORDS = {
        "password", "123456", "12345678", "qwerty", "abc123",
        "monkey", "1234567", "letmein", "trustno1", "dragon",
        "baseball", "iloveyou", "master", "sunshine", "ashley",
        "bailey", "shadow", "123123", "654321", "superman",
        "qazwsx", "michael", "football", "password1", "password123",
        "password1!", "p@ssw0rd", "qwerty123!",
    }

    def __init__(
        self,
        min_length: int = settings.password_min_length,
        max_length: int = settings.password_max_length,
        require_digit: bool = settings.password_require_digit,
        require_lowercase: bool = settings.password_require_lowercase,
        require_uppercase: bool = settings.password_require_uppercase,
        require_non_alphanumeric: bool = settings.password_require_non_alphanumeric,
    ):
        self.min_length = min_length
        self.max_length = max_length
        self.require_digit = require_digit
        self.require_lowercase = require_lowercase
        self.require_uppercase = require_uppercase
        self.require_non_alphanumeric = require_non_alphanumeric

    def validate(self, password: str) -> tuple[bool, list[str]]:
        """
        Validate a password against the policy.

        Returns:
            tuple[bool, list[str]]: (is_valid, list of error messages)
        """
        errors = []

        if len(password) < self.min_length:
            errors.append(f"Passwords must be at least {self.min_length} characters")

        if len(password) > self.max_length:
            errors.append(f"Passwords must not exceed {self.max_length} characters")

        if self.require_digit and not any(c.isdigit() for c in password):
            errors.append("Passwords must have at least one digit ('0'-'9')")

        if self.require_lowercase and not any(c.islower() for c in password):
            errors.append("Passwords must have at least one lowercase ('a'-'z')")

        if self.require_uppercase and not any(c.isupper() for c in password):
            errors.append("Passwords must have at least one uppercase ('A'-'Z')")

        if self.require_non_alphanumeric and all(c.isalnum() for c in password):
            errors.append("Passwords must have at least one non alphanumeric character")

        if password.lower() in self.COMMON_PASSWORDS:
            errors.append("Password is too common")

        return len(errors) == 0, errors

    def ensure_valid(self, password: str) -> None:
        """
        Validate password and raise if it breaks the policy.

        Raises:
            PasswordValidationError: Carries every violated rule in ``errors``
        """
        is_valid, errors = self.validate(password)
        if not is_valid:
            raise PasswordValidationError(errors=errors)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def generate_secure_token(length: int = 32) -> str:
    """
    Generate a cryptographically secure random token.

    Args:
        length: Number of bytes (result will be 2x in hex)

    Returns:
        str: Hex-encoded random token
    """
    return secrets.token_hex(length)


def hash_token(token: str) -> str:
    """SHA-256 digest used to store refresh tokens and session cookies."""
    return hashlib.sha256(token.encode()).hexdigest()


# =============================================================================
# SINGLETON INSTANCES
# =============================================================================

password_manager = PasswordManager()
jwt_manager = JWTManager()
password_validator = PasswordValidator()
