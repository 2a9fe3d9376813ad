# =============================================================================
# IDENTITY API SCAFFOLD - AUTH SERVICE
# =============================================================================
# File: auth/service.py
# Description: Registration, login (JWT and cookie), token refresh and logout
#              orchestrating repositories, security helpers and sessions
# =============================================================================

from typing import Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from auth.repository import (
    UserRepository,
    RoleRepository,
    RefreshTokenRepository,
)
from auth.schemas import (
    RegisterRequest,
    LoginRequest,
    AuthResponse,
    UserDto,
)
from db.adapters.redis_adapter import RedisAdapter
from db.models import ApplicationUser, UserSession
from session.manager import SessionManager
from session.storage import TokenDenylist
from core.security import (
    TokenPayload,
    password_manager,
    jwt_manager,
    password_validator,
    hash_token,
)
from core.config import settings
from core.exceptions import (
    InvalidCredentialsError,
    AccountDeactivatedError,
    AccountLockedError,
    UserExistsError,
    TokenInvalidError,
    TokenExpiredError,
    TokenRevokedError,
)
from utils.helpers import mask_email, mask_ip, ensure_utc


logger = logging.getLogger(__name__)


class AuthService:
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    AUTHENTICATION SERVICE                                │
    │  Credential checks, lockout, token issuance and sign-out                │
    └─────────────────────────────────────────────────────────────────────────┘

    Responsibilities:
        - User registration with password policy and default role
        - Login by email or user name with lockout after repeated failures
        - Access/refresh token issuance and refresh token rotation
        - Cookie session sign-in / sign-out
        - Logout (refresh token revocation, access token denylist)
    """

    def __init__(self, session: AsyncSession, redis: Optional[RedisAdapter] = None):
        """
        Args:
            session: SQLAlchemy async session (request scoped)
            redis: Redis adapter for the access token denylist, if available
        """
        self._session = session
        self._user_repo = UserRepository(session)
        self._role_repo = RoleRepository(session)
        self._token_repo = RefreshTokenRepository(session)
        self._sessions = SessionManager(session)
        self._denylist = TokenDenylist(redis)

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    async def register(
        self,
        data: RegisterRequest,
        ip_address: Optional[str] = None,
    ) -> AuthResponse:
        """
        Register a new user and sign them in.

        Args:
            data: Registration payload
            ip_address: Client IP, for the audit log line

        Returns:
            AuthResponse: Access token, refresh token and the new user

        Raises:
            UserExistsError: Email or user name already taken
            PasswordValidationError: Password breaks the policy
        """
        username = data.effective_username

        if await self._user_repo.exists_email(data.email):
            raise UserExistsError("email")

        if await self._user_repo.exists_username(username):
            raise UserExistsError("username")

        password_validator.ensure_valid(data.password)

        default_role, _ = await self._role_repo.get_or_create(settings.default_role)

        user = await self._user_repo.create(
            email=data.email,
            username=username,
            password_hash=password_manager.hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            roles=[default_role],
        )

        logger.info("User registered: %s from %s", mask_email(user.email), mask_ip(ip_address))

        return await self._issue_tokens(user, remember_me=False, message="Registration successful")

    # =========================================================================
    # LOGIN
    # =========================================================================

    async def login(
        self,
        data: LoginRequest,
        ip_address: Optional[str] = None,
    ) -> AuthResponse:
        """
        Authenticate with email/user name and password.

        Returns:
            AuthResponse: Tokens and user; the access token lives longer when
                          ``remember_me`` is set

        Raises:
            InvalidCredentialsError: Unknown user or wrong password
            AccountDeactivatedError: Account deactivated
            AccountLockedError: Lockout window running, or this failure
                                triggered it
        """
        user = await self._authenticate(data)
        await self._token_repo.purge_expired_for_user(user.id)

        logger.info("Login successful: %s from %s", mask_email(user.email), mask_ip(ip_address))

        return await self._issue_tokens(user, remember_me=data.remember_me, message="Login successful")

    async def _authenticate(self, data: LoginRequest) -> ApplicationUser:
        """
        Credential check shared by JWT and cookie logins.

        Failed attempts are committed before raising so the lockout counter
        survives the request rollback.
        """
        user = await self._user_repo.get_by_email_or_username(data.email_or_username)

        if user is None:
            logger.warning("Login failed: unknown account")
            raise InvalidCredentialsError()

        if not user.is_active:
            logger.warning("Login refused, account deactivated: %s", mask_email(user.email))
            raise AccountDeactivatedError()

        if user.is_locked_out:
            logger.warning("Login refused, account locked: %s", mask_email(user.email))
            raise AccountLockedError(ensure_utc(user.lockout_end).isoformat())

        is_valid, needs_rehash = password_manager.verify_password(data.password, user.password_hash)

        if not is_valid:
            locked = await self._user_repo.record_failed_login(user)
            await self._session.commit()

            if locked:
                logger.warning(
                    "Account locked after %d failed attempts: %s",
                    settings.max_login_attempts,
                    mask_email(user.email),
                )
                raise AccountLockedError(ensure_utc(user.lockout_end).isoformat())

            logger.warning("Login failed: wrong password for %s", mask_email(user.email))
            raise InvalidCredentialsError()

        if needs_rehash:
            await self._user_repo.update_password(user, password_manager.hash_password(data.password))

        await self._user_repo.record_successful_login(user)
        return user

    # =========================================================================
    # TOKEN OPERATIONS
    # =========================================================================

    async def _issue_tokens(
        self,
        user: ApplicationUser,
        remember_me: bool,
        message: str,
    ) -> AuthResponse:
        access = jwt_manager.create_access_token(
            user_id=user.id,
            email=user.email,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            roles=user.role_names,
            remember_me=remember_me,
        )
        refresh = jwt_manager.create_refresh_token(user.id)

        await self._token_repo.create(
            user_id=user.id,
            token_hash=hash_token(refresh.token),
            jti=refresh.jti,
            expires_at=refresh.expires_at,
        )

        return AuthResponse(
            message=message,
            token=access.token,
            refresh_token=refresh.token,
            expiration=access.expires_at,
            user=UserDto.from_user(user),
        )

    async def refresh(self, refresh_token: str) -> AuthResponse:
        """
        Exchange a refresh token for a new token pair (rotation).

        Presenting an already rotated or revoked token revokes every refresh
        token of its owner.

        Raises:
            TokenExpiredError: Refresh token expired
            TokenInvalidError: Malformed, wrong type or unknown token
            TokenRevokedError: Token already used or revoked
            AccountDeactivatedError: Owner was deactivated
        """
        payload = jwt_manager.verify_token(refresh_token, expected_type="refresh")

        stored = await self._token_repo.get_by_hash(hash_token(refresh_token))
        if stored is None or stored.user_id != payload.sub:
            raise TokenInvalidError()

        if stored.is_revoked:
            await self._token_repo.revoke_all_for_user(stored.user_id)
            await self._session.commit()
            logger.warning("Refresh token reuse detected for user %s", stored.user_id)
            raise TokenRevokedError()

        if stored.is_expired:
            raise TokenExpiredError()

        user = await self._user_repo.get_by_id(payload.sub)
        if user is None:
            raise TokenInvalidError()
        if not user.is_active:
            raise AccountDeactivatedError()

        response = await self._issue_tokens(user, remember_me=False, message="Token refreshed successfully")
        await self._token_repo.revoke(stored, replaced_by_hash=hash_token(response.refresh_token))

        return response

    # =========================================================================
    # LOGOUT
    # =========================================================================

    async def logout(self, user: ApplicationUser, token: Optional[TokenPayload] = None) -> None:
        """
        Revoke the user's refresh tokens and deny the presented access token.

        Args:
            user: Authenticated user
            token: Access token payload when the caller used a bearer token
        """
        revoked = await self._token_repo.revoke_all_for_user(user.id)

        if token is not None:
            await self._denylist.revoke(token.jti, jwt_manager.get_remaining_ttl(token))

        logger.info("Logout: %s (%d refresh tokens revoked)", mask_email(user.email), revoked)

    # =========================================================================
    # COOKIE SESSIONS
    # =========================================================================

    async def cookie_login(
        self,
        data: LoginRequest,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> tuple[AuthResponse, str, UserSession]:
        """
        Authenticate and open a cookie session.

        Returns:
            tuple: (AuthResponse without tokens, raw cookie token, session)
        """
        user = await self._authenticate(data)

        cookie_token, session_obj = await self._sessions.create_session(
            user,
            ip_address=ip_address,
            user_agent=user_agent,
            remember_me=data.remember_me,
        )

        logger.info("Cookie login successful: %s from %s", mask_email(user.email), mask_ip(ip_address))

        response = AuthResponse(
            message="Login successful",
            expiration=ensure_utc(session_obj.expires_at),
            user=UserDto.from_user(user),
        )
        return response, cookie_token, session_obj

    async def cookie_logout(self, cookie_token: Optional[str]) -> bool:
        """Revoke the cookie session, if any. Returns True if one was live."""
        if not cookie_token:
            return False
        return await self._sessions.revoke_session(cookie_token)
