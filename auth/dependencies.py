# =============================================================================
# IDENTITY API SCAFFOLD - AUTH DEPENDENCIES
# =============================================================================
# File: auth/dependencies.py
# Description: FastAPI dependencies resolving the caller (bearer token or
#              session cookie), role checks and service construction
# =============================================================================

from typing import Optional, Annotated, Callable
from fastapi import Depends, Header, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from sqlalchemy.ext.asyncio import AsyncSession

from db.factory import get_db_session, get_redis
from db.adapters.redis_adapter import RedisAdapter
from db.models import ApplicationUser
from auth.repository import UserRepository
from auth.service import AuthService
from auth.user_service import UserService
from session.manager import SessionManager
from session.storage import TokenDenylist
from core.security import jwt_manager, TokenPayload
from core.config import settings
from core.exceptions import (
    TokenMissingError,
    TokenInvalidError,
    TokenRevokedError,
    SessionInvalidError,
    AccountDeactivatedError,
    InsufficientPermissionsError,
)


# =============================================================================
# SECURITY SCHEME
# =============================================================================

bearer_scheme = HTTPBearer(
    scheme_name="Bearer",
    description="JWT access token",
    auto_error=False,
)


# =============================================================================
# INFRASTRUCTURE DEPENDENCIES
# =============================================================================

DBSession = Annotated[AsyncSession, Depends(get_db_session)]
RedisDep = Annotated[Optional[RedisAdapter], Depends(get_redis)]


# =============================================================================
# SERVICE DEPENDENCIES
# =============================================================================

async def get_auth_service(session: DBSession, redis: RedisDep) -> AuthService:
    return AuthService(session, redis)


async def get_user_service(session: DBSession) -> UserService:
    return UserService(session)


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]


# =============================================================================
# REQUEST CONTEXT
# =============================================================================

def get_client_ip(request: Request) -> str:
    """
    Extract client IP from request.

    Handles proxy headers (X-Forwarded-For, X-Real-IP).
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First hop is the original client
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else "unknown"


def get_user_agent(
    user_agent: Optional[str] = Header(None, alias="User-Agent"),
) -> Optional[str]:
    return user_agent


ClientIP = Annotated[str, Depends(get_client_ip)]
UserAgent = Annotated[Optional[str], Depends(get_user_agent)]


# =============================================================================
# CALLER RESOLUTION
# =============================================================================

class AuthContext:
    """
    The authenticated caller and how they proved it.

    Exactly one of ``token`` (bearer access token) or ``session_token``
    (raw cookie value) is set.
    """

    def __init__(
        self,
        user: ApplicationUser,
        token: Optional[TokenPayload] = None,
        session_token: Optional[str] = None,
    ):
        self.user = user
        self.token = token
        self.session_token = session_token

    @property
    def via_cookie(self) -> bool:
        return self.session_token is not None


async def get_auth_context(
    request: Request,
    session: DBSession,
    redis: RedisDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthContext:
    """
    Resolve the caller from the Authorization header, else the session cookie.

    Raises:
        TokenMissingError: Neither credential present
        TokenExpiredError: Access token expired
        TokenInvalidError: Malformed token or unknown subject
        TokenRevokedError: Access token signed out
        SessionInvalidError: Cookie session unknown, revoked or expired
        AccountDeactivatedError: User deactivated
    """
    user_repo = UserRepository(session)

    if credentials is not None:
        payload = jwt_manager.verify_token(credentials.credentials, expected_type="access")

        if await TokenDenylist(redis).is_revoked(payload.jti):
            raise TokenRevokedError()

        user = await user_repo.get_by_id(payload.sub)
        if user is None:
            raise TokenInvalidError("User no longer exists")
        if not user.is_active:
            raise AccountDeactivatedError()

        return AuthContext(user=user, token=payload)

    cookie_token = request.cookies.get(settings.session_cookie_name)
    if cookie_token:
        session_obj = await SessionManager(session).validate_session(cookie_token)

        user = await user_repo.get_by_id(session_obj.user_id)
        if user is None:
            raise SessionInvalidError()
        if not user.is_active:
            raise AccountDeactivatedError()

        return AuthContext(user=user, session_token=cookie_token)

    raise TokenMissingError()


AuthContextDep = Annotated[AuthContext, Depends(get_auth_context)]


async def get_current_user(context: AuthContextDep) -> ApplicationUser:
    return context.user


CurrentUser = Annotated[ApplicationUser, Depends(get_current_user)]


# =============================================================================
# ROLE CHECKS
# =============================================================================

def require_roles(*role_names: str) -> Callable:
    """
    Build a dependency admitting users holding any of ``role_names``.

    Roles are read from the database, so grants and removals apply to
    tokens already issued.

    Usage:
        @router.get("/reports", dependencies=[Depends(require_roles("Admin"))])
    """
    async def role_checker(user: CurrentUser) -> ApplicationUser:
        if not any(user.has_role(name) for name in role_names):
            raise InsufficientPermissionsError(required_role=", ".join(role_names))
        return user

    return role_checker


AdminUser = Annotated[ApplicationUser, Depends(require_roles(settings.admin_role))]
