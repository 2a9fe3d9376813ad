# =============================================================================
# IDENTITY API SCAFFOLD - COOKIE SESSION MANAGER
# =============================================================================
# File: session/manager.py
# Description: Cookie session lifecycle (issue, validate, revoke) and the
#              helpers writing the session cookie onto responses
# =============================================================================

from typing import Optional
from datetime import datetime, timedelta
import logging

from fastapi import Response
from sqlalchemy.ext.asyncio import AsyncSession

from auth.repository import SessionRepository
from db.models import ApplicationUser, UserSession
from core.config import settings
from core.exceptions import SessionInvalidError
from core.security import generate_secure_token, hash_token
from utils.helpers import utc_now, parse_user_agent


logger = logging.getLogger(__name__)


class SessionManager:
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    SESSION MANAGER                                       │
    │  Server-side cookie sessions backed by the user_sessions table          │
    └─────────────────────────────────────────────────────────────────────────┘

    Session Flow:
        1. Create:   random token handed to the browser, SHA-256 stored
        2. Validate: hash lookup, must be active and unexpired
        3. Touch:    last_activity updated on each authenticated request
        4. Revoke:   marked inactive on sign-out
    """

    def __init__(self, db_session: AsyncSession):
        self._session_repo = SessionRepository(db_session)

    async def create_session(
        self,
        user: ApplicationUser,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        remember_me: bool = False,
    ) -> tuple[str, UserSession]:
        """
        Create a new cookie session for user.

        Args:
            user: Authenticated user
            ip_address: Client IP address
            user_agent: Client user agent
            remember_me: Persistent cookie with the extended lifetime

        Returns:
            tuple[str, UserSession]: (raw cookie token, stored session)
        """
        token = generate_secure_token()

        if remember_me:
            expires_at = utc_now() + timedelta(days=settings.session_remember_me_days)
        else:
            expires_at = utc_now() + timedelta(hours=settings.session_expire_hours)

        session_obj = await self._session_repo.create(
            user_id=user.id,
            token_hash=hash_token(token),
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
            device_info=parse_user_agent(user_agent),
            is_persistent=remember_me,
        )

        return token, session_obj

    async def validate_session(self, token: str) -> UserSession:
        """
        Resolve a cookie token to its live session and touch it.

        Raises:
            SessionInvalidError: If unknown, revoked or expired
        """
        session_obj = await self._session_repo.get_by_token_hash(hash_token(token))

        if session_obj is None or not session_obj.is_valid:
            raise SessionInvalidError()

        await self._session_repo.update_activity(session_obj)
        return session_obj

    async def revoke_session(self, token: str) -> bool:
        """
        Sign a cookie session out.

        Returns:
            bool: True if a live session was revoked
        """
        session_obj = await self._session_repo.get_by_token_hash(hash_token(token))
        if session_obj is None or not session_obj.is_active:
            return False

        await self._session_repo.revoke(session_obj)
        return True

    async def revoke_all_sessions(self, user_id: str) -> int:
        revoked = await self._session_repo.revoke_all_for_user(user_id)
        if revoked:
            logger.info("Revoked %d cookie sessions for user %s", revoked, user_id)
        return revoked


# =============================================================================
# COOKIE HELPERS
# =============================================================================

def set_session_cookie(
    response: Response,
    token: str,
    expires_at: datetime,
    persistent: bool,
) -> None:
    """
    Write the HttpOnly session cookie.

    Non-persistent sessions get a browser-session cookie (no Max-Age); the
    server-side expiry still applies.
    """
    max_age = None
    if persistent:
        max_age = int((expires_at - utc_now()).total_seconds())

    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=max_age,
        secure=settings.cookie_secure,
        httponly=True,
        samesite=settings.session_cookie_samesite,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        settings.session_cookie_name,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite=settings.session_cookie_samesite,
    )
