# =============================================================================
# IDENTITY API SCAFFOLD - AUTH REPOSITORY
# =============================================================================
# File: auth/repository.py
# Description: Data access for users, roles, refresh tokens and cookie
#              sessions on top of SQLAlchemy async sessions
# =============================================================================

from typing import Optional, List
from datetime import datetime, timedelta

from sqlalchemy import select, update, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import ApplicationUser, Role, RefreshToken, UserSession
from core.config import settings
from utils.helpers import utc_now


class UserRepository:
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    USER REPOSITORY                                       │
    │  Data access layer for ApplicationUser                                  │
    │  Email and username lookups are case-insensitive                        │
    └─────────────────────────────────────────────────────────────────────────┘

    The repository flushes but never commits; the request-scoped session
    owns the transaction.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    # =========================================================================
    # CREATE OPERATIONS
    # =========================================================================

    async def create(
        self,
        email: str,
        username: str,
        password_hash: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email_confirmed: bool = False,
        roles: Optional[List[Role]] = None,
    ) -> ApplicationUser:
        """
        Create a new user.

        Args:
            email: User's email address (stored lowercase)
            username: User's username (stored as given)
            password_hash: Hashed password
            first_name: Optional given name
            last_name: Optional family name
            email_confirmed: Email confirmation status
            roles: Roles granted on creation

        Returns:
            ApplicationUser: Created user entity
        """
        user = ApplicationUser(
            email=email.strip().lower(),
            username=username.strip(),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            email_confirmed=email_confirmed,
            lockout_enabled=settings.lockout_enabled,
            roles=list(roles or []),
        )

        self._session.add(user)
        await self._session.flush()

        return user

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    async def get_by_id(self, user_id: str) -> Optional[ApplicationUser]:
        result = await self._session.execute(
            select(ApplicationUser).where(ApplicationUser.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[ApplicationUser]:
        result = await self._session.execute(
            select(ApplicationUser).where(ApplicationUser.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_by_email_or_username(
        self,
        identifier: str
    ) -> Optional[ApplicationUser]:
        """
        Get user by email or username.

        An exact email match wins over a username that happens to look like
        someone else's email.
        """
        value = identifier.strip().lower()
        result = await self._session.execute(
            select(ApplicationUser).where(
                or_(
                    ApplicationUser.email == value,
                    func.lower(ApplicationUser.username) == value,
                )
            )
        )
        users = list(result.scalars().all())
        for user in users:
            if user.email == value:
                return user
        return users[0] if users else None

    async def exists_email(self, email: str) -> bool:
        result = await self._session.execute(
            select(func.count()).select_from(ApplicationUser).where(
                ApplicationUser.email == email.strip().lower()
            )
        )
        return result.scalar_one() > 0

    async def exists_username(self, username: str) -> bool:
        result = await self._session.execute(
            select(func.count()).select_from(ApplicationUser).where(
                func.lower(ApplicationUser.username) == username.strip().lower()
            )
        )
        return result.scalar_one() > 0

    async def list_active(self) -> List[ApplicationUser]:
        """Active users ordered by username."""
        result = await self._session.execute(
            select(ApplicationUser)
            .where(ApplicationUser.is_active.is_(True))
            .order_by(ApplicationUser.username)
        )
        return list(result.scalars().all())

    # =========================================================================
    # UPDATE OPERATIONS
    # =========================================================================

    async def update(self, user: ApplicationUser, **kwargs) -> ApplicationUser:
        """
        Set the given attributes; ``updated_at`` is stamped on flush.

        Raises:
            AttributeError: If an unknown attribute is passed
        """
        for key, value in kwargs.items():
            if not hasattr(user, key):
                raise AttributeError(f"ApplicationUser has no attribute '{key}'")
            setattr(user, key, value)

        await self._session.flush()
        return user

    async def update_password(
        self,
        user: ApplicationUser,
        password_hash: str
    ) -> ApplicationUser:
        user.password_hash = password_hash
        await self._session.flush()
        return user

    async def record_successful_login(self, user: ApplicationUser) -> ApplicationUser:
        """Stamp last login and clear the lockout state."""
        user.last_login = utc_now()
        user.access_failed_count = 0
        user.lockout_end = None

        await self._session.flush()
        return user

    async def record_failed_login(self, user: ApplicationUser) -> bool:
        """
        Count a failed password check.

        When the counter reaches ``max_login_attempts`` the account is locked
        for ``lockout_duration_minutes`` and the counter starts over.

        Returns:
            bool: True if this failure locked the account
        """
        if not (settings.lockout_enabled and user.lockout_enabled):
            return False

        user.access_failed_count += 1
        locked = False

        if user.access_failed_count >= settings.max_login_attempts:
            user.lockout_end = utc_now() + timedelta(minutes=settings.lockout_duration_minutes)
            user.access_failed_count = 0
            locked = True

        await self._session.flush()
        return locked

    async def deactivate(self, user: ApplicationUser) -> ApplicationUser:
        user.is_active = False
        await self._session.flush()
        return user

    async def add_role(self, user: ApplicationUser, role: Role) -> ApplicationUser:
        user.roles.append(role)
        await self._session.flush()
        return user

    async def remove_role(self, user: ApplicationUser, role: Role) -> ApplicationUser:
        user.roles.remove(role)
        await self._session.flush()
        return user


class RoleRepository:
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    ROLE REPOSITORY                                       │
    │  Case-insensitive role lookup and creation                              │
    └─────────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_name(self, name: str) -> Optional[Role]:
        result = await self._session.execute(
            select(Role).where(Role.normalized_name == Role.normalize(name))
        )
        return result.scalar_one_or_none()

    async def create(self, name: str) -> Role:
        role = Role(name=name.strip(), normalized_name=Role.normalize(name))
        self._session.add(role)
        await self._session.flush()
        return role

    async def get_or_create(self, name: str) -> tuple[Role, bool]:
        """
        Returns:
            tuple[Role, bool]: (role, created)
        """
        role = await self.get_by_name(name)
        if role is not None:
            return role, False
        return await self.create(name), True


class RefreshTokenRepository:
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    REFRESH TOKEN REPOSITORY                              │
    │  Hash-only storage of refresh tokens with rotation bookkeeping          │
    └─────────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(
        self,
        user_id: str,
        token_hash: str,
        jti: str,
        expires_at: datetime,
    ) -> RefreshToken:
        token = RefreshToken(
            user_id=user_id,
            token_hash=token_hash,
            jti=jti,
            expires_at=expires_at,
        )

        self._session.add(token)
        await self._session.flush()

        return token

    async def get_by_hash(self, token_hash: str) -> Optional[RefreshToken]:
        """Stored token by hash, ignoring soft-deleted rows."""
        result = await self._session.execute(
            select(RefreshToken).where(
                RefreshToken.token_hash == token_hash,
                RefreshToken.is_deleted.is_(False),
            )
        )
        return result.scalar_one_or_none()

    async def revoke(
        self,
        token: RefreshToken,
        replaced_by_hash: Optional[str] = None,
    ) -> RefreshToken:
        token.revoked_at = utc_now()
        token.replaced_by_hash = replaced_by_hash
        await self._session.flush()
        return token

    async def revoke_all_for_user(self, user_id: str) -> int:
        """Revoke every live refresh token of a user."""
        result = await self._session.execute(
            update(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.revoked_at.is_(None),
            )
            .values(revoked_at=utc_now(), updated_at=utc_now())
            .execution_options(synchronize_session="fetch")
        )
        await self._session.flush()
        return result.rowcount

    async def purge_expired_for_user(self, user_id: str) -> int:
        """Soft-delete expired refresh tokens of a user."""
        result = await self._session.execute(
            select(RefreshToken).where(
                RefreshToken.user_id == user_id,
                RefreshToken.is_deleted.is_(False),
                RefreshToken.expires_at < utc_now(),
            )
        )
        tokens = list(result.scalars().all())
        for token in tokens:
            token.soft_delete()

        await self._session.flush()
        return len(tokens)


class SessionRepository:
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    SESSION REPOSITORY                                    │
    │  Data access layer for cookie sessions                                  │
    └─────────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(
        self,
        user_id: str,
        token_hash: str,
        expires_at: datetime,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        device_info: Optional[dict] = None,
        is_persistent: bool = False,
    ) -> UserSession:
        session_obj = UserSession(
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent[:512] if user_agent else None,
            device_info=device_info or {},
            is_persistent=is_persistent,
        )

        self._session.add(session_obj)
        await self._session.flush()

        return session_obj

    async def get_by_token_hash(self, token_hash: str) -> Optional[UserSession]:
        result = await self._session.execute(
            select(UserSession).where(UserSession.token_hash == token_hash)
        )
        return result.scalar_one_or_none()

    async def update_activity(self, session_obj: UserSession) -> UserSession:
        session_obj.last_activity = utc_now()
        await self._session.flush()
        return session_obj

    async def revoke(self, session_obj: UserSession) -> UserSession:
        session_obj.is_active = False
        await self._session.flush()
        return session_obj

    async def revoke_all_for_user(self, user_id: str) -> int:
        result = await self._session.execute(
            update(UserSession)
            .where(
                UserSession.user_id == user_id,
                UserSession.is_active.is_(True),
            )
            .values(is_active=False, updated_at=utc_now())
            .execution_options(synchronize_session="fetch")
        )
        await self._session.flush()
        return result.rowcount
