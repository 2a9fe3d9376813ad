# =============================================================================
# IDENTITY API SCAFFOLD - USER SERVICE
# =============================================================================
# File: auth/user_service.py
# Description: User profile and administration operations
# =============================================================================

from typing import List
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from auth.repository import (
    UserRepository,
    RoleRepository,
    RefreshTokenRepository,
)
from auth.schemas import UpdateUserRequest, ChangePasswordRequest
from db.models import ApplicationUser
from session.manager import SessionManager
from core.security import password_manager, password_validator
from core.exceptions import (
    UserNotFoundError,
    RoleNotFoundError,
    RoleAssignmentError,
    PasswordMismatchError,
)
from utils.helpers import mask_email


logger = logging.getLogger(__name__)


class UserService:
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    USER SERVICE                                          │
    │  Profile updates, password changes, deactivation and role membership   │
    └─────────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, session: AsyncSession):
        self._session = session
        self._user_repo = UserRepository(session)
        self._role_repo = RoleRepository(session)
        self._token_repo = RefreshTokenRepository(session)
        self._sessions = SessionManager(session)

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def list_users(self) -> List[ApplicationUser]:
        """Active users ordered by user name."""
        return await self._user_repo.list_active()

    async def get_user(self, user_id: str) -> ApplicationUser:
        """
        Raises:
            UserNotFoundError: If no user has this id
        """
        user = await self._user_repo.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    # =========================================================================
    # SELF-SERVICE
    # =========================================================================

    async def update_profile(
        self,
        user: ApplicationUser,
        data: UpdateUserRequest,
    ) -> ApplicationUser:
        """
        Apply the fields present in the request; omitted or null fields are kept.
        """
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if changes:
            await self._user_repo.update(user, **changes)
        return user

    async def change_password(
        self,
        user: ApplicationUser,
        data: ChangePasswordRequest,
    ) -> None:
        """
        Replace the password after checking the current one.

        Existing refresh tokens are revoked so other devices must sign in
        again.

        Raises:
            PasswordMismatchError: Current password is wrong
            PasswordValidationError: New password breaks the policy
        """
        is_valid, _ = password_manager.verify_password(data.current_password, user.password_hash)
        if not is_valid:
            raise PasswordMismatchError()

        password_validator.ensure_valid(data.new_password)

        await self._user_repo.update_password(user, password_manager.hash_password(data.new_password))
        await self._token_repo.revoke_all_for_user(user.id)

        logger.info("Password changed: %s", mask_email(user.email))

    # =========================================================================
    # ADMINISTRATION
    # =========================================================================

    async def deactivate_user(self, user_id: str) -> ApplicationUser:
        """
        Deactivate an account and end its refresh tokens and cookie sessions.
        """
        user = await self.get_user(user_id)
        await self._user_repo.deactivate(user)
        await self._token_repo.revoke_all_for_user(user.id)
        await self._sessions.revoke_all_sessions(user.id)

        logger.info("User deactivated: %s", mask_email(user.email))
        return user

    async def add_role(self, user_id: str, role_name: str) -> ApplicationUser:
        """
        Raises:
            UserNotFoundError: Unknown user
            RoleNotFoundError: Unknown role
            RoleAssignmentError: User already holds the role
        """
        user = await self.get_user(user_id)
        role = await self._role_repo.get_by_name(role_name)
        if role is None:
            raise RoleNotFoundError(role_name)

        if user.has_role(role.name):
            raise RoleAssignmentError(f"User already has role '{role.name}'")

        await self._user_repo.add_role(user, role)
        logger.info("Role %s granted to %s", role.name, mask_email(user.email))
        return user

    async def remove_role(self, user_id: str, role_name: str) -> ApplicationUser:
        """
        Raises:
            UserNotFoundError: Unknown user
            RoleNotFoundError: Unknown role
            RoleAssignmentError: User does not hold the role
        """
        user = await self.get_user(user_id)
        role = await self._role_repo.get_by_name(role_name)
        if role is None:
            raise RoleNotFoundError(role_name)

        if not user.has_role(role.name):
            raise RoleAssignmentError(f"User does not have role '{role.name}'")

        await self._user_repo.remove_role(user, role)
        logger.info("Role %s removed from %s", role.name, mask_email(user.email))
        return user
