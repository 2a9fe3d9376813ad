# =============================================================================
# IDENTITY API SCAFFOLD - DATABASE SEEDER
# =============================================================================
# File: db/seeder.py
# Description: Ensures the built-in roles and the initial administrator exist
# =============================================================================

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from auth.repository import UserRepository, RoleRepository
from core.config import settings
from core.security import password_manager, password_validator
from utils.helpers import mask_email


logger = logging.getLogger(__name__)


async def seed_database(session: AsyncSession) -> None:
    """
    Create the default and admin roles, then the configured admin account.

    Safe to run on every startup. An account already holding the admin
    email is given the admin role if it lacks it; nothing else about it
    changes. A seed that cannot be created (user name taken, password
    rejected by the policy) is logged and skipped so startup continues.
    """
    role_repo = RoleRepository(session)
    user_repo = UserRepository(session)

    roles = {}
    for name in (settings.default_role, settings.admin_role):
        roles[name], created = await role_repo.get_or_create(name)
        if created:
            logger.info("Seeded role: %s", name)

    if not settings.seed_admin:
        return

    admin_role = roles[settings.admin_role]
    existing = await user_repo.get_by_email(settings.admin_email)
    if existing is not None:
        if not existing.has_role(settings.admin_role):
            await user_repo.add_role(existing, admin_role)
            logger.info("Granted %s role to %s", admin_role.name, mask_email(existing.email))
        return

    if await user_repo.exists_username(settings.admin_username):
        logger.error(
            "Failed to create admin user: username %r is already taken",
            settings.admin_username,
        )
        return

    is_valid, errors = password_validator.validate(settings.admin_password)
    if not is_valid:
        logger.error("Failed to create admin user: %s", "; ".join(errors))
        return

    await user_repo.create(
        email=settings.admin_email,
        username=settings.admin_username,
        password_hash=password_manager.hash_password(settings.admin_password),
        first_name=settings.admin_first_name,
        last_name=settings.admin_last_name,
        email_confirmed=True,
        roles=[admin_role, roles[settings.default_role]],
    )
    logger.info("Seeded admin user: %s", mask_email(settings.admin_email))
