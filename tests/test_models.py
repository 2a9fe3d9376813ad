# =============================================================================
# IDENTITY API SCAFFOLD - PERSISTENCE TESTS
# =============================================================================
# File: tests/test_models.py
# Description: Audit stamping, soft delete, repositories, cookie sessions and
#              the seeder against an in-memory SQLite database
# =============================================================================

from datetime import timedelta

import pytest
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from auth.repository import (
    UserRepository,
    RoleRepository,
    RefreshTokenRepository,
)
from db.models import ApplicationUser, Role
from db.seeder import seed_database
from session.manager import SessionManager
from core.config import settings
from core.exceptions import SessionInvalidError
from utils.helpers import utc_now, parse_user_agent, mask_email


async def _make_user(session: AsyncSession, email: str = "Dana@Example.com") -> ApplicationUser:
    return await UserRepository(session).create(
        email=email,
        username="dana",
        password_hash="not-a-real-hash",
    )


class TestAuditStamping:
    """BaseEntity / AuditMixin fields maintained on flush."""

    @pytest.mark.asyncio
    async def test_created_at_stamped_on_insert(self, db_session: AsyncSession):
        user = await _make_user(db_session)

        assert user.created_at is not None
        assert user.updated_at is None
        assert user.email == "dana@example.com"

    @pytest.mark.asyncio
    async def test_updated_at_stamped_on_change(self, db_session: AsyncSession):
        user = await _make_user(db_session)

        await UserRepository(db_session).update(user, first_name="Dana")

        assert user.updated_at is not None
        assert user.updated_at >= user.created_at

    @pytest.mark.asyncio
    async def test_collection_change_does_not_stamp(self, db_session: AsyncSession):
        user = await _make_user(db_session)
        role, _ = await RoleRepository(db_session).get_or_create("Editor")

        await UserRepository(db_session).add_role(user, role)

        assert user.has_role("editor")
        assert user.updated_at is None

    @pytest.mark.asyncio
    async def test_soft_delete_hides_refresh_token(self, db_session: AsyncSession):
        user = await _make_user(db_session)
        repo = RefreshTokenRepository(db_session)
        token = await repo.create(
            user_id=user.id,
            token_hash="a" * 64,
            jti="jti-1",
            expires_at=utc_now() + timedelta(days=1),
        )
        assert token.is_deleted is False
        assert token.is_valid is True

        token.soft_delete()
        await db_session.flush()

        assert token.updated_at is not None
        assert await repo.get_by_hash("a" * 64) is None


class TestRefreshTokenRepository:

    @pytest.mark.asyncio
    async def test_revoke_all_for_user(self, db_session: AsyncSession):
        user = await _make_user(db_session)
        repo = RefreshTokenRepository(db_session)
        for i in range(3):
            await repo.create(user.id, f"{i}" * 64, f"jti-{i}", utc_now() + timedelta(days=1))

        revoked = await repo.revoke_all_for_user(user.id)

        assert revoked == 3
        stored = await repo.get_by_hash("0" * 64)
        assert stored.is_revoked is True
        assert stored.is_valid is False

    @pytest.mark.asyncio
    async def test_purge_expired_for_user(self, db_session: AsyncSession):
        user = await _make_user(db_session)
        repo = RefreshTokenRepository(db_session)
        await repo.create(user.id, "e" * 64, "jti-old", utc_now() - timedelta(minutes=1))
        await repo.create(user.id, "f" * 64, "jti-new", utc_now() + timedelta(days=1))

        purged = await repo.purge_expired_for_user(user.id)

        assert purged == 1
        assert await repo.get_by_hash("e" * 64) is None
        assert await repo.get_by_hash("f" * 64) is not None


class TestUserRepository:

    @pytest.mark.asyncio
    async def test_lookup_is_case_insensitive(self, db_session: AsyncSession):
        user = await _make_user(db_session)
        repo = UserRepository(db_session)

        assert (await repo.get_by_email_or_username("DANA@example.com")).id == user.id
        assert (await repo.get_by_email_or_username("DANA")).id == user.id
        assert await repo.exists_username("Dana") is True

    @pytest.mark.asyncio
    async def test_failed_logins_lock_account(self, db_session: AsyncSession):
        user = await _make_user(db_session)
        repo = UserRepository(db_session)

        results = [await repo.record_failed_login(user) for _ in range(settings.max_login_attempts)]

        assert results[-1] is True
        assert not any(results[:-1])
        assert user.is_locked_out is True
        assert user.access_failed_count == 0

        await repo.record_successful_login(user)
        assert user.is_locked_out is False
        assert user.last_login is not None


class TestSessionManager:
    """Cookie session lifecycle."""

    @pytest.mark.asyncio
    async def test_create_and_validate(self, db_session: AsyncSession):
        user = await _make_user(db_session)
        manager = SessionManager(db_session)

        token, session_obj = await manager.create_session(
            user,
            ip_address="10.0.0.1",
            user_agent="Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Safari/604.1",
        )

        assert session_obj.token_hash != token
        assert session_obj.device_info["os"] == "iOS"
        assert session_obj.is_persistent is False

        validated = await manager.validate_session(token)
        assert validated.id == session_obj.id

    @pytest.mark.asyncio
    async def test_remember_me_lifetime(self, db_session: AsyncSession):
        user = await _make_user(db_session)

        _, session_obj = await SessionManager(db_session).create_session(user, remember_me=True)

        assert session_obj.is_persistent is True
        assert session_obj.expires_at - utc_now() > timedelta(hours=settings.session_expire_hours)

    @pytest.mark.asyncio
    async def test_revoked_and_expired_sessions_rejected(self, db_session: AsyncSession):
        user = await _make_user(db_session)
        manager = SessionManager(db_session)

        revoked_token, _ = await manager.create_session(user)
        assert await manager.revoke_session(revoked_token) is True
        assert await manager.revoke_session(revoked_token) is False

        with pytest.raises(SessionInvalidError):
            await manager.validate_session(revoked_token)

        expired_token, expired = await manager.create_session(user)
        expired.expires_at = utc_now() - timedelta(minutes=1)
        await db_session.flush()

        with pytest.raises(SessionInvalidError):
            await manager.validate_session(expired_token)

        with pytest.raises(SessionInvalidError):
            await manager.validate_session("unknown-token")


class TestSeeder:

    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, db_session: AsyncSession):
        await seed_database(db_session)
        await seed_database(db_session)

        names = await db_session.execute(select(Role.name))
        assert sorted(names.scalars().all()) == sorted([settings.admin_role, settings.default_role])

        count = await db_session.execute(
            select(func.count()).select_from(ApplicationUser).where(
                ApplicationUser.email == settings.admin_email
            )
        )
        assert count.scalar_one() == 1

        admin = await UserRepository(db_session).get_by_email(settings.admin_email)
        assert admin.email_confirmed is True
        assert admin.has_role(settings.admin_role)
        assert admin.has_role(settings.default_role)

    @pytest.mark.asyncio
    async def test_seed_keeps_existing_roles(self, db_session: AsyncSession):
        await RoleRepository(db_session).create(settings.default_role)

        await seed_database(db_session)

        count = await db_session.execute(select(func.count()).select_from(Role))
        assert count.scalar_one() == 2

    @pytest.mark.asyncio
    async def test_existing_account_gains_admin_role(self, db_session: AsyncSession, monkeypatch):
        monkeypatch.setattr(settings, "admin_email", "dana@example.com")
        user = await _make_user(db_session)

        await seed_database(db_session)

        assert user.has_role(settings.admin_role)
        assert user.password_hash == "not-a-real-hash"

    @pytest.mark.asyncio
    async def test_username_conflict_skips_admin(self, db_session: AsyncSession, monkeypatch):
        monkeypatch.setattr(settings, "admin_username", "dana")
        await _make_user(db_session, email="someone-else@example.com")

        await seed_database(db_session)

        assert await UserRepository(db_session).get_by_email(settings.admin_email) is None
        names = await db_session.execute(select(Role.name))
        assert len(names.scalars().all()) == 2

    @pytest.mark.asyncio
    async def test_weak_admin_password_skips_admin(self, db_session: AsyncSession, monkeypatch):
        monkeypatch.setattr(settings, "admin_password", "short")

        await seed_database(db_session)

        assert await UserRepository(db_session).get_by_email(settings.admin_email) is None


class TestHelpers:

    def test_parse_user_agent(self):
        info = parse_user_agent(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
        )

        assert info == {"browser": "Chrome", "os": "Windows", "device": "desktop"}
        assert parse_user_agent(None)["device"] == "unknown"

    def test_mask_email(self):
        assert mask_email("alice@example.com") == "a***@example.com"
