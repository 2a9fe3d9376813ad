# =============================================================================
# IDENTITY API SCAFFOLD - DATABASE FACTORY
# =============================================================================
# File: db/factory.py
# Description: Singleton access to the configured database and Redis adapters
#              plus the FastAPI dependencies that hand them to requests
# =============================================================================

from typing import Optional, AsyncGenerator
from enum import Enum
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from db.base import BaseDBAdapter
from db.adapters.sqlite_adapter import SQLiteAdapter
from db.adapters.postgres_adapter import PostgresAdapter
from db.adapters.redis_adapter import RedisAdapter
from core.config import settings
from core.exceptions import RedisConnectionError


logger = logging.getLogger(__name__)


class DatabaseType(str, Enum):
    """Supported database types."""
    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class DBFactory:
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    DATABASE FACTORY                                      │
    │  Creates and caches the database and Redis adapters                     │
    │  Supports switching between SQLite and PostgreSQL via settings.db_type  │
    └─────────────────────────────────────────────────────────────────────────┘

    Tests pre-seed ``_db_adapter`` / ``_redis_adapter`` (in-memory SQLite,
    fakeredis) before the application starts; the lifespan then reuses them.

    Usage:
        db = DBFactory.get_db_adapter()
        await db.connect()
    """

    # Singleton instances
    _db_adapter: Optional[BaseDBAdapter] = None
    _redis_adapter: Optional[RedisAdapter] = None

    @classmethod
    def get_db_adapter(
        cls,
        db_type: Optional[str] = None,
        force_new: bool = False,
        **kwargs
    ) -> BaseDBAdapter:
        """
        Get database adapter based on configuration or specified type.

        Args:
            db_type: Override database type (sqlite/postgresql)
                     Defaults to settings.db_type
            force_new: Force creation of new adapter instance
            **kwargs: Additional options passed to adapter

        Returns:
            BaseDBAdapter: Configured database adapter

        Raises:
            ValueError: If unsupported database type specified
        """
        if not force_new and cls._db_adapter is not None:
            return cls._db_adapter

        selected_type = DatabaseType(db_type or settings.db_type)

        if selected_type is DatabaseType.SQLITE:
            adapter: BaseDBAdapter = SQLiteAdapter(**kwargs)
        elif selected_type is DatabaseType.POSTGRESQL:
            adapter = PostgresAdapter(**kwargs)
        else:
            raise ValueError(f"Unsupported database type: {selected_type}")

        if not force_new:
            cls._db_adapter = adapter

        return adapter

    @classmethod
    def get_redis_adapter(cls) -> Optional[RedisAdapter]:
        """
        Get the Redis adapter, or None when Redis is disabled/unavailable.
        """
        if cls._redis_adapter is None and settings.redis_enabled:
            cls._redis_adapter = RedisAdapter()
        return cls._redis_adapter

    @classmethod
    async def connect_all(cls) -> None:
        """
        Connect the database and, when enabled, Redis.

        Outside production an unreachable Redis is non-fatal: the denylist
        and rate limiter are simply switched off.
        """
        db_adapter = cls.get_db_adapter()
        await db_adapter.connect()
        logger.info("Database connection established (%s)", settings.db_type)

        redis_adapter = cls.get_redis_adapter()
        if redis_adapter is None:
            logger.info("Redis disabled; token denylist and rate limiting are off")
            return

        try:
            await redis_adapter.connect()
            logger.info("Redis connection established")
        except RedisConnectionError:
            if settings.is_production:
                raise
            logger.warning("Redis unavailable (optional outside production)")
            cls._redis_adapter = None

    @classmethod
    async def disconnect_all(cls) -> None:
        if cls._db_adapter:
            await cls._db_adapter.disconnect()
            cls._db_adapter = None

        if cls._redis_adapter:
            await cls._redis_adapter.disconnect()
            cls._redis_adapter = None

    @classmethod
    async def create_tables(cls) -> None:
        await cls.get_db_adapter().create_tables()

    @classmethod
    async def health_check(cls) -> dict:
        """
        Check health of all connections.

        Returns:
            Dict with health status of each component. Redis is reported as
            None when it is not configured.
        """
        results: dict = {"database": False, "redis": None}

        if cls._db_adapter:
            try:
                results["database"] = await cls._db_adapter.check_health()
            except Exception:
                logger.exception("Database health check failed")

        if cls._redis_adapter:
            try:
                results["redis"] = await cls._redis_adapter.check_health()
            except Exception:
                logger.exception("Redis health check failed")
                results["redis"] = False

        return results

    @classmethod
    def reset(cls) -> None:
        """Forget the singleton instances (testing)."""
        cls._db_adapter = None
        cls._redis_adapter = None


# =============================================================================
# FASTAPI DEPENDENCIES
# =============================================================================

async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped database session; commits when the endpoint returns.

    Usage:
        @app.get("/users")
        async def get_users(session: AsyncSession = Depends(get_db_session)):
            ...
    """
    adapter = DBFactory.get_db_adapter()
    async with adapter.get_session() as session:
        yield session


async def get_redis() -> Optional[RedisAdapter]:
    """Redis adapter for the request, None when Redis is off."""
    return DBFactory._redis_adapter
