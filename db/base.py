# =============================================================================
# IDENTITY API SCAFFOLD - DATABASE BASE MODULE
# =============================================================================
# File: db/base.py
# Description: Declarative base, audit-stamped entity base and the abstract
#              adapter interfaces every database backend conforms to
# =============================================================================

from abc import ABC, abstractmethod
from typing import Any, Optional, AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    AsyncEngine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, Session as OrmSession
from sqlalchemy import MetaData, String, Boolean, DateTime, event, text

from utils.helpers import utc_now, generate_uuid


# =============================================================================
# SQLALCHEMY BASE CONFIGURATION
# =============================================================================

# Naming convention for constraints (important for migrations)
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}

metadata = MetaData(naming_convention=NAMING_CONVENTION)


class Base(DeclarativeBase):
    """
    SQLAlchemy declarative base with custom metadata.
    All ORM models inherit from this base class.
    """
    metadata = metadata


# =============================================================================
# AUDIT STAMPING
# =============================================================================

class AuditMixin:
    """
    Creation / modification timestamps maintained on every flush.

    Any mapped class carrying this mixin gets ``created_at`` stamped when it
    is first inserted and ``updated_at`` stamped whenever one of its column
    attributes changes.
    """
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )


class BaseEntity(AuditMixin, Base):
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    AUDIT-STAMPED ENTITY BASE                             │
    │  UUID primary key, created/updated timestamps and a soft-delete flag    │
    │  CUSTOMIZATION: derive new domain entities from this class              │
    └─────────────────────────────────────────────────────────────────────────┘

    Example:
        class Product(BaseEntity):
            __tablename__ = "products"
            name: Mapped[str] = mapped_column(String(200))
    """
    __abstract__ = True

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    def soft_delete(self) -> None:
        """Flag the entity as deleted; the row is kept."""
        self.is_deleted = True


@event.listens_for(OrmSession, "before_flush")
def _stamp_audit_fields(session: OrmSession, flush_context: Any, instances: Any) -> None:
    now = utc_now()

    for obj in session.new:
        if isinstance(obj, AuditMixin) and obj.created_at is None:
            obj.created_at = now

    for obj in session.dirty:
        if isinstance(obj, AuditMixin) and session.is_modified(obj, include_collections=False):
            obj.updated_at = now


# =============================================================================
# ABSTRACT DATABASE ADAPTER INTERFACE
# =============================================================================

class IDBAdapter(ABC):
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    ABSTRACT DATABASE ADAPTER INTERFACE                   │
    │  Defines the contract that all database implementations must follow     │
    │  Enables switching between SQLite and PostgreSQL through settings       │
    └─────────────────────────────────────────────────────────────────────────┘

    Methods:
        connect()       - Establish database connection
        disconnect()    - Close database connection
        get_session()   - Get async session for operations
        create_tables() - Initialize database schema
        check_health()  - Probe connectivity
    """

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connection to the database.

        Raises:
            DatabaseConnectionError: If connection fails
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Close database connection and release the pool."""

    @abstractmethod
    def get_session(self) -> Any:
        """
        Provide an async database session context manager.

        Usage:
            async with adapter.get_session() as session:
                result = await session.execute(query)
        """

    @abstractmethod
    async def create_tables(self) -> None:
        """Create all mapped tables that do not exist yet."""

    @abstractmethod
    async def check_health(self) -> bool:
        """Return True when a trivial query succeeds."""


# =============================================================================
# BASE ADAPTER IMPLEMENTATION
# =============================================================================

class BaseDBAdapter(IDBAdapter):
    """
    Shared engine/session handling for the concrete SQLite and PostgreSQL
    adapters.
    """

    def __init__(self, database_url: str, **engine_options: Any):
        """
        Args:
            database_url: Async-compatible database URL
            **engine_options: Additional SQLAlchemy engine options
        """
        self._database_url = database_url
        self._engine_options = engine_options
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._is_connected = False

    async def connect(self) -> None:
        """Create the async engine and the session factory."""
        if self._is_connected:
            return

        self._engine = create_async_engine(
            self._database_url,
            **self._engine_options
        )

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        self._is_connected = True

    async def disconnect(self) -> None:
        """Dispose of engine and cleanup connections."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            self._is_connected = False

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Provide session with automatic commit/rollback handling.

        Commits on successful exit, rolls back on exception.
        """
        if not self._session_factory:
            await self.connect()

        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def create_tables(self) -> None:
        if not self._engine:
            await self.connect()

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def check_health(self) -> bool:
        async with self.get_session() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1

    @property
    def engine(self) -> AsyncEngine:
        """Get the SQLAlchemy engine."""
        if not self._engine:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get the session factory."""
        if not self._session_factory:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._session_factory

    @property
    def is_connected(self) -> bool:
        return self._is_connected


# =============================================================================
# REDIS ADAPTER INTERFACE
# =============================================================================

class IRedisAdapter(ABC):
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    ABSTRACT REDIS ADAPTER INTERFACE                      │
    │  Key-value operations backing the token denylist and rate limiting     │
    └─────────────────────────────────────────────────────────────────────────┘
    """

    @abstractmethod
    async def connect(self) -> None:
        """Establish Redis connection."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close Redis connection."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Get value by key."""

    @abstractmethod
    async def set(
        self,
        key: str,
        value: str,
        ttl: Optional[int] = None
    ) -> bool:
        """Set value with optional TTL."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete key."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if key exists."""

    @abstractmethod
    async def expire(self, name: str, ttl: int) -> bool:
        """Set key expiration."""

    @abstractmethod
    async def incr(self, key: str) -> int:
        """Increment counter."""

    @abstractmethod
    async def ttl(self, key: str) -> int:
        """Get remaining TTL."""
