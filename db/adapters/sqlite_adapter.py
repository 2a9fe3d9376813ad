# =============================================================================
# IDENTITY API SCAFFOLD - SQLITE ADAPTER
# =============================================================================
# File: db/adapters/sqlite_adapter.py
# Description: SQLite database adapter for development and testing
#              Uses aiosqlite for async operations with SQLAlchemy
# =============================================================================

from typing import Any, Optional
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.pool import StaticPool

from db.base import BaseDBAdapter
from core.config import settings


# Applied to every DBAPI connection the pool opens
SQLITE_PRAGMAS = (
    "PRAGMA foreign_keys=ON",
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA busy_timeout=30000",
)


class SQLiteAdapter(BaseDBAdapter):
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    SQLITE DATABASE ADAPTER                               │
    │  Async SQLite implementation for development and testing environments   │
    │  Uses aiosqlite driver with SQLAlchemy async ORM                        │
    └─────────────────────────────────────────────────────────────────────────┘

    Features:
        - Zero-configuration setup
        - File-based persistent storage
        - In-memory option for testing (single shared connection)
        - Foreign keys and WAL enabled on every connection

    Usage:
        adapter = SQLiteAdapter()
        await adapter.connect()
        async with adapter.get_session() as session:
            ...
        await adapter.disconnect()
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        **kwargs: Any
    ):
        """
        Args:
            database_url: Optional custom database URL
                          Defaults to settings.database_url
            **kwargs: Additional engine options

        Engine Options:
            - echo: bool - Log SQL queries (default: settings.debug)
            - pool_pre_ping: bool - Test connections before use (default: True)
        """
        if database_url is None:
            database_url = settings.database_url

        # Ensure database directory exists for file-based SQLite
        if ":memory:" not in database_url:
            db_path = database_url.split("///", 1)[-1]
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        default_options = {
            "echo": settings.debug,
            "pool_pre_ping": True,
            "connect_args": {
                "check_same_thread": False,
                "timeout": 30,
            },
        }
        default_options.update(kwargs)

        super().__init__(database_url, **default_options)

    async def connect(self) -> None:
        """Create the engine and hook the PRAGMA setup onto new connections."""
        if self._is_connected:
            return

        await super().connect()

        @event.listens_for(self.engine.sync_engine, "connect")
        def _apply_pragmas(dbapi_connection: Any, connection_record: Any) -> None:
            cursor = dbapi_connection.cursor()
            for pragma in SQLITE_PRAGMAS:
                cursor.execute(pragma)
            cursor.close()

    @classmethod
    def create_for_testing(cls) -> "SQLiteAdapter":
        """
        Create an in-memory SQLite adapter for testing.

        The static pool keeps one connection alive, so every session sees the
        same in-memory database until ``disconnect()``.
        """
        return cls(
            database_url="sqlite+aiosqlite:///:memory:",
            echo=False,
            poolclass=StaticPool,
        )
