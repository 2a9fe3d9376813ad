# =============================================================================
# DATABASE MODULE INITIALIZATION
# =============================================================================
# File: db/__init__.py
# Description: Database module exports
#              (db.seeder is imported directly; it depends on auth.repository)
# =============================================================================

from db.base import Base, BaseEntity, AuditMixin, IDBAdapter, BaseDBAdapter, IRedisAdapter
from db.factory import (
    DBFactory,
    DatabaseType,
    get_db_session,
    get_redis,
)
from db.models import (
    ApplicationUser,
    Role,
    RefreshToken,
    UserSession,
    user_roles,
)
from db.adapters import (
    SQLiteAdapter,
    PostgresAdapter,
    RedisAdapter,
)

__all__ = [
    # Base
    "Base",
    "BaseEntity",
    "AuditMixin",
    "IDBAdapter",
    "BaseDBAdapter",
    "IRedisAdapter",

    # Factory
    "DBFactory",
    "DatabaseType",
    "get_db_session",
    "get_redis",

    # Models
    "ApplicationUser",
    "Role",
    "RefreshToken",
    "UserSession",
    "user_roles",

    # Adapters
    "SQLiteAdapter",
    "PostgresAdapter",
    "RedisAdapter",
]
