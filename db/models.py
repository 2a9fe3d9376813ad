# =============================================================================
# IDENTITY API SCAFFOLD - DATABASE MODELS
# =============================================================================
# File: db/models.py
# Description: SQLAlchemy ORM models for users, roles, refresh tokens and
#              cookie sessions
# =============================================================================

from typing import Optional, List
from datetime import datetime

from sqlalchemy import (
    Column,
    String,
    Boolean,
    Integer,
    DateTime,
    ForeignKey,
    Index,
    JSON,
    Table,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from db.base import Base, AuditMixin, BaseEntity
from utils.helpers import utc_now, ensure_utc, generate_uuid


# =============================================================================
# USER <-> ROLE ASSOCIATION
# =============================================================================

user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


# =============================================================================
# ROLE MODEL
# =============================================================================

class Role(Base):
    """
    Named role used for authorization ("User", "Admin", ...).

    Lookups go through ``normalized_name`` so role names are case-insensitive.
    """

    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid
    )
    name: Mapped[str] = mapped_column(
        String(256),
        nullable=False
    )
    normalized_name: Mapped[str] = mapped_column(
        String(256),
        unique=True,
        nullable=False,
        index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<Role(name={self.name})>"

    @staticmethod
    def normalize(name: str) -> str:
        return name.strip().upper()


# =============================================================================
# USER MODEL
# =============================================================================

class ApplicationUser(AuditMixin, Base):
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    APPLICATION USER MODEL                                │
    │  Identity record with profile, activation, lockout state and roles     │
    └─────────────────────────────────────────────────────────────────────────┘

    Fields:
        - id:                  UUID primary key (auto-generated)
        - username:            Unique user name
        - email:               Unique email address, stored lowercase
        - password_hash:       Argon2id (or legacy bcrypt) hash
        - first_name:          Optional given name
        - last_name:           Optional family name
        - phone_number:        Optional phone number
        - email_confirmed:     Email confirmation status
        - is_active:           Deactivated users cannot sign in
        - created_at:          Stamped on insert (AuditMixin)
        - updated_at:          Stamped on every change (AuditMixin)
        - last_login:          Last successful login
        - access_failed_count: Consecutive failed login attempts
        - lockout_end:         Lockout expiration
        - lockout_enabled:     Whether lockout applies to this user

    Relationships:
        - roles: Many-to-many with Role (eager, selectin)
    """

    __tablename__ = "users"

    # Primary Key
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid
    )

    # Identity
    username: Mapped[str] = mapped_column(
        String(256),
        unique=True,
        nullable=False,
        index=True
    )
    email: Mapped[str] = mapped_column(
        String(256),
        unique=True,
        nullable=False,
        index=True
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False
    )

    # Profile
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    # Account Status
    email_confirmed: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )
    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    # Lockout
    access_failed_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False
    )
    lockout_end: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )
    lockout_enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )

    # Relationships
    roles: Mapped[List["Role"]] = relationship(
        "Role",
        secondary=user_roles,
        lazy="selectin",
        order_by="Role.name",
    )

    __table_args__ = (
        Index("ix_users_email_active", "email", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<ApplicationUser(id={self.id}, username={self.username})>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def is_locked_out(self) -> bool:
        """Check if the lockout window is still running."""
        lockout_end = ensure_utc(self.lockout_end)
        if lockout_end is None:
            return False
        return utc_now() < lockout_end

    @property
    def role_names(self) -> List[str]:
        return [role.name for role in self.roles]

    def has_role(self, role_name: str) -> bool:
        normalized = Role.normalize(role_name)
        return any(role.normalized_name == normalized for role in self.roles)


# =============================================================================
# REFRESH TOKEN MODEL
# =============================================================================

class RefreshToken(BaseEntity):
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    REFRESH TOKEN MODEL                                   │
    │  Server-side record of issued refresh tokens (hash only)                │
    │  Rotated on every use, revoked on logout and password change            │
    └─────────────────────────────────────────────────────────────────────────┘

    Fields:
        - user_id:          Owner
        - token_hash:       SHA-256 hash of the token (unique)
        - jti:              JWT identifier of the token
        - expires_at:       Token expiration
        - revoked_at:       Revocation timestamp
        - replaced_by_hash: Hash of the token issued in exchange
    """

    __tablename__ = "refresh_tokens"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    token_hash: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True
    )
    jti: Mapped[str] = mapped_column(
        String(36),
        nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True
    )
    revoked_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )
    replaced_by_hash: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True
    )

    def __repr__(self) -> str:
        return f"<RefreshToken(id={self.id}, user_id={self.user_id})>"

    @property
    def is_expired(self) -> bool:
        return utc_now() >= ensure_utc(self.expires_at)

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    @property
    def is_valid(self) -> bool:
        """Not expired, not revoked and not soft-deleted."""
        return not (self.is_expired or self.is_revoked or self.is_deleted)


# =============================================================================
# COOKIE SESSION MODEL
# =============================================================================

class UserSession(BaseEntity):
    """
    Cookie-based sign-in session.

    The browser holds an opaque random token; only its SHA-256 hash is
    stored here.
    """

    __tablename__ = "user_sessions"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    token_hash: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True
    )
    ip_address: Mapped[Optional[str]] = mapped_column(
        String(45),  # IPv6 max length
        nullable=True
    )
    user_agent: Mapped[Optional[str]] = mapped_column(
        String(512),
        nullable=True
    )
    device_info: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
        default=dict
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True
    )
    last_activity: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False
    )
    is_persistent: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )

    __table_args__ = (
        Index("ix_user_sessions_user_active", "user_id", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<UserSession(id={self.id}, user_id={self.user_id})>"

    @property
    def is_expired(self) -> bool:
        return utc_now() >= ensure_utc(self.expires_at)

    @property
    def is_valid(self) -> bool:
        return self.is_active and not self.is_deleted and not self.is_expired
