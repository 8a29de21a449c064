"""
User model - an account on the dashboard.
Users sign in with email/password or Google, own devices and farms, and
carry a role ("admin" or "user") that gates the admin panel.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class UserRole:
    """Supported user roles."""
    ADMIN = "admin"
    USER = "user"

    ALL = (ADMIN, USER)


class User(Base):
    """
    SQLAlchemy ORM model for the 'users' table.

    A user can:
    - Claim devices and see their telemetry
    - Group owned devices into farms
    - (admins) invite people, change roles, delete accounts, take over devices
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    # email: stored lower-cased; unique login identifier for both
    # password and Google sign-in
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)

    # hashed_password: bcrypt hash; None for accounts created through Google
    # that never set a password
    hashed_password: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # name / image: display information shown in the navbar and admin panel
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    image: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # role: "admin" or "user" (see UserRole)
    role: Mapped[str] = mapped_column(String(20), default=UserRole.USER, nullable=False)

    # is_active: deactivated accounts are rejected by app.deps even with a valid token
    is_active: Mapped[bool] = mapped_column(default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # ---------------------------------------------------------------------------
    # RELATIONSHIPS
    # ---------------------------------------------------------------------------
    # devices: deleting a user deletes the devices they own (ON DELETE CASCADE
    # on devices.owner_id plus the ORM cascade below). Telemetry readings are
    # not part of this cascade.
    devices: Mapped[list["Device"]] = relationship(
        "Device",
        back_populates="owner",
        cascade="all",
    )
    farms: Mapped[list["Farm"]] = relationship(
        "Farm",
        back_populates="owner",
        cascade="all, delete-orphan",
    )
    oauth_accounts: Mapped[list["OAuthAccount"]] = relationship(
        "OAuthAccount",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def display_label(self) -> str:
        """Name if set, otherwise email - used in messages shown to other users."""
        return self.name or self.email
