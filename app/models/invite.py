"""
Invite model - a time-limited, single-use invitation binding an email to a role.

A pending, unexpired invite is the only way for a new Google identity to get
an account. Only the SHA-256 digest of the invite token is stored.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class InviteStatus:
    """Invite lifecycle: pending -> used, or pending -> revoked."""
    PENDING = "pending"
    USED = "used"
    REVOKED = "revoked"


class Invite(Base):
    """SQLAlchemy ORM model for the 'invites' table."""

    __tablename__ = "invites"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    # email: lower-cased and trimmed at creation
    email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)

    # token_hash: sha256(raw token) hex digest; unique so lookups are exact
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    # created_by: the admin who sent the invite (kept if that admin is deleted)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    role: Mapped[str] = mapped_column(String(20), default="user", nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=InviteStatus.PENDING, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True, nullable=False)

    # used_at: when the invite was consumed or revoked
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
