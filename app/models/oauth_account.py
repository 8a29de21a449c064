"""
OAuth Account model - links a user to an external sign-in identity.

Only the identity is kept (provider + the provider's stable account id).
The dashboard never calls Google APIs on the user's behalf, so no access or
refresh tokens are stored.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

if TYPE_CHECKING:
    from app.models.user import User


class OAuthAccount(Base):
    """
    SQLAlchemy ORM model for the 'oauth_accounts' table.

    - One user can link several providers
    - A provider account belongs to exactly one user
      (unique constraint on provider + provider_account_id)
    """

    __tablename__ = "oauth_accounts"
    __table_args__ = (
        UniqueConstraint("provider", "provider_account_id", name="uq_oauth_provider_account"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    # user_id: CASCADE - deleting the user removes their linked identities
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # provider: "google" (the only provider wired up today)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)

    # provider_account_id: Google's "sub" / "id" claim, stable across email changes
    provider_account_id: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    user: Mapped["User"] = relationship("User", back_populates="oauth_accounts")

    def __repr__(self) -> str:
        return f"<OAuthAccount(user_id={self.user_id}, provider='{self.provider}')>"
