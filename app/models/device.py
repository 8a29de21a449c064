"""
Device model - a physical sensor box in the field.
Each device pushes moisture, temperature, humidity and battery readings and
is identified by the hardware label printed on it (device_id).
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Float, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class DeviceStatus:
    """
    Informational device status.

    The authoritative ownership state is owner_id; status only records how
    the device reached its current state.
    """
    AUTO_REGISTERED = "auto-registered"  # created by its first telemetry upload
    UNASSIGNED = "unassigned"            # explicitly registered, waiting for a claim
    CLAIMED = "claimed"                  # owned by a user

    ALL = (AUTO_REGISTERED, UNASSIGNED, CLAIMED)


class Device(Base):
    """
    SQLAlchemy ORM model for the 'devices' table.

    Ownership:
    - owner_id IS NULL: the device is unassigned and can be claimed by anyone
    - owner_id set: owned by that user; only an admin can move it

    owner_id only changes through the claim workflow (app.services.claims),
    which uses a conditional UPDATE so two claimants can never both win.
    """

    __tablename__ = "devices"

    # Surrogate primary key
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    # device_id: Hardware label (e.g., "SU4_250719_154003"), globally unique,
    # never changes after creation
    device_id: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    # ---------------------------------------------------------------------------
    # OWNERSHIP
    # ---------------------------------------------------------------------------
    # owner_id: NULL means unassigned (see app.services.claims.classify_ownership)
    owner_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True
    )

    # claimed_by_email: owner's email at claim time, for display without a join.
    # Older devices are matched to their owner by this column alone.
    claimed_by_email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # farm_id: display grouping, set independently of ownership
    farm_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("farms.id", ondelete="SET NULL"), nullable=True, index=True
    )

    status: Mapped[str] = mapped_column(String(20), default=DeviceStatus.UNASSIGNED, nullable=False)

    # ---------------------------------------------------------------------------
    # INGESTION CREDENTIAL
    # ---------------------------------------------------------------------------
    # api_key: presented by the device on every upload
    api_key: Mapped[str] = mapped_column(String(255), nullable=False)

    # config: free-form settings pushed from the dashboard (sampling rate, ...)
    config: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # ---------------------------------------------------------------------------
    # LIVENESS
    # ---------------------------------------------------------------------------
    is_online: Mapped[bool] = mapped_column(default=False)
    last_seen: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_upload: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

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
    owner: Mapped["User | None"] = relationship("User", back_populates="devices")
    farm: Mapped["Farm | None"] = relationship("Farm", back_populates="devices")

    @property
    def is_unassigned(self) -> bool:
        return self.owner_id is None
