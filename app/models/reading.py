"""
SensorReading model - one telemetry sample pushed by a device.

Readings are append-only. The only columns ever rewritten are owner_id and
transferred_at, when the claim workflow hands a device to a new owner.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, String, DateTime, Float, Integer
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class SensorReading(Base):
    """
    SQLAlchemy ORM model for the 'sensor_readings' table.

    device_id and owner_id are plain columns, not foreign keys:
    - readings outlive their device when an account is deleted
    - owner_id is a snapshot of devices.owner_id at write time, kept for
      per-owner queries; it goes stale until a claim rewrites it
    """

    __tablename__ = "sensor_readings"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )

    device_id: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    owner_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True, index=True)

    # ---------------------------------------------------------------------------
    # MEASUREMENTS
    # ---------------------------------------------------------------------------
    # moisture: overall value; moisture1..4 are the four probes (raw ADC counts)
    moisture: Mapped[float] = mapped_column(Float, default=0)
    moisture1: Mapped[float] = mapped_column(Float, default=0)
    moisture2: Mapped[float] = mapped_column(Float, default=0)
    moisture3: Mapped[float] = mapped_column(Float, default=0)
    moisture4: Mapped[float] = mapped_column(Float, default=0)
    humidity: Mapped[float] = mapped_column(Float, default=0)
    temperature: Mapped[float] = mapped_column(Float, default=0)

    # lip_voltage: LiPo battery voltage; rtc_battery: RTC coin cell voltage
    lip_voltage: Mapped[float] = mapped_column(Float, default=0)
    rtc_battery: Mapped[float] = mapped_column(Float, default=0)

    # data_points: how many raw samples the device averaged into this reading
    data_points: Mapped[int] = mapped_column(Integer, default=0)

    # ---------------------------------------------------------------------------
    # TIMESTAMPS
    # ---------------------------------------------------------------------------
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True, nullable=False)
    raw_timestamp: Mapped[str | None] = mapped_column(String(64), nullable=True)
    received_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # transferred_at: set when a claim reassigned this reading's owner snapshot
    transferred_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
