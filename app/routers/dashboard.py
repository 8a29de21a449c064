"""
Dashboard router - the feed behind the device map and charts.

- GET /dashboard/devices?farmId=... → one "box" per device you own,
  with its newest readings
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import SessionUser
from app.db.session import get_db
from app.deps import get_session_user
from app.models.device import Device
from app.models.farm import Farm
from app.models.reading import SensorReading
from app.schemas.telemetry import DashboardDevicesResponse, DeviceBox, ReadingOut, ReadingValues
from app.services.claims import UNKNOWN_LOCATION
from app.services.farms import owned_devices_filter, parse_uuid

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def build_box(db: Session, device: Device, farm_names: dict) -> DeviceBox:
    """Device row + its newest readings → one dashboard box."""
    rows = list(
        db.scalars(
            select(SensorReading)
            .where(SensorReading.device_id == device.device_id)
            .order_by(SensorReading.timestamp.desc())
            .limit(settings.DASHBOARD_READINGS_LIMIT)
        )
    )
    readings = [ReadingOut.model_validate(row) for row in rows]
    current = ReadingValues.model_validate(rows[0]) if rows else None

    return DeviceBox(
        box_id=device.device_id,
        name=device.name or device.device_id,
        location=device.location or UNKNOWN_LOCATION,
        latitude=device.latitude or 0,
        longitude=device.longitude or 0,
        is_online=bool(device.is_online),
        last_seen=device.last_seen,
        farm_id=str(device.farm_id) if device.farm_id else None,
        farm_name=farm_names.get(device.farm_id),
        current_readings=current,
        readings=readings,
    )


@router.get("/devices", response_model=DashboardDevicesResponse)
def dashboard_devices(
    farm_id: Optional[str] = Query(None, alias="farmId"),
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_session_user),
):
    """
    Devices owned by the signed-in user, optionally narrowed to one farm.

    Ownership follows the same rule as the claim workflow (owner id, or the
    legacy email link on rows without an owner).
    """
    stmt = select(Device).where(owned_devices_filter(session.user_id, session.email))

    if farm_id:
        farm_uuid = parse_uuid(farm_id)
        if farm_uuid is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid farm ID")
        stmt = stmt.where(Device.farm_id == farm_uuid)

    devices = list(db.scalars(stmt.order_by(Device.created_at.desc())))

    farm_ids = {d.farm_id for d in devices if d.farm_id is not None}
    farm_names = {}
    if farm_ids:
        farm_names = {
            farm.id: farm.name
            for farm in db.scalars(select(Farm).where(Farm.id.in_(farm_ids)))
        }

    return DashboardDevicesResponse(boxes=[build_box(db, d, farm_names) for d in devices])
