"""
Devices router - the user-facing side of the device registry.

This module provides REST endpoints for:
- Claiming a device (POST /devices/claim)
- Moving a device into one of your farms (PATCH /devices/assign-farm)
- Pushing config to a device (PATCH /devices/{deviceId}/config)
- Reading a device's telemetry (GET /devices/{deviceId}/readings)

Device-facing endpoints (registration, uploads) live in app.routers.iot.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.security import SessionUser
from app.db.session import get_db
from app.deps import get_optional_session, get_session_user
from app.models.device import Device
from app.models.reading import SensorReading
from app.schemas.device import (
    AssignFarmRequest,
    ClaimRequest,
    ClaimResponse,
    ClaimedDevice,
    DeviceConfigUpdate,
    DeviceOut,
)
from app.schemas.telemetry import ReadingOut
from app.services.claims import claim_service
from app.services.farms import FarmError, device_owned_by, farm_service, parse_uuid

logger = logging.getLogger("epiciot.routers.devices")

# ---------------------------------------------------------------------------
# ROUTER SETUP
# ---------------------------------------------------------------------------
router = APIRouter(prefix="/devices", tags=["devices"])


# ---------------------------------------------------------------------------
# HELPER FUNCTIONS
# ---------------------------------------------------------------------------

def get_device_or_404(db: Session, device_id: str) -> Device:
    """
    Look up a device by its hardware label.

    Raises:
        404: no such device
    """
    device = db.scalar(select(Device).where(Device.device_id == device_id))
    if not device:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Device not found",
        )
    return device


def ensure_can_manage(device: Device, session: SessionUser) -> None:
    """
    Owner or admin only.

    Raises:
        403: someone else's device
    """
    if session.is_admin:
        return
    if not device_owned_by(device, session.user_id, session.email):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this device",
        )


# ---------------------------------------------------------------------------
# CLAIM
# ---------------------------------------------------------------------------

@router.post("/claim", response_model=ClaimResponse)
def claim_device(
    payload: ClaimRequest,
    db: Session = Depends(get_db),
    session: SessionUser | None = Depends(get_optional_session),
):
    """
    Take ownership of a device.

    Body: {"deviceId": "...", "farmId"?: "...", "targetUserId"?: "..."}

    Failures come back as {"success": false, "error": "..."} with
    401/400/403/404/409/500 (rendered by the ClaimError handler in app.main).
    """
    result = claim_service.claim(
        db,
        session,
        payload.device_id,
        farm_id=payload.farm_id,
        target_user_id=payload.target_user_id,
    )
    return ClaimResponse(
        message=result.message,
        device=ClaimedDevice(
            device_id=result.device_id,
            name=result.name,
            location=result.location,
            historical_readings_transferred=result.historical_readings_transferred,
            claimed_at=result.claimed_at,
        ),
    )


@router.get("/claim")
def claim_probe():
    """Liveness probe used by the claim form."""
    return {
        "message": "Device claim endpoint is working",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ---------------------------------------------------------------------------
# FARM ASSIGNMENT
# ---------------------------------------------------------------------------

@router.patch("/assign-farm", response_model=DeviceOut)
def assign_farm(
    payload: AssignFarmRequest,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_session_user),
):
    """
    Group one of your devices under one of your farms.

    Both lookups answer 404 when the caller doesn't own the record
    (admins may use any farm and any device).
    """
    device_id = (payload.device_id or "").strip()
    farm_uuid = parse_uuid(payload.farm_id)
    if not device_id or farm_uuid is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="deviceId and a valid farmId are required",
        )

    try:
        farm = farm_service.resolve_farm_for_requester(
            db, farm_uuid, session.user_id, session.is_admin
        )
    except FarmError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Farm not found")

    device = db.scalar(select(Device).where(Device.device_id == device_id))
    if device is None or not (
        session.is_admin or device_owned_by(device, session.user_id, session.email)
    ):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Device not found")

    device.farm_id = farm.id
    db.commit()
    db.refresh(device)
    return device


# ---------------------------------------------------------------------------
# CONFIG
# ---------------------------------------------------------------------------

@router.patch("/{device_id}/config", response_model=DeviceOut)
def update_device_config(
    device_id: str,
    payload: DeviceConfigUpdate,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_session_user),
):
    """
    Replace the device's config object.

    Raises:
        400: config is not a JSON object
        403: not the owner and not an admin
        404: unknown device
    """
    if not isinstance(payload.config, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="config must be an object",
        )

    device = get_device_or_404(db, device_id)
    ensure_can_manage(device, session)

    device.config = payload.config
    db.commit()
    db.refresh(device)

    logger.info("Device config updated", extra={"device_id": device_id})
    return device


# ---------------------------------------------------------------------------
# READINGS
# ---------------------------------------------------------------------------

@router.get("/{device_id}/readings", response_model=list[ReadingOut])
def list_device_readings(
    device_id: str,
    limit: int = Query(100, ge=1, le=1000, description="Newest readings to return"),
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_session_user),
):
    """
    Newest-first readings of one device (owner or admin).

    Readings are matched by device id only; their owner snapshot may lag
    behind the device after a claim.
    """
    device = get_device_or_404(db, device_id)
    ensure_can_manage(device, session)

    stmt = (
        select(SensorReading)
        .where(SensorReading.device_id == device.device_id)
        .order_by(SensorReading.timestamp.desc())
        .limit(limit)
    )
    return list(db.scalars(stmt))
