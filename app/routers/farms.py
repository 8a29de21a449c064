"""
Farms router - user-defined device groupings.

- GET  /farms                      → your farms
- POST /farms                      → create a farm
- GET  /farms/{farmId}/devices     → devices grouped in a farm
- POST /farms/{farmId}/devices     → add one of your devices to a farm
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.security import SessionUser
from app.db.session import get_db
from app.deps import get_session_user
from app.models.farm import Farm
from app.schemas.device import DeviceOut
from app.schemas.farm import FarmCreate, FarmDeviceAdd, FarmOut
from app.services.farms import FarmError, farm_service

router = APIRouter(prefix="/farms", tags=["farms"])


def resolve_farm_or_error(db: Session, farm_id: UUID, session: SessionUser) -> Farm:
    """resolve_farm_for_requester() with FarmError mapped to HTTPException."""
    try:
        return farm_service.resolve_farm_for_requester(
            db, farm_id, session.user_id, session.is_admin
        )
    except FarmError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=list[FarmOut])
def list_farms(
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_session_user),
):
    return farm_service.list_farms_for_user(db, session.user_id)


@router.post("", response_model=FarmOut, status_code=status.HTTP_201_CREATED)
def create_farm(
    payload: FarmCreate,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_session_user),
):
    """
    Create a farm for the signed-in user.

    Raises:
        400: name missing or not 2..100 characters
    """
    try:
        return farm_service.create_farm(
            db,
            session.user_id,
            payload.name,
            description=payload.description,
            location=payload.location,
        )
    except FarmError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{farm_id}/devices", response_model=list[DeviceOut])
def list_farm_devices(
    farm_id: UUID,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_session_user),
):
    farm = resolve_farm_or_error(db, farm_id, session)
    return farm_service.list_farm_devices(db, farm)


@router.post("/{farm_id}/devices", response_model=DeviceOut)
def add_device_to_farm(
    farm_id: UUID,
    payload: FarmDeviceAdd,
    db: Session = Depends(get_db),
    session: SessionUser = Depends(get_session_user),
):
    """
    Raises:
        400: deviceId missing
        403: farm or device belongs to someone else
        404: farm or device not found
    """
    farm = resolve_farm_or_error(db, farm_id, session)
    try:
        return farm_service.add_device_to_farm(
            db,
            farm,
            payload.device_id,
            session.user_id,
            session.email,
            session.is_admin,
        )
    except FarmError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
