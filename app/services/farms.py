"""
Farm service - user-defined groupings of devices.

A farm is a display grouping, not an aggregate root: it belongs to exactly
one user, while devices point at it through devices.farm_id. The claim
workflow calls resolve_farm_for_requester() before it touches a device.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from app.models.device import Device
from app.models.farm import Farm

logger = logging.getLogger("epiciot.services.farms")


# ---------------------------------------------------------------------------
# ERRORS
# ---------------------------------------------------------------------------

class FarmError(Exception):
    """Base class for farm errors. status_code is the HTTP status routers use."""
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidFarm(FarmError):
    """Bad farm input (name length, malformed id)."""
    status_code = 400


class FarmNotFound(FarmError):
    status_code = 404


class FarmForbidden(FarmError):
    """The farm exists but belongs to someone else."""
    status_code = 403


class FarmService:
    """
    Farm CRUD plus the authorization rule shared with the claim workflow.

    Name rules:
    - trimmed, then 2..100 characters
    - description/location trimmed; blank becomes None
    """

    NAME_MIN_LENGTH = 2
    NAME_MAX_LENGTH = 100

    def create_farm(
        self,
        db: Session,
        owner_id: uuid.UUID,
        name: Optional[str],
        description: Optional[str] = None,
        location: Optional[str] = None,
    ) -> Farm:
        """
        Create a farm owned by owner_id.

        Raises:
            InvalidFarm: name missing or outside 2..100 characters
        """
        clean_name = (name or "").strip()
        if not (self.NAME_MIN_LENGTH <= len(clean_name) <= self.NAME_MAX_LENGTH):
            raise InvalidFarm(
                f"Farm name must be between {self.NAME_MIN_LENGTH} and "
                f"{self.NAME_MAX_LENGTH} characters"
            )

        farm = Farm(
            owner_id=owner_id,
            name=clean_name,
            description=_clean_optional(description),
            location=_clean_optional(location),
        )
        db.add(farm)
        db.commit()
        db.refresh(farm)

        logger.info("Farm created", extra={"farm_id": str(farm.id), "owner_id": str(owner_id)})
        return farm

    def list_farms_for_user(self, db: Session, owner_id: uuid.UUID) -> list[Farm]:
        """All farms owned by the user, oldest first."""
        stmt = select(Farm).where(Farm.owner_id == owner_id).order_by(Farm.created_at.asc())
        return list(db.scalars(stmt))

    def resolve_farm_for_requester(
        self,
        db: Session,
        farm_id: uuid.UUID,
        requester_id: uuid.UUID,
        is_admin: bool,
    ) -> Farm:
        """
        Return the farm if the requester may use it.

        Admins may resolve any farm, regular users only their own.

        Raises:
            FarmNotFound: no farm with that id
            FarmForbidden: farm owned by another user (non-admin requester)
        """
        farm = db.get(Farm, farm_id)
        if farm is None:
            raise FarmNotFound("Farm not found")
        if not is_admin and farm.owner_id != requester_id:
            raise FarmForbidden("You do not have access to this farm")
        return farm

    def list_farm_devices(self, db: Session, farm: Farm) -> list[Device]:
        stmt = select(Device).where(Device.farm_id == farm.id).order_by(Device.created_at.asc())
        return list(db.scalars(stmt))

    def add_device_to_farm(
        self,
        db: Session,
        farm: Farm,
        device_id: Optional[str],
        requester_id: uuid.UUID,
        requester_email: str,
        is_admin: bool,
    ) -> Device:
        """
        Group a device under a farm.

        The device must be owned by the requester (by id, or by the legacy
        claimed_by_email match) unless the requester is an admin.

        Raises:
            InvalidFarm: device id missing
            FarmNotFound: device does not exist (reported as a 404)
            FarmForbidden: device owned by someone else
        """
        clean_id = (device_id or "").strip()
        if not clean_id:
            raise InvalidFarm("Device ID is required")

        device = db.scalar(select(Device).where(Device.device_id == clean_id))
        if device is None:
            raise FarmNotFound("Device not found")
        if not is_admin and not device_owned_by(device, requester_id, requester_email):
            raise FarmForbidden("You do not own this device")

        device.farm_id = farm.id
        db.commit()
        db.refresh(device)
        return device


def device_owned_by(device: Device, user_id: uuid.UUID, email: str) -> bool:
    """Ownership as the dashboard sees it: owner id, or the legacy email link."""
    if device.owner_id is not None:
        return device.owner_id == user_id
    return bool(device.claimed_by_email) and device.claimed_by_email == email.lower()


def owned_devices_filter(user_id: uuid.UUID, email: str):
    """SQL counterpart of device_owned_by() for list queries."""
    return or_(
        Device.owner_id == user_id,
        and_(Device.owner_id.is_(None), Device.claimed_by_email == email.lower()),
    )


def parse_uuid(value) -> uuid.UUID | None:
    """Parse a client-supplied id; None when it is not a well-formed UUID."""
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str):
        return None
    try:
        return uuid.UUID(value.strip())
    except ValueError:
        return None


def _clean_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


# Singleton instance
farm_service = FarmService()
