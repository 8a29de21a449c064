"""
Claim service - moves a device into a user's ownership.

Flow of ClaimService.claim():
1. Validate input (session, device id, optional farm id / target user)
2. Load the device and resolve the target farm
3. Classify ownership: unassigned, owned by the new owner, owned by someone else
4. Conditional UPDATE on the device row (compare-and-swap on owner_id)
5. Best-effort: re-tag the device's historical readings with the new owner

Concurrency:
- No locks are held between the read in step 2 and the write in step 4.
  The UPDATE's WHERE clause repeats the ownership precondition, so the
  database decides the winner: exactly one of N concurrent claims matches a
  row, the rest see rowcount == 0 and get ClaimRaceLost.
- Step 5 runs in its own transaction after the ownership write committed.
  If it fails the claim still stands and some readings keep the old owner
  snapshot; historicalReadingsTransferred reports 0.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.security import SessionUser
from app.models.device import Device, DeviceStatus
from app.models.farm import Farm
from app.models.reading import SensorReading
from app.models.user import User
from app.services.farms import FarmForbidden as FarmAccessDenied
from app.services.farms import FarmNotFound as FarmMissing
from app.services.farms import farm_service, parse_uuid

logger = logging.getLogger("epiciot.services.claims")

UNKNOWN_LOCATION = "Unknown Location"


# ---------------------------------------------------------------------------
# ERRORS
# ---------------------------------------------------------------------------
# Each error carries the HTTP status the claim endpoint answers with.
# app.main registers a handler that renders them as {"success": false, "error": ...}

class ClaimError(Exception):
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class Unauthenticated(ClaimError):
    status_code = 401


class InvalidInput(ClaimError):
    status_code = 400


class Forbidden(ClaimError):
    status_code = 403


class DeviceNotFound(ClaimError):
    status_code = 404


class FarmNotFound(ClaimError):
    status_code = 404


class AlreadyClaimed(ClaimError):
    """The device already belongs to the user it would be assigned to."""
    status_code = 409


class OwnedByAnotherUser(ClaimError):
    status_code = 409


class ClaimRaceLost(ClaimError):
    """Another claim changed the owner between our read and our write."""
    status_code = 409


class UnexpectedClaimError(ClaimError):
    status_code = 500


# ---------------------------------------------------------------------------
# OWNERSHIP CLASSIFICATION
# ---------------------------------------------------------------------------

class Ownership(str, Enum):
    UNASSIGNED = "unassigned"
    OWNED_BY_SELF = "owned_by_self"
    OWNED_BY_OTHER = "owned_by_other"


def classify_ownership(device: Device, user_id: uuid.UUID) -> Ownership:
    """
    Classify a device relative to a user.

    owner_id IS NULL is the unassigned state; the status column is
    informational and is not consulted.
    """
    if device.owner_id is None:
        return Ownership.UNASSIGNED
    if device.owner_id == user_id:
        return Ownership.OWNED_BY_SELF
    return Ownership.OWNED_BY_OTHER


@dataclass
class ClaimResult:
    """
    Outcome of a successful claim.

    Attributes:
        device_id: Hardware label of the claimed device
        name / location: Display fields for the confirmation message
        historical_readings_transferred: Readings re-tagged with the new owner
        claimed_at: Timestamp written by the ownership update
        owner_id: The new owner
        took_over: True when an admin moved a device away from another owner
    """
    device_id: str
    name: str
    location: str
    historical_readings_transferred: int
    claimed_at: datetime
    owner_id: uuid.UUID
    took_over: bool = False

    @property
    def message(self) -> str:
        return f'Device "{self.device_id}" successfully added to your dashboard!'


class ClaimService:
    """
    The claim workflow. Stateless; one instance is shared by all requests.
    """

    def claim(
        self,
        db: Session,
        requester: Optional[SessionUser],
        device_id: Any,
        farm_id: Any = None,
        target_user_id: Any = None,
    ) -> ClaimResult:
        """
        Claim a device for the requester (or, for admins, for a target user).

        Args:
            db: Database session
            requester: Session identity; None means not signed in
            device_id: Hardware label as sent by the client
            farm_id: Optional farm to group the device under
            target_user_id: Admin only - user who becomes the owner

        Returns:
            ClaimResult

        Raises:
            ClaimError subclass; no device state changes unless the result
            is returned.
        """
        # ---------------------------------------------------------------------------
        # STEP 1: Input validation
        # ---------------------------------------------------------------------------
        if requester is None:
            raise Unauthenticated("Authentication required")

        clean_device_id = device_id.strip() if isinstance(device_id, str) else ""
        if not clean_device_id:
            raise InvalidInput("Device ID is required")

        farm_uuid: Optional[uuid.UUID] = None
        if farm_id is not None and farm_id != "":
            farm_uuid = parse_uuid(farm_id)
            if farm_uuid is None:
                raise InvalidInput("Invalid farm ID")

        target_uuid: Optional[uuid.UUID] = None
        if target_user_id is not None and target_user_id != "":
            if not requester.is_admin:
                raise Forbidden("Only administrators can claim a device for another user")
            target_uuid = parse_uuid(target_user_id)
            if target_uuid is None:
                raise InvalidInput("Invalid target user ID")

        try:
            return self._claim(db, requester, clean_device_id, farm_uuid, target_uuid)
        except ClaimError:
            raise
        except Exception:
            db.rollback()
            logger.exception(
                "Claim failed unexpectedly",
                extra={"device_id": clean_device_id, "requester_id": str(requester.user_id)},
            )
            raise UnexpectedClaimError("Failed to claim device. Please try again.")

    def _claim(
        self,
        db: Session,
        requester: SessionUser,
        device_id: str,
        farm_uuid: Optional[uuid.UUID],
        target_uuid: Optional[uuid.UUID],
    ) -> ClaimResult:
        # ---------------------------------------------------------------------------
        # STEP 2: Load device, then farm (farm is authorized before the device
        # is touched)
        # ---------------------------------------------------------------------------
        device = self._load_device(db, device_id)
        if device is None:
            raise DeviceNotFound(
                f'Device "{device_id}" does not exist in our system. '
                "Please verify the device ID."
            )

        farm: Optional[Farm] = None
        if farm_uuid is not None:
            try:
                farm = farm_service.resolve_farm_for_requester(
                    db, farm_uuid, requester.user_id, requester.is_admin
                )
            except FarmMissing:
                raise FarmNotFound("Farm not found")
            except FarmAccessDenied:
                raise Forbidden("You do not have access to this farm")

        # New owner: the requester, or the admin-chosen target
        new_owner_id = requester.user_id
        new_owner_email = requester.email
        if target_uuid is not None and target_uuid != requester.user_id:
            target = db.get(User, target_uuid)
            if target is None:
                raise InvalidInput("Target user not found")
            new_owner_id = target.id
            new_owner_email = target.email

        # ---------------------------------------------------------------------------
        # STEP 3: Ownership classification
        # ---------------------------------------------------------------------------
        observed_owner = device.owner_id
        ownership = classify_ownership(device, new_owner_id)

        if ownership is Ownership.OWNED_BY_SELF:
            raise AlreadyClaimed(
                f'You have already added device "{device_id}" to your dashboard.'
            )

        if ownership is Ownership.OWNED_BY_OTHER and not requester.is_admin:
            owner_label = self._describe_owner(db, observed_owner)
            raise OwnedByAnotherUser(
                f'Device "{device_id}" is already registered with {owner_label}. '
                "Contact support if this is incorrect."
            )

        # ---------------------------------------------------------------------------
        # STEP 4: Compare-and-swap on owner_id
        # ---------------------------------------------------------------------------
        claimed_at = datetime.now(timezone.utc)
        values = {
            "owner_id": new_owner_id,
            "claimed_by_email": new_owner_email.lower(),
            "claimed_at": claimed_at,
            "status": DeviceStatus.CLAIMED,
            "updated_at": claimed_at,
        }
        if farm is not None:
            values["farm_id"] = farm.id

        stmt = update(Device).where(Device.device_id == device_id)
        if observed_owner is None:
            stmt = stmt.where(Device.owner_id.is_(None))
        else:
            # Admin takeover: still conditional, so two racing admins can't both win
            stmt = stmt.where(Device.owner_id == observed_owner)
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        result = db.execute(stmt)
        if result.rowcount == 0:
            db.rollback()
            logger.info(
                "Claim lost a race",
                extra={"device_id": device_id, "requester_id": str(requester.user_id)},
            )
            raise ClaimRaceLost(
                "Device was claimed by another user while you were submitting. "
                "Please try a different device."
            )
        db.commit()

        took_over = ownership is Ownership.OWNED_BY_OTHER
        logger.info(
            "Device claimed",
            extra={
                "device_id": device_id,
                "owner_id": str(new_owner_id),
                "previous_owner_id": str(observed_owner) if observed_owner else None,
                "takeover": took_over,
            },
        )

        # ---------------------------------------------------------------------------
        # STEP 5: Re-tag historical readings (best-effort)
        # ---------------------------------------------------------------------------
        transferred = self._transfer_readings(db, device_id, new_owner_id, claimed_at)

        refreshed = self._reload_summary(db, device_id)
        name, location = refreshed if refreshed else (device_id, None)

        return ClaimResult(
            device_id=device_id,
            name=name or device_id,
            location=location or UNKNOWN_LOCATION,
            historical_readings_transferred=transferred,
            claimed_at=claimed_at,
            owner_id=new_owner_id,
            took_over=took_over,
        )

    # ---------------------------------------------------------------------------
    # HELPERS
    # ---------------------------------------------------------------------------

    def _load_device(self, db: Session, device_id: str) -> Optional[Device]:
        return db.scalar(select(Device).where(Device.device_id == device_id))

    def _describe_owner(self, db: Session, owner_id: Optional[uuid.UUID]) -> str:
        """
        Name or email of the current owner, for the conflict message.

        Never raises: any lookup problem degrades to "another user".
        """
        fallback = "another user"
        if owner_id is None:
            return fallback
        try:
            owner = db.get(User, owner_id)
        except SQLAlchemyError:
            db.rollback()
            logger.warning("Owner lookup failed", extra={"owner_id": str(owner_id)}, exc_info=True)
            return fallback
        if owner is None:
            return fallback
        return owner.name or owner.email or fallback

    def _transfer_readings(
        self,
        db: Session,
        device_id: str,
        new_owner_id: uuid.UUID,
        transferred_at: datetime,
    ) -> int:
        """
        Point every reading of the device at its new owner.

        Returns the number of rows updated, or 0 if the update failed.
        """
        try:
            result = db.execute(
                update(SensorReading)
                .where(SensorReading.device_id == device_id)
                .values(owner_id=new_owner_id, transferred_at=transferred_at)
                .execution_options(synchronize_session=False)
            )
            db.commit()
            return result.rowcount or 0
        except SQLAlchemyError:
            db.rollback()
            logger.exception(
                "Telemetry transfer failed; claim kept",
                extra={"device_id": device_id, "owner_id": str(new_owner_id)},
            )
            return 0

    def _reload_summary(self, db: Session, device_id: str) -> Optional[tuple[str, Optional[str]]]:
        """Re-read name and location for the response; None if the read fails."""
        try:
            row = db.execute(
                select(Device.name, Device.location).where(Device.device_id == device_id)
            ).first()
        except SQLAlchemyError:
            db.rollback()
            logger.warning("Post-claim re-read failed", extra={"device_id": device_id}, exc_info=True)
            return None
        if row is None:
            return None
        return row.name, row.location


# Singleton instance
claim_service = ClaimService()
