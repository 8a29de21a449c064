"""
Device schemas - request/response formats for the device registry and the
claim workflow.

Request models are deliberately loose (everything optional, Any where the
client could send the wrong type). The routes answer missing or malformed
fields with 400 and a readable message instead of FastAPI's generic 422.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from app.schemas.common import CamelModel


# ---------------------------------------------------------------------------
# REQUEST SCHEMAS (what the client sends)
# ---------------------------------------------------------------------------

class DeviceRegister(CamelModel):
    """
    Schema for POST /iot/register-device.

    Example request body:
    {
        "deviceId": "SU4_250719_154003",
        "name": "North field",
        "location": "Block A",
        "latitude": 37.35,
        "longitude": -121.95,
        "apiKey": "key_su4_2025"
    }
    """
    device_id: Optional[str] = None
    name: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    # api_key: generated as key_<deviceId>_<epoch-ms> when omitted
    api_key: Optional[str] = None


class ClaimRequest(CamelModel):
    """
    Schema for POST /devices/claim.

    targetUserId is honoured for admins only (takeover on behalf of a user).
    """
    device_id: Any = None
    farm_id: Any = None
    target_user_id: Any = None


class DeviceConfigUpdate(CamelModel):
    """PATCH /devices/{deviceId}/config body; config must be a JSON object."""
    config: Any = None


class AssignFarmRequest(CamelModel):
    """PATCH /devices/assign-farm body."""
    device_id: Optional[str] = None
    farm_id: Optional[str] = None


# ---------------------------------------------------------------------------
# RESPONSE SCHEMAS (what the server returns)
# ---------------------------------------------------------------------------

class ClaimedDevice(CamelModel):
    """Device summary returned by a successful claim."""
    device_id: str
    name: str
    location: str
    historical_readings_transferred: int
    claimed_at: datetime


class ClaimResponse(CamelModel):
    """
    Example response:
    {
        "success": true,
        "message": "Device \"SU4_250719_154003\" successfully added to your dashboard!",
        "device": {
            "deviceId": "SU4_250719_154003",
            "name": "Auto-registered SU4_250719_154003",
            "location": "Field Location - Auto-registered",
            "historicalReadingsTransferred": 42,
            "claimedAt": "2025-07-19T16:02:18Z"
        }
    }
    """
    success: bool = True
    message: str
    device: ClaimedDevice


class DeviceOut(CamelModel):
    """Registry view of a device (registration and config responses)."""
    device_id: str
    name: str
    location: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    status: str
    farm_id: Optional[uuid.UUID] = None
    is_online: bool
    last_seen: Optional[datetime]
    config: Optional[dict] = None
    created_at: datetime
