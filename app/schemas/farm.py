"""
Farm schemas - request/response formats for farm grouping.
"""

import uuid
from datetime import datetime
from typing import Optional

from app.schemas.common import CamelModel


class FarmCreate(CamelModel):
    """
    Schema for POST /farms.

    Example request body:
    {
        "name": "North Orchard",
        "description": "Almonds, drip irrigated",
        "location": "Gilroy, CA"
    }

    The name length rule (2..100 after trimming) is enforced by the farm
    service so the error is a 400 with a readable message.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None


class FarmDeviceAdd(CamelModel):
    """POST /farms/{farmId}/devices body."""
    device_id: Optional[str] = None


class FarmOut(CamelModel):
    id: uuid.UUID
    name: str
    description: Optional[str]
    location: Optional[str]
    created_at: datetime
