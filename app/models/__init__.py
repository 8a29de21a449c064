"""
ORM models. Importing this package registers every table on Base.metadata
(needed by Alembic autogenerate and by the test database setup).
"""

from app.models.user import User, UserRole
from app.models.farm import Farm
from app.models.device import Device, DeviceStatus
from app.models.reading import SensorReading
from app.models.invite import Invite, InviteStatus
from app.models.oauth_account import OAuthAccount

__all__ = [
    "User",
    "UserRole",
    "Farm",
    "Device",
    "DeviceStatus",
    "SensorReading",
    "Invite",
    "InviteStatus",
    "OAuthAccount",
]
