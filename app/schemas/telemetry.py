"""
Telemetry schemas - device uploads and the readings returned to dashboards.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import CamelModel


class JsonUpload(CamelModel):
    """
    Schema for POST /iot/upload-json.

    data is one comma-separated record, in this order:
        su_id, avg_humidity, avg_temperature, avg_moisture1..4,
        avg_lipo_voltage, avg_rtc_battery, timestamp[, received_at]

    Example request body:
    {
        "data": "SU4_250719_154003,58.90,31.20,4001,4095,3982,3900,3.812,3.951,2025-07-19T15:40:03Z",
        "deviceId": "SU4_250719_154003",
        "apiKey": "key_su4_2025"
    }
    """
    data: Optional[str] = None
    device_id: Optional[str] = None
    api_key: Optional[str] = None


class UploadResponse(CamelModel):
    success: bool = True
    message: str
    device_id: str
    records_processed: int

    # device_status: "unclaimed" or "claimed"
    device_status: str

    # assigned_to: owner's user id, None while unclaimed
    assigned_to: Optional[str] = None


class ReadingValues(CamelModel):
    """Measurement block shared by currentReadings and each history point."""
    moisture: float
    moisture1: float
    moisture2: float
    moisture3: float
    moisture4: float
    humidity: float
    temperature: float
    lip_voltage: float
    rtc_battery: float
    data_points: int


class ReadingOut(ReadingValues):
    timestamp: datetime


class DeviceBox(BaseModel):
    """
    One device card on the dashboard.

    box_id keeps its snake_case name; the charts and the map look it up
    under that key.
    """
    model_config = ConfigDict(populate_by_name=True)

    box_id: str
    name: str
    location: str
    latitude: float
    longitude: float
    is_online: bool = Field(alias="isOnline")
    last_seen: Optional[datetime] = Field(alias="lastSeen")
    farm_id: Optional[str] = Field(None, alias="farmId")
    farm_name: Optional[str] = Field(None, alias="farmName")
    current_readings: Optional[ReadingValues] = Field(alias="currentReadings")
    readings: list[ReadingOut]


class DashboardDevicesResponse(BaseModel):
    success: bool = True
    boxes: list[DeviceBox]
