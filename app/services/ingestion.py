"""
Ingestion service - accepts telemetry pushed by devices.

Two upload formats:
- CSV file (POST /iot/upload-csv): header row plus one row per reading
- JSON record (POST /iot/upload-json): one comma-separated record in "data"

Unknown device ids are auto-registered as unassigned, so any device that has
ever sent data can be claimed. Known devices must present their stored key
(CSV uploads); ownership plays no part in that check.
"""

import csv
import io
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import generate_device_api_key
from app.models.device import Device, DeviceStatus
from app.models.reading import SensorReading

logger = logging.getLogger("epiciot.services.ingestion")

# Columns every CSV upload must carry (header names are trimmed first)
REQUIRED_CSV_COLUMNS = (
    "scu_id",
    "moisture",
    "moisture1",
    "moisture2",
    "moisture3",
    "moisture4",
    "humidity",
    "temperature",
    "lipVoltage",
    "rtcBattery",
    "dataPoints",
    "timestamp",
)

# su_id, avg_humidity, avg_temperature, avg_moisture1..4, avg_lipo_voltage,
# avg_rtc_battery, timestamp - received_at is optional
JSON_RECORD_MIN_FIELDS = 10


# ---------------------------------------------------------------------------
# ERRORS
# ---------------------------------------------------------------------------

class IngestionError(Exception):
    """Rejected upload. status_code is the HTTP status routers use."""
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidDeviceKey(IngestionError):
    status_code = 401


# ---------------------------------------------------------------------------
# DATA
# ---------------------------------------------------------------------------

@dataclass
class ReadingData:
    """One parsed reading, not yet bound to a device row."""
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
    timestamp: datetime
    raw_timestamp: Optional[str] = None
    received_at: Optional[datetime] = None
    source_id: Optional[str] = None


@dataclass
class IngestionResult:
    device_id: str
    records_processed: int
    unclaimed: bool
    assigned_to: Optional[str]

    @property
    def device_status(self) -> str:
        return "unclaimed" if self.unclaimed else "claimed"


# ---------------------------------------------------------------------------
# PARSING
# ---------------------------------------------------------------------------

def to_number(value) -> float:
    """Lenient numeric conversion: blanks and garbage become 0."""
    if value is None:
        return 0.0
    try:
        number = float(str(value).strip())
    except ValueError:
        return 0.0
    # NaN and inf count as garbage too
    if number != number or number in (float("inf"), float("-inf")):
        return 0.0
    return number


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp ("2025-07-10T03:15:29Z" or with an offset).

    Naive values are taken as UTC. Returns None if unparseable.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_csv_upload(text: str) -> list[ReadingData]:
    """
    Parse a CSV upload into readings.

    Raises:
        IngestionError: empty file, missing required columns, or a row with
                        more cells than the header
    """
    if text.startswith("\ufeff"):
        text = text[1:]

    reader = csv.reader(io.StringIO(text))
    try:
        header = next(reader)
    except StopIteration:
        raise IngestionError("CSV file contains no valid data rows")
    except csv.Error as exc:
        raise IngestionError(f"CSV parsing failed: {exc}")

    columns = [name.strip() for name in header]
    missing = [name for name in REQUIRED_CSV_COLUMNS if name not in columns]
    if missing:
        raise IngestionError(f"Missing required CSV columns: {', '.join(missing)}")

    readings: list[ReadingData] = []
    received_at = datetime.now(timezone.utc)
    try:
        for line_number, cells in enumerate(reader, start=2):
            if not cells or all(not cell.strip() for cell in cells):
                continue
            if len(cells) > len(columns):
                raise IngestionError(
                    f"CSV parsing failed: row {line_number} has {len(cells)} fields, "
                    f"expected {len(columns)}"
                )
            row = dict(zip(columns, cells))
            raw_timestamp = (row.get("timestamp") or "").strip()
            readings.append(
                ReadingData(
                    moisture=to_number(row.get("moisture")),
                    moisture1=to_number(row.get("moisture1")),
                    moisture2=to_number(row.get("moisture2")),
                    moisture3=to_number(row.get("moisture3")),
                    moisture4=to_number(row.get("moisture4")),
                    humidity=to_number(row.get("humidity")),
                    temperature=to_number(row.get("temperature")),
                    lip_voltage=to_number(row.get("lipVoltage")),
                    rtc_battery=to_number(row.get("rtcBattery")),
                    data_points=int(to_number(row.get("dataPoints"))),
                    timestamp=parse_timestamp(raw_timestamp) or received_at,
                    raw_timestamp=raw_timestamp or None,
                    received_at=received_at,
                    source_id=(row.get("scu_id") or "").strip() or None,
                )
            )
    except csv.Error as exc:
        raise IngestionError(f"CSV parsing failed: {exc}")

    if not readings:
        raise IngestionError("CSV file contains no valid data rows")
    return readings


def parse_json_record(data: str) -> ReadingData:
    """
    Parse the comma-separated record sent to /iot/upload-json.

    The overall moisture is the mean of the four probes and a JSON upload
    always counts as a single data point.

    Raises:
        IngestionError: fewer than 10 fields
    """
    parts = data.strip().split(",")
    if len(parts) < JSON_RECORD_MIN_FIELDS:
        raise IngestionError(
            f"Invalid data format. Expected at least {JSON_RECORD_MIN_FIELDS} fields, "
            f"got {len(parts)}"
        )

    probes = [to_number(parts[i]) for i in range(3, 7)]
    now = datetime.now(timezone.utc)
    raw_timestamp = parts[9].strip()
    received_raw = parts[10].strip() if len(parts) > 10 else ""

    return ReadingData(
        moisture=sum(probes) / 4,
        moisture1=probes[0],
        moisture2=probes[1],
        moisture3=probes[2],
        moisture4=probes[3],
        humidity=to_number(parts[1]),
        temperature=to_number(parts[2]),
        lip_voltage=to_number(parts[7]),
        rtc_battery=to_number(parts[8]),
        data_points=1,
        timestamp=parse_timestamp(raw_timestamp) or now,
        raw_timestamp=raw_timestamp or None,
        received_at=parse_timestamp(received_raw) or now,
        source_id=parts[0].strip() or None,
    )


# ---------------------------------------------------------------------------
# DEVICE REGISTRATION & STORAGE
# ---------------------------------------------------------------------------

def ensure_device(
    db: Session,
    device_id: str,
    api_key: Optional[str],
    verify_key: bool = True,
) -> Device:
    """
    Return the device, auto-registering it on first contact.

    Auto-registered devices are unassigned, carry placeholder name, location
    and coordinates, and keep the presented key (or a generated one) as
    their credential.

    Raises:
        InvalidDeviceKey: verify_key is on and the key doesn't match
    """
    device = db.scalar(select(Device).where(Device.device_id == device_id))

    if device is None:
        device = Device(
            device_id=device_id,
            name=f"Auto-registered {device_id}",
            location="Field Location - Auto-registered",
            latitude=settings.AUTO_REGISTER_LATITUDE,
            longitude=settings.AUTO_REGISTER_LONGITUDE,
            owner_id=None,
            api_key=api_key or generate_device_api_key(device_id),
            status=DeviceStatus.AUTO_REGISTERED,
            is_online=False,
            last_seen=datetime.now(timezone.utc),
        )
        db.add(device)
        db.commit()
        db.refresh(device)
        logger.info("Auto-registered device", extra={"device_id": device_id})
        return device

    if verify_key and device.api_key != api_key:
        logger.warning("API key mismatch", extra={"device_id": device_id})
        raise InvalidDeviceKey("Invalid API key for this device")

    return device


def ingest(
    db: Session,
    device_id: str,
    api_key: Optional[str],
    readings: list[ReadingData],
    verify_key: bool = True,
) -> IngestionResult:
    """
    Store readings for a device and mark it online.

    Each reading gets the device's current owner as its owner snapshot.
    """
    device = ensure_device(db, device_id, api_key, verify_key=verify_key)
    owner_id = device.owner_id

    db.add_all(
        SensorReading(
            device_id=device_id,
            owner_id=owner_id,
            moisture=reading.moisture,
            moisture1=reading.moisture1,
            moisture2=reading.moisture2,
            moisture3=reading.moisture3,
            moisture4=reading.moisture4,
            humidity=reading.humidity,
            temperature=reading.temperature,
            lip_voltage=reading.lip_voltage,
            rtc_battery=reading.rtc_battery,
            data_points=reading.data_points,
            timestamp=reading.timestamp,
            raw_timestamp=reading.raw_timestamp,
            received_at=reading.received_at,
        )
        for reading in readings
    )

    # Liveness only; never touches ownership columns
    now = datetime.now(timezone.utc)
    db.execute(
        update(Device)
        .where(Device.device_id == device_id)
        .values(is_online=True, last_seen=now, last_upload=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()

    logger.info(
        "Stored readings",
        extra={"device_id": device_id, "count": len(readings), "unclaimed": owner_id is None},
    )

    return IngestionResult(
        device_id=device_id,
        records_processed=len(readings),
        unclaimed=owner_id is None,
        assigned_to=str(owner_id) if owner_id is not None else None,
    )
