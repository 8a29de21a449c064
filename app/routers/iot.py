"""
IoT router - endpoints called by the field devices themselves.

No user session here: devices authenticate uploads with their API key.

- POST /iot/register-device → explicit registration (unassigned until claimed)
- POST /iot/upload-csv      → multipart batch upload (deviceId, apiKey, csvFile)
- POST /iot/upload-json     → single comma-separated record

Responses use the {"success": ..., ...} envelope the firmware parses.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.security import generate_device_api_key
from app.db.session import get_db
from app.models.device import Device, DeviceStatus
from app.schemas.device import DeviceRegister
from app.schemas.telemetry import JsonUpload, UploadResponse
from app.services.ingestion import (
    IngestionError,
    IngestionResult,
    ensure_device,
    ingest,
    parse_csv_upload,
    parse_json_record,
)

logger = logging.getLogger("epiciot.routers.iot")

router = APIRouter(prefix="/iot", tags=["iot"])

UNCLAIMED_MESSAGE = "Data uploaded successfully. Device is available for user claiming."


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _upload_response(result: IngestionResult, claimed_message: str) -> UploadResponse:
    return UploadResponse(
        message=UNCLAIMED_MESSAGE if result.unclaimed else claimed_message,
        device_id=result.device_id,
        records_processed=result.records_processed,
        device_status=result.device_status,
        assigned_to=result.assigned_to,
    )


# ---------------------------------------------------------------------------
# REGISTRATION
# ---------------------------------------------------------------------------

@router.post("/register-device", status_code=status.HTTP_201_CREATED)
def register_device(payload: DeviceRegister, db: Session = Depends(get_db)):
    """
    Register a device ahead of its first upload.

    Raises (as envelope):
        400: a required field is missing
        409: device id already registered
    """
    device_id = (payload.device_id or "").strip()
    if (
        not device_id
        or not payload.name
        or not payload.location
        or payload.latitude is None
        or payload.longitude is None
    ):
        return _error(
            "Missing required fields: deviceId, name, location, latitude, longitude",
            status.HTTP_400_BAD_REQUEST,
        )

    if db.scalar(select(Device.id).where(Device.device_id == device_id)) is not None:
        return _error("Device already registered", status.HTTP_409_CONFLICT)

    api_key = payload.api_key or generate_device_api_key(device_id)
    device = Device(
        device_id=device_id,
        name=payload.name,
        location=payload.location,
        latitude=payload.latitude,
        longitude=payload.longitude,
        api_key=api_key,
        owner_id=None,
        status=DeviceStatus.UNASSIGNED,
        is_online=False,
    )
    db.add(device)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Device registration failed", extra={"device_id": device_id})
        return _error("Failed to register device", status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.info("Device registered", extra={"device_id": device_id})
    return {
        "success": True,
        "message": "Device registered successfully",
        "deviceId": device_id,
        "apiKey": api_key,
    }


# ---------------------------------------------------------------------------
# UPLOADS
# ---------------------------------------------------------------------------

@router.post("/upload-csv", response_model=UploadResponse)
def upload_csv(
    device_id: Optional[str] = Form(None, alias="deviceId"),
    api_key: Optional[str] = Form(None, alias="apiKey"),
    csv_file: Optional[UploadFile] = File(None, alias="csvFile"),
    db: Session = Depends(get_db),
):
    """
    Batch upload from a device's SD card log.

    Unknown device ids are auto-registered with the presented key; known
    devices must present their stored key (401 otherwise).
    """
    device_id = (device_id or "").strip()
    if not device_id or not api_key or csv_file is None:
        return _error(
            "Missing required fields: deviceId, apiKey, or csvFile",
            status.HTTP_400_BAD_REQUEST,
        )

    try:
        ensure_device(db, device_id, api_key, verify_key=True)
        text = csv_file.file.read().decode("utf-8", errors="replace")
        readings = parse_csv_upload(text)
        result = ingest(db, device_id, api_key, readings, verify_key=True)
    except IngestionError as e:
        return _error(e.message, e.status_code)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("CSV upload failed", extra={"device_id": device_id})
        return _error("Upload failed", status.HTTP_500_INTERNAL_SERVER_ERROR)

    return _upload_response(result, "CSV data uploaded successfully")


@router.post("/upload-json", response_model=UploadResponse)
def upload_json(payload: JsonUpload, db: Session = Depends(get_db)):
    """
    Single-record upload from the cellular modem.

    The device id defaults to the record's first field. The API key is not
    checked on this path; a missing key is generated for new devices.
    """
    if not payload.data:
        return _error("Missing required field: data", status.HTTP_400_BAD_REQUEST)

    try:
        reading = parse_json_record(payload.data)
        device_id = (payload.device_id or reading.source_id or "").strip()
        if not device_id:
            return _error("Missing device id", status.HTTP_400_BAD_REQUEST)
        result = ingest(db, device_id, payload.api_key, [reading], verify_key=False)
    except IngestionError as e:
        return _error(e.message, e.status_code)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("JSON upload failed")
        return _error("JSON upload failed", status.HTTP_500_INTERNAL_SERVER_ERROR)

    return _upload_response(result, "JSON data uploaded successfully")
