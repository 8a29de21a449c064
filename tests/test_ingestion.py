"""
Tests for telemetry ingestion (app.services.ingestion and the /iot endpoints).

These tests verify:
- CSV and JSON record parsing (lenient numbers, timestamps, BOM, bad rows)
- Auto-registration on first upload and API key checks
- Uploads never change ownership
- Device registration
"""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.device import Device, DeviceStatus
from app.models.reading import SensorReading
from app.services.ingestion import (
    IngestionError,
    InvalidDeviceKey,
    ensure_device,
    ingest,
    parse_csv_upload,
    parse_json_record,
    parse_timestamp,
    to_number,
)

CSV_HEADER = (
    "scu_id,moisture,moisture1,moisture2,moisture3,moisture4,humidity,"
    "temperature,lipVoltage,rtcBattery,dataPoints,timestamp"
)

CSV_BODY = (
    CSV_HEADER + "\n"
    "SU4_001,3500,4001,4095,3982,3900,58.9,31.2,3.812,3.951,12,2025-07-19T15:40:03Z\n"
    "SU4_001,3400,4000,4090,3980,abc,59.1,31.0,3.810,3.950,12,2025-07-19T16:40:03Z\n"
)

JSON_RECORD = "SU4_250719_154003,58.90,31.20,4000,4100,3900,4000,3.812,3.951,2025-07-19T15:40:03Z"


class TestParsing:

    @pytest.mark.parametrize(
        "raw, expected",
        [("12.5", 12.5), (" 7 ", 7.0), ("", 0.0), (None, 0.0), ("abc", 0.0), ("nan", 0.0), ("inf", 0.0)],
    )
    def test_to_number(self, raw, expected):
        assert to_number(raw) == expected

    def test_parse_timestamp(self):
        parsed = parse_timestamp("2025-07-10T03:15:29Z")
        assert parsed == datetime(2025, 7, 10, 3, 15, 29, tzinfo=timezone.utc)
        assert parse_timestamp("2025-07-10T03:15:29").tzinfo == timezone.utc
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp("") is None

    def test_csv_rows(self):
        readings = parse_csv_upload(CSV_BODY)
        assert len(readings) == 2
        first, second = readings
        assert first.moisture == 3500
        assert first.lip_voltage == pytest.approx(3.812)
        assert first.data_points == 12
        assert first.timestamp == datetime(2025, 7, 19, 15, 40, 3, tzinfo=timezone.utc)
        assert first.raw_timestamp == "2025-07-19T15:40:03Z"
        assert first.source_id == "SU4_001"
        # Garbage cells become 0
        assert second.moisture4 == 0

    def test_csv_bom_and_padded_headers(self):
        padded = CSV_HEADER.replace(",", " , ")
        text = "\ufeff" + padded + "\n" + CSV_BODY.splitlines()[1] + "\n"
        assert len(parse_csv_upload(text)) == 1

    def test_csv_missing_columns(self):
        with pytest.raises(IngestionError) as exc:
            parse_csv_upload("scu_id,moisture\nSU4_001,1\n")
        assert exc.value.message.startswith("Missing required CSV columns:")
        assert "humidity" in exc.value.message

    def test_csv_no_rows(self):
        with pytest.raises(IngestionError) as exc:
            parse_csv_upload(CSV_HEADER + "\n\n")
        assert exc.value.message == "CSV file contains no valid data rows"

    def test_csv_empty_file(self):
        with pytest.raises(IngestionError):
            parse_csv_upload("")

    def test_csv_row_with_extra_cells(self):
        with pytest.raises(IngestionError) as exc:
            parse_csv_upload(CSV_HEADER + "\n" + "1," * 13 + "1\n")
        assert "CSV parsing failed" in exc.value.message

    def test_csv_bad_timestamp_uses_receipt_time(self):
        row = "SU4_001,1,1,1,1,1,1,1,1,1,1,not-a-time"
        reading = parse_csv_upload(CSV_HEADER + "\n" + row + "\n")[0]
        assert reading.timestamp == reading.received_at
        assert reading.raw_timestamp == "not-a-time"

    def test_json_record(self):
        reading = parse_json_record(JSON_RECORD)
        assert reading.source_id == "SU4_250719_154003"
        assert reading.humidity == pytest.approx(58.9)
        assert reading.temperature == pytest.approx(31.2)
        assert reading.moisture == 4000
        assert (reading.moisture1, reading.moisture4) == (4000, 4000)
        assert reading.data_points == 1
        assert reading.timestamp == datetime(2025, 7, 19, 15, 40, 3, tzinfo=timezone.utc)

    def test_json_record_with_received_at(self):
        reading = parse_json_record(JSON_RECORD + ",2025-07-19T15:41:00Z")
        assert reading.received_at == datetime(2025, 7, 19, 15, 41, tzinfo=timezone.utc)

    def test_json_record_too_short(self):
        with pytest.raises(IngestionError) as exc:
            parse_json_record("SU4_001,1,2")
        assert "Expected at least 10 fields, got 3" in exc.value.message


class TestIngestService:

    def test_first_upload_auto_registers(self, db: Session):
        result = ingest(db, "SU4_NEW", "key_new", parse_csv_upload(CSV_BODY))

        assert result.records_processed == 2
        assert result.unclaimed is True
        assert result.device_status == "unclaimed"

        device = db.scalar(select(Device).where(Device.device_id == "SU4_NEW"))
        assert device.owner_id is None
        assert device.status == DeviceStatus.AUTO_REGISTERED
        assert device.api_key == "key_new"
        assert device.is_online is True
        assert device.last_upload is not None

    def test_wrong_key_rejected(self, db: Session, make_device):
        make_device("SU4_001")
        with pytest.raises(InvalidDeviceKey) as exc:
            ensure_device(db, "SU4_001", "stolen")
        assert exc.value.status_code == 401

    def test_key_not_checked_when_disabled(self, db: Session, make_device):
        device = make_device("SU4_001")
        assert ensure_device(db, "SU4_001", "anything", verify_key=False).id == device.id

    def test_readings_snapshot_owner(self, db: Session, test_user, make_device):
        make_device("SU4_001", owner=test_user)
        result = ingest(db, "SU4_001", "key_SU4_001", parse_csv_upload(CSV_BODY))

        assert result.unclaimed is False
        assert result.assigned_to == str(test_user.id)
        owners = db.scalars(select(SensorReading.owner_id)).all()
        assert owners == [test_user.id, test_user.id]

    def test_upload_does_not_touch_ownership(self, db: Session, test_user, make_device):
        make_device("SU4_001", owner=test_user)
        ingest(db, "SU4_001", "key_SU4_001", parse_csv_upload(CSV_BODY))

        db.expire_all()
        device = db.scalar(select(Device).where(Device.device_id == "SU4_001"))
        assert device.owner_id == test_user.id
        assert device.status == DeviceStatus.CLAIMED
        assert device.claimed_by_email == test_user.email


class TestRegisterDeviceEndpoint:

    def test_register(self, client: TestClient, db: Session):
        response = client.post(
            "/iot/register-device",
            json={
                "deviceId": "SU4_REG",
                "name": "North field",
                "location": "Block A",
                "latitude": 37.35,
                "longitude": -121.95,
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["deviceId"] == "SU4_REG"
        assert data["apiKey"].startswith("key_SU4_REG_")

        device = db.scalar(select(Device).where(Device.device_id == "SU4_REG"))
        assert device.owner_id is None
        assert device.status == DeviceStatus.UNASSIGNED

    def test_register_with_key(self, client: TestClient):
        response = client.post(
            "/iot/register-device",
            json={
                "deviceId": "SU4_REG",
                "name": "n",
                "location": "l",
                "latitude": 0,
                "longitude": 0,
                "apiKey": "my-key",
            },
        )
        assert response.json()["apiKey"] == "my-key"

    def test_register_missing_fields(self, client: TestClient):
        response = client.post("/iot/register-device", json={"deviceId": "SU4_REG"})
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Missing required fields: deviceId, name, location, latitude, longitude",
        }

    def test_register_duplicate(self, client: TestClient, make_device):
        make_device("SU4_REG")
        response = client.post(
            "/iot/register-device",
            json={"deviceId": "SU4_REG", "name": "n", "location": "l", "latitude": 1, "longitude": 1},
        )
        assert response.status_code == 409
        assert response.json()["error"] == "Device already registered"


class TestUploadEndpoints:

    def _upload_csv(self, client, device_id="SU4_001", api_key="key_SU4_001", body=CSV_BODY):
        return client.post(
            "/iot/upload-csv",
            data={"deviceId": device_id, "apiKey": api_key},
            files={"csvFile": ("SU4_001.csv", body.encode("utf-8"), "text/csv")},
        )

    def test_csv_upload_new_device(self, client: TestClient):
        response = self._upload_csv(client, device_id="SU4_NEW", api_key="fresh")
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Data uploaded successfully. Device is available for user claiming."
        assert data["recordsProcessed"] == 2
        assert data["deviceStatus"] == "unclaimed"
        assert data["assignedTo"] is None

    def test_csv_upload_claimed_device(self, client: TestClient, test_user, make_device):
        make_device("SU4_001", owner=test_user)
        response = self._upload_csv(client)
        assert response.status_code == 200
        assert response.json()["message"] == "CSV data uploaded successfully"
        assert response.json()["assignedTo"] == str(test_user.id)

    def test_csv_upload_wrong_key(self, client: TestClient, make_device, db: Session):
        make_device("SU4_001")
        response = self._upload_csv(client, api_key="wrong")
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Invalid API key for this device"}
        assert db.scalars(select(SensorReading)).all() == []

    def test_csv_upload_missing_fields(self, client: TestClient):
        response = client.post("/iot/upload-csv", data={"deviceId": "SU4_001"})
        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields: deviceId, apiKey, or csvFile"

    def test_csv_upload_bad_columns(self, client: TestClient, make_device):
        make_device("SU4_001")
        response = self._upload_csv(client, body="scu_id,moisture\nSU4_001,1\n")
        assert response.status_code == 400
        assert response.json()["error"].startswith("Missing required CSV columns")

    def test_json_upload(self, client: TestClient, db: Session):
        response = client.post("/iot/upload-json", json={"data": JSON_RECORD})
        assert response.status_code == 200
        data = response.json()
        assert data["deviceId"] == "SU4_250719_154003"
        assert data["recordsProcessed"] == 1

        reading = db.scalar(select(SensorReading))
        assert reading.device_id == "SU4_250719_154003"
        assert reading.moisture == 4000

    def test_json_upload_explicit_device(self, client: TestClient, test_user, make_device):
        make_device("SU4_001", owner=test_user)
        response = client.post(
            "/iot/upload-json", json={"data": JSON_RECORD, "deviceId": "SU4_001"}
        )
        assert response.json()["message"] == "JSON data uploaded successfully"

    def test_json_upload_missing_data(self, client: TestClient):
        response = client.post("/iot/upload-json", json={})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Missing required field: data"}

    def test_json_upload_short_record(self, client: TestClient):
        response = client.post("/iot/upload-json", json={"data": "SU4_001,1,2"})
        assert response.status_code == 400
