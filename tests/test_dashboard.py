"""
Tests for GET /dashboard/devices.
"""

import uuid

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.services.farms import farm_service


class TestDashboardDevices:

    def test_only_own_devices(
        self, client: TestClient, auth_headers, test_user, other_user, make_device
    ):
        make_device("SU4_MINE", owner=test_user)
        make_device("SU4_THEIRS", owner=other_user)
        make_device("SU4_FREE")

        response = client.get("/dashboard/devices", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert [b["box_id"] for b in data["boxes"]] == ["SU4_MINE"]

    def test_legacy_email_ownership(self, client: TestClient, auth_headers, test_user, make_device):
        make_device("SU4_OLD", claimed_by_email=test_user.email)
        response = client.get("/dashboard/devices", headers=auth_headers)
        assert [b["box_id"] for b in response.json()["boxes"]] == ["SU4_OLD"]

    def test_box_shape(
        self, client: TestClient, auth_headers, test_user, make_device, add_readings, db: Session
    ):
        farm = farm_service.create_farm(db, test_user.id, "North Orchard")
        make_device("SU4_001", owner=test_user, farm_id=farm.id, is_online=True)
        add_readings("SU4_001", count=3)

        box = client.get("/dashboard/devices", headers=auth_headers).json()["boxes"][0]

        assert box["name"] == "Box SU4_001"
        assert box["isOnline"] is True
        assert box["farmId"] == str(farm.id)
        assert box["farmName"] == "North Orchard"
        # Newest first; currentReadings is the newest row
        assert [r["moisture1"] for r in box["readings"]] == [2, 1, 0]
        assert box["currentReadings"]["moisture1"] == 2
        assert box["currentReadings"]["lipVoltage"] == 3.812

    def test_defaults_for_sparse_device(
        self, client: TestClient, auth_headers, test_user, make_device
    ):
        make_device("SU4_001", owner=test_user, location=None, latitude=None, longitude=None)

        box = client.get("/dashboard/devices", headers=auth_headers).json()["boxes"][0]

        assert box["location"] == "Unknown Location"
        assert (box["latitude"], box["longitude"]) == (0, 0)
        assert box["currentReadings"] is None
        assert box["readings"] == []

    def test_farm_filter(
        self, client: TestClient, auth_headers, test_user, make_device, db: Session
    ):
        farm = farm_service.create_farm(db, test_user.id, "North Orchard")
        make_device("SU4_IN", owner=test_user, farm_id=farm.id)
        make_device("SU4_OUT", owner=test_user)

        response = client.get(f"/dashboard/devices?farmId={farm.id}", headers=auth_headers)
        assert [b["box_id"] for b in response.json()["boxes"]] == ["SU4_IN"]

    def test_unknown_farm_is_empty(self, client: TestClient, auth_headers, test_user, make_device):
        make_device("SU4_001", owner=test_user)
        response = client.get(f"/dashboard/devices?farmId={uuid.uuid4()}", headers=auth_headers)
        assert response.json()["boxes"] == []

    def test_invalid_farm_id(self, client: TestClient, auth_headers):
        response = client.get("/dashboard/devices?farmId=nope", headers=auth_headers)
        assert response.status_code == 400

    def test_requires_auth(self, client: TestClient):
        assert client.get("/dashboard/devices").status_code == 401
