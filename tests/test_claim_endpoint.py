"""
Tests for POST /devices/claim (and its GET liveness check).

Failures must come back as {"success": false, "error": "..."} with the
status of the error kind.
"""

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.device import Device
from app.services.claims import claim_service


class TestClaimEndpoint:

    def test_claim_success_shape(self, client: TestClient, auth_headers, make_device, add_readings):
        make_device("SU4_250719_154003")
        add_readings("SU4_250719_154003", count=4)

        response = client.post(
            "/devices/claim",
            json={"deviceId": "SU4_250719_154003"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == 'Device "SU4_250719_154003" successfully added to your dashboard!'
        assert data["device"]["deviceId"] == "SU4_250719_154003"
        assert data["device"]["name"] == "Box SU4_250719_154003"
        assert data["device"]["location"] == "Block A"
        assert data["device"]["historicalReadingsTransferred"] == 4
        assert "claimedAt" in data["device"]

    def test_claim_without_session(self, client: TestClient, make_device):
        make_device("SU4_001")
        response = client.post("/devices/claim", json={"deviceId": "SU4_001"})
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Authentication required"}

    def test_claim_with_bad_token(self, client: TestClient, make_device):
        make_device("SU4_001")
        response = client.post(
            "/devices/claim",
            json={"deviceId": "SU4_001"},
            headers={"Authorization": "Bearer not-a-token"},
        )
        assert response.status_code == 401

    def test_claim_missing_device_id(self, client: TestClient, auth_headers):
        response = client.post("/devices/claim", json={}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Device ID is required"}

    def test_claim_non_string_device_id(self, client: TestClient, auth_headers):
        response = client.post("/devices/claim", json={"deviceId": 1234}, headers=auth_headers)
        assert response.status_code == 400

    def test_claim_unknown_device(self, client: TestClient, auth_headers):
        response = client.post(
            "/devices/claim", json={"deviceId": "ZZZ_NOPE"}, headers=auth_headers
        )
        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert "ZZZ_NOPE" in body["error"]

    def test_claim_owned_by_other(
        self, client: TestClient, auth_headers, other_user, make_device, db: Session
    ):
        make_device("SU4_001", owner=other_user)
        response = client.post(
            "/devices/claim", json={"deviceId": "SU4_001"}, headers=auth_headers
        )
        assert response.status_code == 409
        assert "Neighbor Farms" in response.json()["error"]

        db.expire_all()
        owner = db.scalar(select(Device.owner_id).where(Device.device_id == "SU4_001"))
        assert owner == other_user.id

    def test_claim_twice(self, client: TestClient, auth_headers, make_device):
        make_device("SU4_001")
        first = client.post("/devices/claim", json={"deviceId": "SU4_001"}, headers=auth_headers)
        second = client.post("/devices/claim", json={"deviceId": "SU4_001"}, headers=auth_headers)
        assert first.status_code == 200
        assert second.status_code == 409
        assert "already added" in second.json()["error"]

    def test_claim_for_target_as_non_admin(
        self, client: TestClient, auth_headers, other_user, make_device
    ):
        make_device("SU4_001")
        response = client.post(
            "/devices/claim",
            json={"deviceId": "SU4_001", "targetUserId": str(other_user.id)},
            headers=auth_headers,
        )
        assert response.status_code == 403

    def test_admin_claim_for_target(
        self, client: TestClient, admin_headers, test_user, other_user, make_device, db: Session
    ):
        make_device("SU4_001", owner=other_user)
        response = client.post(
            "/devices/claim",
            json={"deviceId": "SU4_001", "targetUserId": str(test_user.id)},
            headers=admin_headers,
        )
        assert response.status_code == 200

        db.expire_all()
        owner = db.scalar(select(Device.owner_id).where(Device.device_id == "SU4_001"))
        assert owner == test_user.id

    def test_claim_invalid_farm_id(self, client: TestClient, auth_headers, make_device):
        make_device("SU4_001")
        response = client.post(
            "/devices/claim",
            json={"deviceId": "SU4_001", "farmId": "nope"},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid farm ID"

    def test_unexpected_failure_uses_envelope(
        self, client: TestClient, auth_headers, make_device, monkeypatch
    ):
        make_device("SU4_001")

        def broken_load(session, device_id):
            raise RuntimeError("boom")

        monkeypatch.setattr(claim_service, "_load_device", broken_load)

        response = client.post("/devices/claim", json={"deviceId": "SU4_001"}, headers=auth_headers)

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "Failed to claim device. Please try again.",
        }

    def test_liveness_check(self, client: TestClient):
        response = client.get("/devices/claim")
        assert response.status_code == 200
        assert response.json()["message"] == "Device claim endpoint is working"
