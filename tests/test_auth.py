"""
Tests for credentials authentication and the session token.

These tests verify:
- Login with email/password
- Open registration is off unless enabled
- Password changes
- GET /users/me and token validation
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import (
    create_access_token,
    decode_access_token,
    generate_device_api_key,
    generate_invite_token,
    hash_password,
    hash_token,
    verify_password,
)
from app.models.user import User


class TestSecurityHelpers:

    def test_password_hashing(self):
        hashed = hash_password("testpassword")
        assert hashed != "testpassword"
        assert verify_password("testpassword", hashed)
        assert not verify_password("wrong", hashed)

    def test_token_claims(self):
        token = create_access_token("user-1", "grower@example.com", "admin")
        payload = decode_access_token(token)
        assert payload["sub"] == "user-1"
        assert payload["email"] == "grower@example.com"
        assert payload["role"] == "admin"
        assert "exp" in payload

    def test_invite_token_hash(self):
        token = generate_invite_token()
        assert len(token) == 64
        assert hash_token(token) == hash_token(token)
        assert hash_token(token) != hash_token(generate_invite_token())

    def test_device_api_key_format(self):
        key = generate_device_api_key("SU4_001")
        prefix, _, millis = key.rpartition("_")
        assert prefix == "key_SU4_001"
        assert millis.isdigit()


class TestLogin:

    def test_login_success(self, client: TestClient, test_user):
        response = client.post(
            "/auth/login", json={"email": "grower@example.com", "password": "testpassword"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert decode_access_token(data["access_token"])["sub"] == str(test_user.id)

    def test_login_is_case_insensitive_on_email(self, client: TestClient, test_user):
        response = client.post(
            "/auth/login", json={"email": "Grower@Example.com", "password": "testpassword"}
        )
        assert response.status_code == 200

    def test_wrong_password(self, client: TestClient, test_user):
        response = client.post(
            "/auth/login", json={"email": "grower@example.com", "password": "nope"}
        )
        assert response.status_code == 401

    def test_unknown_user(self, client: TestClient):
        response = client.post(
            "/auth/login", json={"email": "ghost@example.com", "password": "whatever"}
        )
        assert response.status_code == 401

    def test_google_only_account(self, client: TestClient, db: Session):
        db.add(User(email="gmail@example.com", hashed_password=None, name="G"))
        db.commit()
        response = client.post(
            "/auth/login", json={"email": "gmail@example.com", "password": "whatever"}
        )
        assert response.status_code == 400

    def test_inactive_account(self, client: TestClient, test_user, db: Session):
        test_user.is_active = False
        db.commit()
        response = client.post(
            "/auth/login", json={"email": "grower@example.com", "password": "testpassword"}
        )
        assert response.status_code == 403


class TestRegister:

    def test_closed_by_default(self, client: TestClient):
        response = client.post(
            "/auth/register", json={"email": "new@example.com", "password": "longenough"}
        )
        assert response.status_code == 403

    def test_open_registration(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(settings, "OPEN_REGISTRATION", True)
        response = client.post(
            "/auth/register", json={"email": "New@Example.com", "password": "longenough"}
        )
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "new@example.com"
        assert data["name"] == "new"
        assert data["role"] == "user"

    def test_duplicate_email(self, client: TestClient, test_user, monkeypatch):
        monkeypatch.setattr(settings, "OPEN_REGISTRATION", True)
        response = client.post(
            "/auth/register", json={"email": "grower@example.com", "password": "longenough"}
        )
        assert response.status_code == 409

    def test_short_password(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(settings, "OPEN_REGISTRATION", True)
        response = client.post(
            "/auth/register", json={"email": "new@example.com", "password": "short"}
        )
        assert response.status_code == 400


class TestChangePassword:

    def test_change_password(self, client: TestClient, auth_headers):
        response = client.post(
            "/auth/change-password",
            json={"currentPassword": "testpassword", "newPassword": "brand-new-pass"},
            headers=auth_headers,
        )
        assert response.status_code == 200

        login = client.post(
            "/auth/login", json={"email": "grower@example.com", "password": "brand-new-pass"}
        )
        assert login.status_code == 200

    def test_wrong_current_password(self, client: TestClient, auth_headers):
        response = client.post(
            "/auth/change-password",
            json={"currentPassword": "nope", "newPassword": "brand-new-pass"},
            headers=auth_headers,
        )
        assert response.status_code == 400

    def test_google_account_sets_first_password(self, client: TestClient, db: Session):
        user = User(email="gmail@example.com", hashed_password=None, name="G")
        db.add(user)
        db.commit()
        headers = {"Authorization": f"Bearer {create_access_token(str(user.id), user.email, 'user')}"}

        response = client.post(
            "/auth/change-password", json={"newPassword": "brand-new-pass"}, headers=headers
        )
        assert response.status_code == 200


class TestCurrentUser:

    def test_me(self, client: TestClient, auth_headers):
        response = client.get("/users/me", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "grower@example.com"
        assert data["role"] == "user"
        assert "hashedPassword" not in data

    def test_me_without_token(self, client: TestClient):
        response = client.get("/users/me")
        assert response.status_code == 401

    def test_expired_token(self, client: TestClient, test_user):
        token = create_access_token(
            str(test_user.id), test_user.email, test_user.role, expires_delta=timedelta(seconds=-1)
        )
        response = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_token_of_deleted_user(self, client: TestClient, test_user, auth_headers, db: Session):
        db.delete(test_user)
        db.commit()
        assert client.get("/users/me", headers=auth_headers).status_code == 401

    @pytest.mark.parametrize("subject", ["not-a-uuid", ""])
    def test_bad_subject(self, client: TestClient, subject):
        token = create_access_token(subject, "x@example.com", "user")
        response = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
