"""
Test configuration and fixtures for pytest.

This module provides shared fixtures used across all tests:
- Test database (SQLite in-memory for speed)
- Test client (FastAPI TestClient)
- Users, admins and their session headers
- Device and reading factories
"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Generator
from uuid import uuid4

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.db.session import get_db
from app.models import Device, DeviceStatus, SensorReading, User, UserRole
from app.core.security import SessionUser, hash_password, create_access_token


# ---------------------------------------------------------------------------
# TEST DATABASE SETUP
# ---------------------------------------------------------------------------
# Use SQLite in-memory for fast tests (no PostgreSQL dependency)
# StaticPool keeps the same connection across all operations

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},  # Required for SQLite
    poolclass=StaticPool,  # Keep connection alive across operations
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_PASSWORD = "testpassword"


# ---------------------------------------------------------------------------
# DATABASE FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Create a fresh database for each test function.

    - Creates all tables
    - Yields a session for the test
    - Drops all tables after test (clean slate)
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """
    Create a test client with the test database.

    Overrides the get_db dependency to use our test database.
    """
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# USER FIXTURES
# ---------------------------------------------------------------------------

def _make_user(db: Session, email: str, name: str, role: str = UserRole.USER) -> User:
    user = User(
        id=uuid4(),
        email=email,
        hashed_password=hash_password(TEST_PASSWORD),
        name=name,
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _headers(user: User) -> dict:
    token = create_access_token(str(user.id), user.email, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def session_for():
    """Factory: the SessionUser a request from this user would carry."""
    def _session(user: User) -> SessionUser:
        return SessionUser(user_id=user.id, email=user.email, role=user.role)

    return _session


@pytest.fixture
def test_user(db: Session) -> User:
    """Regular user "grower@example.com" with password "testpassword"."""
    return _make_user(db, "grower@example.com", "Test Grower")


@pytest.fixture
def other_user(db: Session) -> User:
    """A second regular user, owner of the devices test_user can't touch."""
    return _make_user(db, "neighbor@example.com", "Neighbor Farms")


@pytest.fixture
def admin_user(db: Session) -> User:
    return _make_user(db, "admin@example.com", "Admin", role=UserRole.ADMIN)


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Authorization headers for test_user."""
    return _headers(test_user)


@pytest.fixture
def other_headers(other_user: User) -> dict:
    return _headers(other_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return _headers(admin_user)


# ---------------------------------------------------------------------------
# DEVICE & READING FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture
def make_device(db: Session):
    """
    Factory for devices.

    Usage:
        device = make_device("SU4_001")                   # unassigned
        device = make_device("SU4_002", owner=test_user)  # claimed
    """
    def _make(device_id: str, owner: User | None = None, **overrides) -> Device:
        values = dict(
            device_id=device_id,
            name=f"Box {device_id}",
            location="Block A",
            latitude=37.35,
            longitude=-121.95,
            api_key=f"key_{device_id}",
            owner_id=owner.id if owner else None,
            claimed_by_email=owner.email if owner else None,
            claimed_at=datetime.now(timezone.utc) if owner else None,
            status=DeviceStatus.CLAIMED if owner else DeviceStatus.UNASSIGNED,
            is_online=False,
        )
        values.update(overrides)
        device = Device(**values)
        db.add(device)
        db.commit()
        db.refresh(device)
        return device

    return _make


@pytest.fixture
def add_readings(db: Session):
    """
    Factory for telemetry rows.

    Usage:
        add_readings("SU4_001", count=3, owner_id=None)

    Timestamps are one hour apart, oldest first; moisture1 is the row index.
    """
    def _add(device_id: str, count: int = 3, owner_id=None) -> list[SensorReading]:
        start = datetime(2025, 7, 19, 12, 0, tzinfo=timezone.utc)
        rows = [
            SensorReading(
                device_id=device_id,
                owner_id=owner_id,
                moisture=3000 + i,
                moisture1=i,
                moisture2=4095,
                moisture3=3982,
                moisture4=3900,
                humidity=58.9,
                temperature=31.2,
                lip_voltage=3.812,
                rtc_battery=3.951,
                data_points=1,
                timestamp=start + timedelta(hours=i),
            )
            for i in range(count)
        ]
        db.add_all(rows)
        db.commit()
        return rows

    return _add
