"""
User schemas - Pydantic models for user-related API responses.
These control what user data is exposed in API responses (never the password!).
"""

import uuid
from datetime import datetime

from app.schemas.common import CamelModel


class UserOut(CamelModel):
    """
    Schema for the signed-in user's profile (GET /users/me).

    Example response:
    {
        "id": "550e8400-e29b-41d4-a716-446655440000",
        "email": "grower@example.com",
        "name": "Grower",
        "image": null,
        "role": "user",
        "createdAt": "2025-07-19T15:40:03Z"
    }
    """
    id: uuid.UUID
    email: str
    name: str | None
    image: str | None
    role: str
    created_at: datetime


class AdminUserOut(CamelModel):
    """One row of the admin user table."""
    id: uuid.UUID
    email: str
    name: str | None
    image: str | None
    role: str


class RoleUpdate(CamelModel):
    """PATCH /admin/users/{id}/role body. Validated by the route (400, not 422)."""
    role: str | None = None
