"""
Auth schemas - Pydantic models for authentication request/response validation.
Pydantic models define the shape of data and automatically validate incoming requests.
"""

from pydantic import BaseModel, EmailStr

from app.schemas.common import CamelModel


class UserRegister(BaseModel):
    """
    Schema for POST /auth/register request body.

    Example request body:
    {
        "email": "grower@example.com",
        "password": "securePassword123",
        "name": "Grower"
    }

    Password length is checked by the route against MIN_PASSWORD_LENGTH
    so the limit stays configurable.
    """
    email: EmailStr
    password: str

    # name: Optional display name; defaults to the local part of the email
    name: str | None = None


class UserLogin(BaseModel):
    """Schema for POST /auth/login request body."""
    email: EmailStr
    password: str


class ChangePassword(CamelModel):
    """
    Schema for POST /auth/change-password.

    currentPassword may be omitted only by accounts that never had a password
    (created through Google sign-in).
    """
    current_password: str | None = None
    new_password: str


class Token(BaseModel):
    """
    Schema for login responses.

    Example response:
    {
        "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
        "token_type": "bearer"
    }

    Clients send it back as: Authorization: Bearer <access_token>
    """
    access_token: str

    # token_type: Always "bearer" - included for OAuth 2.0 compatibility
    token_type: str = "bearer"
