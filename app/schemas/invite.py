"""
Invite schemas - admin invite issuance and the public invite acceptance flow.
"""

import uuid
from datetime import datetime
from typing import Optional

from app.schemas.common import CamelModel


class InviteCreate(CamelModel):
    """
    Schema for POST /admin/invites.

    Example request body:
    {
        "email": "new.grower@example.com",
        "expiresInDays": 7
    }
    """
    email: Optional[str] = None
    expires_in_days: Optional[int] = None


class InviteVerify(CamelModel):
    """POST /auth/invite/verify body - the token and email from the invite link."""
    token: Optional[str] = None
    email: Optional[str] = None


class InviteRegister(CamelModel):
    """POST /auth/invite/register body."""
    token: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    password: Optional[str] = None


class InviteOut(CamelModel):
    """Admin list view. The token hash is never exposed."""
    id: uuid.UUID
    email: str
    role: str
    status: str
    created_at: datetime
    expires_at: datetime
    used_at: Optional[datetime]
