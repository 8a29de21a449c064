"""
Invite service - admin-issued, single-use, time-limited invitations.

Lifecycle: pending -> used (account created) or pending -> revoked.
The raw token only exists in the invite link; invites.token_hash stores
sha256(token). A pending, unexpired invite for an email is the only thing
that lets a new Google identity create an account.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlencode

from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import generate_invite_token, hash_token
from app.models.invite import Invite, InviteStatus
from app.models.user import UserRole

logger = logging.getLogger("epiciot.services.invites")

_email_adapter = TypeAdapter(EmailStr)


class InviteError(Exception):
    """Invite operation refused. status_code is the HTTP status routers use."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def validate_email(email: Optional[str]) -> str:
    """
    Normalize an invite address and check it the way the login schema does.

    Raises:
        InviteError(400): empty or malformed address
    """
    normalized = normalize_email(email)
    try:
        _email_adapter.validate_python(normalized)
    except ValidationError:
        raise InviteError("Invalid email") from None
    return normalized


def create_invite(
    db: Session,
    email: str,
    created_by: Optional[uuid.UUID],
    expires_in_days: Optional[int] = None,
    role: str = UserRole.USER,
) -> tuple[Invite, str]:
    """
    Create a pending invite.

    Returns:
        (invite, raw_token) - the raw token goes into the email and is not
        stored anywhere
    """
    days = expires_in_days if expires_in_days and expires_in_days > 0 else settings.INVITE_EXPIRE_DAYS
    token = generate_invite_token()
    now = datetime.now(timezone.utc)

    invite = Invite(
        email=normalize_email(email),
        token_hash=hash_token(token),
        created_by=created_by,
        created_at=now,
        expires_at=now + timedelta(days=days),
        status=InviteStatus.PENDING,
        role=role,
    )
    db.add(invite)
    db.commit()
    db.refresh(invite)

    logger.info("Invite created", extra={"invite_id": str(invite.id), "expires_in_days": days})
    return invite, token


def verify_invite(db: Session, token: str, email: str) -> Optional[Invite]:
    """The pending, unexpired invite matching token and email, or None."""
    stmt = select(Invite).where(
        Invite.token_hash == hash_token(token),
        Invite.email == normalize_email(email),
        Invite.status == InviteStatus.PENDING,
        Invite.expires_at > datetime.now(timezone.utc),
    )
    return db.scalar(stmt)


def find_pending_invite(db: Session, email: str) -> Optional[Invite]:
    """
    Newest pending, unexpired invite for an email.

    Used by Google sign-in, where the user arrives without the token.
    """
    stmt = (
        select(Invite)
        .where(
            Invite.email == normalize_email(email),
            Invite.status == InviteStatus.PENDING,
            Invite.expires_at > datetime.now(timezone.utc),
        )
        .order_by(Invite.created_at.desc())
    )
    return db.scalars(stmt).first()


def mark_invite_used(db: Session, invite: Invite, commit: bool = True) -> None:
    invite.status = InviteStatus.USED
    invite.used_at = datetime.now(timezone.utc)
    if commit:
        db.commit()


def revoke_invite(db: Session, invite: Invite) -> Invite:
    """
    Revoke a pending invite.

    Raises:
        InviteError(409): invite already used or revoked
    """
    if invite.status != InviteStatus.PENDING:
        raise InviteError(f"Invite is already {invite.status}", status_code=409)
    invite.status = InviteStatus.REVOKED
    invite.used_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(invite)
    logger.info("Invite revoked", extra={"invite_id": str(invite.id)})
    return invite


def list_invites(db: Session) -> list[Invite]:
    return list(db.scalars(select(Invite).order_by(Invite.created_at.desc())))


def build_invite_url(token: str, email: str) -> str:
    """{APP_BASE_URL}/auth/invite?token=...&email=..."""
    base = settings.APP_BASE_URL.rstrip("/")
    return f"{base}/auth/invite?{urlencode({'token': token, 'email': email})}"
