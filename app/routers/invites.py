"""
Invites router - public side of the invite flow.

The invite link (/auth/invite?token=...&email=...) opens a front-end page
that calls these endpoints:
- POST /auth/invite/verify    → is this invite still usable?
- POST /auth/invite/register  → create a credentials account from it
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas.invite import InviteRegister, InviteVerify
from app.services.invites import InviteError, mark_invite_used, validate_email, verify_invite
from app.services.users import UserError, create_user, get_user_by_email, validate_new_password

logger = logging.getLogger("epiciot.routers.invites")

router = APIRouter(prefix="/auth/invite", tags=["invites"])


def _error(message: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


@router.post("/verify")
def verify(payload: InviteVerify, db: Session = Depends(get_db)):
    """
    Check a token/email pair from an invite link.

    Returns:
        {"ok": true, "data": {"email", "expiresAt", "role", "inviteId"}}
        or 400 when the invite is unknown, used, revoked or expired
    """
    if not payload.token or not payload.email:
        return _error("Missing token or email")

    try:
        email = validate_email(payload.email)
    except InviteError as e:
        return _error(e.message, e.status_code)

    invite = verify_invite(db, payload.token, email)
    if invite is None:
        return _error("Invalid or expired invite")

    return {
        "ok": True,
        "data": {
            "email": invite.email,
            "expiresAt": invite.expires_at.isoformat(),
            "role": invite.role,
            "inviteId": str(invite.id),
        },
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register_with_invite(payload: InviteRegister, db: Session = Depends(get_db)):
    """
    Create a credentials account from an invite.

    The account gets the invite's role and the invite is marked used in the
    same transaction.
    """
    if not payload.token or not payload.email or not payload.password:
        return _error("Missing required fields")

    try:
        validate_new_password(payload.password)
    except UserError as e:
        return _error(e.message, e.status_code)

    try:
        email = validate_email(payload.email)
    except InviteError as e:
        return _error(e.message, e.status_code)

    invite = verify_invite(db, payload.token, email)
    if invite is None:
        return _error("Invalid or expired invite")

    if get_user_by_email(db, email) is not None:
        return _error("User already exists", status.HTTP_409_CONFLICT)

    try:
        user = create_user(
            db,
            email,
            password=payload.password,
            name=payload.name,
            role=invite.role,
            commit=False,
        )
    except UserError as e:
        return _error(e.message, e.status_code)

    mark_invite_used(db, invite)
    db.refresh(user)

    logger.info("Invite accepted", extra={"invite_id": str(invite.id), "user_id": str(user.id)})
    return {"ok": True, "userId": str(user.id), "email": user.email, "role": user.role}
