"""
Admin router - user management and invite issuance.

Every endpoint requires an admin session (403 otherwise).

- GET    /admin/users               → list users, newest first
- PATCH  /admin/users/{id}/role     → promote/demote
- DELETE /admin/users/{id}          → delete a user and the devices they own
- POST   /admin/invites             → create + email an invite
- GET    /admin/invites             → list invites
- POST   /admin/invites/{id}/revoke → revoke a pending invite
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.deps import require_admin
from app.models.invite import Invite
from app.models.user import User, UserRole
from app.schemas.invite import InviteCreate, InviteOut
from app.schemas.user import AdminUserOut, RoleUpdate
from app.services import invites as invite_service
from app.services.mail import mail_service
from app.services.users import UserError, delete_user_and_devices, list_users, set_user_role

logger = logging.getLogger("epiciot.routers.admin")

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# USERS
# ---------------------------------------------------------------------------

@router.get("/users")
def admin_list_users(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    users = list_users(db)
    return {
        "ok": True,
        "users": [AdminUserOut.model_validate(u).model_dump(mode="json") for u in users],
    }


@router.patch("/users/{user_id}/role")
def admin_set_role(
    user_id: UUID,
    payload: RoleUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """
    Change a user's role.

    Raises:
        400 Bad Request: role is not "admin" or "user"
        404 Not Found: unknown user
    """
    try:
        user = set_user_role(db, user_id, payload.role)
    except UserError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    logger.info(
        "Admin changed role",
        extra={"admin_id": str(admin.id), "user_id": str(user.id), "role": user.role},
    )
    return {"ok": True, "id": str(user.id), "role": user.role}


@router.delete("/users/{user_id}")
def admin_delete_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """
    Delete a user and every device they own.

    Their telemetry readings stay in the database.
    """
    deleted_user, deleted_devices = delete_user_and_devices(db, user_id)
    if not deleted_user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    logger.info(
        "Admin deleted user",
        extra={"admin_id": str(admin.id), "user_id": str(user_id)},
    )
    return {"ok": True, "deletedUser": deleted_user, "deletedDevices": deleted_devices}


# ---------------------------------------------------------------------------
# INVITES
# ---------------------------------------------------------------------------

@router.post("/invites", status_code=status.HTTP_201_CREATED)
def admin_create_invite(
    payload: InviteCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """
    Create an invite and email its link.

    Invites always carry the "user" role; admins are promoted afterwards.
    If the email can't be sent the invite still exists and the response
    (500) carries the link so it can be delivered by hand.
    """
    try:
        email = invite_service.validate_email(payload.email)
    except invite_service.InviteError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    invite, token = invite_service.create_invite(
        db,
        email=email,
        created_by=admin.id,
        expires_in_days=payload.expires_in_days,
        role=UserRole.USER,
    )
    invite_url = invite_service.build_invite_url(token, email)

    if not mail_service.send_invite_email(email, invite_url):
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "ok": False,
                "error": "Invite created but failed to send email.",
                "inviteUrl": invite_url,
            },
        )

    return {
        "ok": True,
        "email": email,
        "role": invite.role,
        "expiresAt": invite.expires_at.isoformat(),
        "inviteUrl": invite_url,
        "sent": True,
    }


@router.get("/invites", response_model=list[InviteOut])
def admin_list_invites(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return invite_service.list_invites(db)


@router.post("/invites/{invite_id}/revoke", response_model=InviteOut)
def admin_revoke_invite(
    invite_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """
    Raises:
        404 Not Found: unknown invite
        409 Conflict: invite already used or revoked
    """
    invite = db.get(Invite, invite_id)
    if invite is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invite not found",
        )

    try:
        return invite_service.revoke_invite(db, invite)
    except invite_service.InviteError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
