"""
User service - account creation, roles, deletion and Google account linking.

Routers stay thin: they validate the request shape and translate UserError
into HTTP responses.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import hash_password
from app.models.device import Device
from app.models.oauth_account import OAuthAccount
from app.models.user import User, UserRole
from app.services.invites import find_pending_invite, mark_invite_used, normalize_email

logger = logging.getLogger("epiciot.services.users")


class UserError(Exception):
    """status_code is the HTTP status routers use."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class InviteRequired(UserError):
    """A new Google identity tried to sign up without a pending invite."""

    def __init__(self, message: str = "Invite required"):
        super().__init__(message, status_code=403)


def validate_new_password(password: Optional[str]) -> str:
    """
    Raises:
        UserError(400): missing or shorter than MIN_PASSWORD_LENGTH
    """
    if not password or len(password) < settings.MIN_PASSWORD_LENGTH:
        raise UserError(
            f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters"
        )
    return password


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.scalar(select(User).where(User.email == normalize_email(email)))


def create_user(
    db: Session,
    email: str,
    password: Optional[str] = None,
    name: Optional[str] = None,
    role: str = UserRole.USER,
    image: Optional[str] = None,
    commit: bool = True,
) -> User:
    """
    Create an account.

    Email is lower-cased and trimmed; the name defaults to the email's
    local part.

    Raises:
        UserError(409): email already registered
    """
    clean_email = normalize_email(email)
    if get_user_by_email(db, clean_email) is not None:
        raise UserError("User already exists", status_code=409)

    user = User(
        email=clean_email,
        hashed_password=hash_password(password) if password else None,
        name=(name or "").strip() or clean_email.split("@")[0],
        image=image,
        role=role,
    )
    db.add(user)
    try:
        if commit:
            db.commit()
            db.refresh(user)
        else:
            db.flush()
    except IntegrityError:
        # Lost a race with another sign-up for the same email
        db.rollback()
        raise UserError("User already exists", status_code=409)

    logger.info("User created", extra={"user_id": str(user.id), "role": role})
    return user


def list_users(db: Session) -> list[User]:
    """All users, newest first."""
    return list(db.scalars(select(User).order_by(User.created_at.desc())))


def set_user_role(db: Session, user_id: uuid.UUID, role: Optional[str]) -> User:
    """
    Raises:
        UserError(400): role is not "admin" or "user"
        UserError(404): no such user
    """
    if role not in UserRole.ALL:
        raise UserError("Invalid role")
    user = db.get(User, user_id)
    if user is None:
        raise UserError("User not found", status_code=404)
    user.role = role
    db.commit()
    db.refresh(user)
    logger.info("Role changed", extra={"user_id": str(user_id), "role": role})
    return user


def delete_user_and_devices(db: Session, user_id: uuid.UUID) -> tuple[int, int]:
    """
    Delete a user and the devices they own.

    Telemetry readings are left in place: they keep the deleted owner in
    their owner snapshot and no longer match any device row.

    Returns:
        (deleted_users, deleted_devices) - (0, 0) when the user doesn't exist
    """
    user = db.get(User, user_id)
    if user is None:
        return 0, 0

    deleted_devices = db.execute(
        delete(Device)
        .where(Device.owner_id == user_id)
        .execution_options(synchronize_session=False)
    ).rowcount or 0

    db.expire(user, ["devices"])
    db.delete(user)
    db.commit()

    logger.info(
        "User deleted",
        extra={"user_id": str(user_id), "deleted_devices": deleted_devices},
    )
    return 1, deleted_devices


# ---------------------------------------------------------------------------
# GOOGLE SIGN-IN
# ---------------------------------------------------------------------------

def sign_in_with_google(
    db: Session,
    google_id: str,
    email: str,
    name: Optional[str] = None,
    picture: Optional[str] = None,
) -> User:
    """
    Resolve the user behind a Google identity.

    Order:
    1. A user already linked to this Google account
    2. An existing user with the same email (the account gets linked)
    3. A new user, only when a pending unexpired invite exists for the email;
       the invite's role is applied and the invite is marked used

    Raises:
        InviteRequired: new identity without an invite
        UserError(403): linked account is deactivated
    """
    clean_email = normalize_email(email)

    link = db.scalar(
        select(OAuthAccount).where(
            OAuthAccount.provider == "google",
            OAuthAccount.provider_account_id == google_id,
        )
    )
    if link is not None:
        user = link.user
    else:
        user = get_user_by_email(db, clean_email)
        if user is None:
            invite = find_pending_invite(db, clean_email)
            if invite is None:
                logger.info("Google sign-up refused, no invite", extra={"email": clean_email})
                raise InviteRequired()
            user = create_user(
                db,
                clean_email,
                name=name,
                role=invite.role,
                image=picture,
                commit=False,
            )
            mark_invite_used(db, invite, commit=False)

        db.add(OAuthAccount(user_id=user.id, provider="google", provider_account_id=google_id))

    if not user.is_active:
        db.rollback()
        raise UserError("Account is inactive", status_code=403)

    # Keep profile details fresh without overwriting what the user set
    if picture and not user.image:
        user.image = picture
    if name and not user.name:
        user.name = name

    db.commit()
    db.refresh(user)
    return user
