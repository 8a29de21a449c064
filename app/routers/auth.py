"""
Auth router - credentials sign-in, open registration and password changes.

Google sign-in lives in app.routers.google_auth, invite acceptance in
app.routers.invites.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import create_access_token, hash_password, verify_password
from app.db.session import get_db
from app.deps import get_current_user
from app.models.user import User
from app.schemas.auth import ChangePassword, Token, UserLogin, UserRegister
from app.schemas.user import UserOut
from app.services.users import UserError, create_user, get_user_by_email, validate_new_password

logger = logging.getLogger("epiciot.routers.auth")

# ---------------------------------------------------------------------------
# ROUTER SETUP
# ---------------------------------------------------------------------------
router = APIRouter(prefix="/auth", tags=["auth"])


def issue_token(user: User) -> Token:
    """Session token for a signed-in user."""
    return Token(access_token=create_access_token(str(user.id), user.email, user.role))


# ---------------------------------------------------------------------------
# POST /auth/register - Open registration (off unless OPEN_REGISTRATION)
# ---------------------------------------------------------------------------
@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: UserRegister, db: Session = Depends(get_db)):
    """
    Register a new account without an invite.

    Raises:
        403 Forbidden: open registration is disabled
        400 Bad Request: password too short
        409 Conflict: email already registered
    """
    if not settings.OPEN_REGISTRATION:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Registration is by invitation only",
        )

    try:
        validate_new_password(payload.password)
        user = create_user(db, payload.email, password=payload.password, name=payload.name)
    except UserError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return user


# ---------------------------------------------------------------------------
# POST /auth/login - Authenticate and get a session token
# ---------------------------------------------------------------------------
@router.post("/login", response_model=Token)
def login(payload: UserLogin, db: Session = Depends(get_db)):
    """
    Authenticate with email and password.

    Raises:
        401 Unauthorized: unknown email or wrong password (same message for both)
        400 Bad Request: account was created through Google and has no password
        403 Forbidden: account deactivated
    """
    user = get_user_by_email(db, payload.email)

    if user is not None and user.hashed_password is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This account uses Google sign-in",
        )

    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    return issue_token(user)


# ---------------------------------------------------------------------------
# POST /auth/change-password
# ---------------------------------------------------------------------------
@router.post("/change-password")
def change_password(
    payload: ChangePassword,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Set or change the signed-in user's password.

    Accounts that already have a password must confirm it; Google-only
    accounts may set their first password directly.
    """
    try:
        validate_new_password(payload.new_password)
    except UserError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    if current_user.hashed_password:
        if not payload.current_password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Current password is required",
            )
        if not verify_password(payload.current_password, current_user.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Current password is incorrect",
            )

    current_user.hashed_password = hash_password(payload.new_password)
    db.commit()

    logger.info("Password changed", extra={"user_id": str(current_user.id)})
    return {"ok": True}
