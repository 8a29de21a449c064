"""
Dependencies module - reusable FastAPI dependencies for route handlers.

get_current_user validates the session token and loads the user;
require_admin gates the admin panel; get_optional_session is used by routes
that answer unauthenticated callers with their own error envelope.
"""

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.security import SessionUser, decode_access_token
from app.db.session import get_db
from app.models.user import User

# ---------------------------------------------------------------------------
# SECURITY SCHEME
# ---------------------------------------------------------------------------
# HTTPBearer: Extracts tokens from the "Authorization: Bearer <token>" header.
# auto_error=False: a missing header reaches our code as None, so every
# failure mode produces the same 401 below.
security = HTTPBearer(auto_error=False)


def _load_user_from_token(token: str, db: Session) -> User | None:
    """
    Decode a session token and return its active user, or None.

    Bad signature, expiry, a malformed subject, a deleted user and a
    deactivated account all collapse to None.
    """
    try:
        payload = decode_access_token(token)
    except JWTError:
        return None

    user_id = payload.get("sub")
    if user_id is None:
        return None

    try:
        uid = uuid.UUID(user_id)
    except ValueError:
        return None

    user = db.get(User, uid)
    if user is None or not user.is_active:
        return None
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Validate the session token and return the authenticated user.

    Any route that includes `current_user: User = Depends(get_current_user)`
    requires a valid token.

    Raises:
        401 Unauthorized: token missing, invalid, expired, or user unknown/inactive
    """
    # Same error for all cases so callers can't probe which check failed
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    user = _load_user_from_token(credentials.credentials, db)
    if user is None:
        raise credentials_exception
    return user


def get_session_user(current_user: User = Depends(get_current_user)) -> SessionUser:
    """The authenticated caller as a {userId, email, role} triple."""
    return SessionUser(user_id=current_user.id, email=current_user.email, role=current_user.role)


def get_optional_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> SessionUser | None:
    """Like get_session_user, but returns None instead of raising 401."""
    if credentials is None:
        return None
    user = _load_user_from_token(credentials.credentials, db)
    if user is None:
        return None
    return SessionUser(user_id=user.id, email=user.email, role=user.role)


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """
    Allow only admins through.

    Raises:
        403 Forbidden: authenticated, but not an admin
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden",
        )
    return current_user
