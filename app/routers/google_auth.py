"""
Google Auth Router - "Sign in with Google".

Endpoints:
==========
- GET /auth/google/login    → Redirect to Google's consent screen
- GET /auth/google/callback → Exchange the code, resolve the user, return a session token

Who may sign in:
================
1. A user already linked to the Google account
2. An existing user with the same email (linked on first Google sign-in)
3. A new user only with a pending, unexpired invite for that email;
   everybody else gets 403 "Invite required"
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.environments.base import AuthenticationError, ProviderNotConfiguredError
from app.environments.google import GoogleAuthClient
from app.routers.auth import issue_token
from app.schemas.auth import Token
from app.services.users import UserError, sign_in_with_google


logger = logging.getLogger("epiciot.routers.google_auth")


# ---------------------------------------------------------------------------
# ROUTER SETUP
# ---------------------------------------------------------------------------
router = APIRouter(prefix="/auth/google", tags=["google-auth"])


# ---------------------------------------------------------------------------
# STATE STORAGE (in-memory)
# ---------------------------------------------------------------------------
# Single-process only; state values live for one login round-trip.
_oauth_states: set[str] = set()


def _store_state(state: str) -> None:
    _oauth_states.add(state)


def _consume_state(state: str) -> bool:
    """True if the state was issued by us (and forget it)."""
    if state in _oauth_states:
        _oauth_states.discard(state)
        return True
    return False


# ---------------------------------------------------------------------------
# ENDPOINTS
# ---------------------------------------------------------------------------

@router.get("/login")
async def google_login():
    """
    Start Google sign-in.

    Returns:
        RedirectResponse to Google's consent screen

    Raises:
        503 Service Unavailable: Google client id/secret not configured
    """
    auth_client = GoogleAuthClient()
    state = auth_client.generate_state()

    try:
        auth_url = auth_client.get_authorization_url(state=state)
    except ProviderNotConfiguredError:
        logger.error("Google sign-in not configured - missing GOOGLE_CLIENT_ID")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google sign-in is not configured",
        )

    _store_state(state)
    return RedirectResponse(url=auth_url)


@router.get("/callback", response_model=Token)
async def google_callback(
    code: Optional[str] = Query(None, description="Authorization code from Google"),
    state: Optional[str] = Query(None, description="CSRF state token"),
    error: Optional[str] = Query(None, description="Error from Google"),
    error_description: Optional[str] = Query(None, description="Error details"),
    db: Session = Depends(get_db),
):
    """
    Finish Google sign-in.

    Flow:
        1. Validate state token (CSRF protection)
        2. Exchange code for tokens
        3. Fetch the Google profile
        4. Find, link or (with an invite) create the user
        5. Return a session token
    """
    if error:
        logger.warning(f"Google OAuth error: {error} - {error_description}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Google authorization failed: {error_description or error}",
        )

    if not code or not state:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing authorization code or state parameter",
        )

    if not _consume_state(state):
        logger.warning("Invalid or expired OAuth state")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired state. Please try again.",
        )

    auth_client = GoogleAuthClient()
    try:
        tokens = await auth_client.exchange_code_for_tokens(code)
        profile = await auth_client.get_user_info(tokens.access_token)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Google sign-in failed: {e.message}",
        )

    try:
        user = sign_in_with_google(
            db,
            google_id=profile.provider_user_id,
            email=profile.email,
            name=profile.name,
            picture=profile.picture_url,
        )
    except UserError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    logger.info("Google sign-in", extra={"user_id": str(user.id)})
    return issue_token(user)
