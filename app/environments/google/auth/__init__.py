"""
Google Auth Module - OAuth 2.0 sign-in.

Flow:
1. GET /auth/google/login redirects to Google's consent screen
2. Google redirects back to /auth/google/callback with a code
3. The code is exchanged for tokens and the profile is fetched
4. app.services.users.sign_in_with_google() decides who the user is
"""

from app.environments.google.auth.client import GoogleAuthClient
from app.environments.google.auth.schemas import (
    GoogleTokenResponse,
    GoogleUserInfo,
    PROFILE_SCOPES,
)

__all__ = [
    "GoogleAuthClient",
    "GoogleTokenResponse",
    "GoogleUserInfo",
    "PROFILE_SCOPES",
]
