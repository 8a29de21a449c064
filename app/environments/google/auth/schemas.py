"""
Google OAuth Schemas - responses from Google's token and userinfo endpoints.
"""

from typing import Optional

from pydantic import BaseModel, Field


# Profile scopes - enough to identify the user, nothing more
# Reference: https://developers.google.com/identity/protocols/oauth2/scopes
PROFILE_SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]


class GoogleTokenResponse(BaseModel):
    """
    Response from Google's token endpoint.
    Only the access token is used, to fetch the profile.

    Example:
    {
        "access_token": "ya29.a0AfB_byC...",
        "expires_in": 3599,
        "scope": "openid https://www.googleapis.com/auth/userinfo.email",
        "token_type": "Bearer",
        "id_token": "eyJhbGciOiJSUzI1NiIs..."
    }
    """
    access_token: str
    token_type: str = "Bearer"
    id_token: Optional[str] = None


class GoogleUserInfo(BaseModel):
    """
    Profile from the userinfo endpoint.

    Example:
    {
        "sub": "123456789",
        "email": "grower@gmail.com",
        "email_verified": true,
        "name": "Grower",
        "picture": "https://lh3.googleusercontent.com/a/..."
    }
    """
    sub: str = Field(..., description="Unique Google user ID")
    email: Optional[str] = None
    email_verified: Optional[bool] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    locale: Optional[str] = None
