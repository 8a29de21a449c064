"""
Google OAuth Client - "Sign in with Google" over the authorization-code flow.

1. get_authorization_url() -> browser goes to Google
2. exchange_code_for_tokens() -> called from the callback
3. get_user_info() -> profile used to find or create the dashboard user

References:
- OAuth 2.0: https://developers.google.com/identity/protocols/oauth2
- Token endpoint: https://oauth2.googleapis.com/token
- Userinfo: https://www.googleapis.com/oauth2/v3/userinfo
"""

import logging
import secrets
from typing import Optional
from urllib.parse import urlencode

import httpx

from app.core.config import settings
from app.environments.base import (
    AuthenticationError,
    IdentityProvider,
    OAuthTokens,
    ProviderNotConfiguredError,
    UserInfo,
)
from app.environments.google.auth.schemas import (
    GoogleTokenResponse,
    GoogleUserInfo,
    PROFILE_SCOPES,
)


logger = logging.getLogger("epiciot.environments.google.auth")


class GoogleAuthClient(IdentityProvider):
    """
    Google sign-in client.

    Example Usage:
        client = GoogleAuthClient()
        url = client.get_authorization_url(state=client.generate_state())
        # ... callback ...
        tokens = await client.exchange_code_for_tokens(code="abc123")
        profile = await client.get_user_info(tokens.access_token)
    """

    provider_name = "google"

    AUTHORIZATION_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ):
        self.client_id = client_id or settings.GOOGLE_CLIENT_ID
        self.client_secret = client_secret or settings.GOOGLE_CLIENT_SECRET
        self.redirect_uri = redirect_uri or settings.GOOGLE_REDIRECT_URI

        if not self.is_configured:
            logger.warning(
                "Google sign-in not configured. Set GOOGLE_CLIENT_ID and "
                "GOOGLE_CLIENT_SECRET in environment variables."
            )

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    # -------------------------------------------------------------------------
    # AUTHORIZATION URL
    # -------------------------------------------------------------------------

    def get_authorization_url(self, state: str, redirect_uri: Optional[str] = None) -> str:
        """
        Build the consent-screen URL.

        Raises:
            ProviderNotConfiguredError: client id/secret missing
        """
        if not self.is_configured:
            raise ProviderNotConfiguredError("Google sign-in is not configured", self.provider_name)

        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri or self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(PROFILE_SCOPES),
            "state": state,
            # Sign-in only: no refresh token needed
            "access_type": "online",
            "prompt": "select_account",
        }
        return f"{self.AUTHORIZATION_URL}?{urlencode(params)}"

    # -------------------------------------------------------------------------
    # TOKEN EXCHANGE
    # -------------------------------------------------------------------------

    async def exchange_code_for_tokens(
        self,
        code: str,
        redirect_uri: Optional[str] = None,
    ) -> OAuthTokens:
        """
        Exchange the callback's authorization code for tokens.

        Raises:
            AuthenticationError: Google refused the code or the network failed
        """
        token_data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": redirect_uri or self.redirect_uri,
        }

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(self.TOKEN_URL, data=token_data, timeout=30.0)
            except httpx.RequestError as e:
                logger.error(f"Network error during token exchange: {e}")
                raise AuthenticationError(f"Network error: {e}", self.provider_name)

        if response.status_code != 200:
            error_data = response.json() if response.content else {}
            error_msg = error_data.get("error_description", response.text)
            logger.error(f"Token exchange failed: {error_msg}")
            raise AuthenticationError(f"Token exchange failed: {error_msg}", self.provider_name)

        token_response = GoogleTokenResponse(**response.json())
        return OAuthTokens(
            access_token=token_response.access_token,
            token_type=token_response.token_type,
            id_token=token_response.id_token,
        )

    # -------------------------------------------------------------------------
    # USER INFO
    # -------------------------------------------------------------------------

    async def get_user_info(self, access_token: str) -> UserInfo:
        """
        Fetch the profile of the user who signed in.

        Raises:
            AuthenticationError: request failed, or the account has no email
        """
        async with httpx.AsyncClient() as client:
            try:
                response = await client.get(
                    self.USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                    timeout=30.0,
                )
            except httpx.RequestError as e:
                logger.error(f"Network error fetching user info: {e}")
                raise AuthenticationError(f"Network error: {e}", self.provider_name)

        if response.status_code != 200:
            logger.error(f"Failed to fetch user info: {response.text}")
            raise AuthenticationError("Failed to fetch user info", self.provider_name)

        google_user = GoogleUserInfo(**response.json())
        if not google_user.email:
            raise AuthenticationError("Google account has no email address", self.provider_name)

        return UserInfo(
            provider_user_id=google_user.sub,
            email=google_user.email,
            email_verified=bool(google_user.email_verified),
            name=google_user.name,
            picture_url=google_user.picture,
            extra_data={"locale": google_user.locale} if google_user.locale else None,
        )

    # -------------------------------------------------------------------------
    # UTILITY METHODS
    # -------------------------------------------------------------------------

    @staticmethod
    def generate_state() -> str:
        """Random CSRF token for the state parameter."""
        return secrets.token_urlsafe(32)
