"""
Identity provider base - shared types for external sign-in providers.

Google is the only provider today. Routers depend on these types, not on
Google-specific ones, so another provider would only add a client.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


# ---------------------------------------------------------------------------
# EXCEPTIONS
# ---------------------------------------------------------------------------

class IdentityProviderError(Exception):
    """Base exception for sign-in provider errors."""

    def __init__(self, message: str, provider: Optional[str] = None):
        self.message = message
        self.provider = provider
        super().__init__(message)


class AuthenticationError(IdentityProviderError):
    """Code exchange or profile fetch failed."""
    pass


class ProviderNotConfiguredError(IdentityProviderError):
    """Client id / secret missing from settings."""
    pass


# ---------------------------------------------------------------------------
# DATA CLASSES
# ---------------------------------------------------------------------------

@dataclass
class OAuthTokens:
    """Tokens returned by a code exchange. Used once, never persisted."""
    access_token: str
    token_type: str = "Bearer"
    id_token: Optional[str] = None


@dataclass
class UserInfo:
    """
    Profile of the person who signed in.

    provider_user_id is the stable id used to link accounts; email is what
    invites and existing accounts are matched against.
    """
    provider_user_id: str
    email: str
    email_verified: bool = False
    name: Optional[str] = None
    picture_url: Optional[str] = None
    extra_data: Optional[dict[str, Any]] = None


# ---------------------------------------------------------------------------
# ABSTRACT PROVIDER
# ---------------------------------------------------------------------------

class IdentityProvider(ABC):
    """Authorization-code sign-in flow of one provider."""

    provider_name: str = "base"

    @abstractmethod
    def get_authorization_url(self, state: str) -> str:
        """URL the browser is redirected to."""
        pass

    @abstractmethod
    async def exchange_code_for_tokens(self, code: str) -> OAuthTokens:
        """Trade the callback's authorization code for tokens."""
        pass

    @abstractmethod
    async def get_user_info(self, access_token: str) -> UserInfo:
        """Fetch the signed-in user's profile."""
        pass
