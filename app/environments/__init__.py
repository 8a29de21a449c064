"""
Environments Module - external identity providers.

environments/
├── __init__.py
├── base.py               # Provider-neutral types and exceptions
└── google/
    └── auth/             # Google sign-in (OAuth 2.0 authorization code)
        ├── client.py
        └── schemas.py
"""

from app.environments.base import (
    IdentityProvider,
    IdentityProviderError,
    AuthenticationError,
    ProviderNotConfiguredError,
    OAuthTokens,
    UserInfo,
)

__all__ = [
    "IdentityProvider",
    "IdentityProviderError",
    "AuthenticationError",
    "ProviderNotConfiguredError",
    "OAuthTokens",
    "UserInfo",
]
