"""
Google Environment Module - "Sign in with Google".

Only the profile scopes are requested; the dashboard never calls Google
APIs on the user's behalf after sign-in.
"""

from app.environments.google.auth import GoogleAuthClient, PROFILE_SCOPES

__all__ = ["GoogleAuthClient", "PROFILE_SCOPES"]
