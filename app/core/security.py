"""
Security utilities - password hashing, session tokens and invite tokens.
These are the core security functions used by authentication endpoints.
"""

import hashlib
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import jwt  # python-jose library for JWT encoding/decoding
from passlib.context import CryptContext  # Password hashing library

from app.core.config import settings

# ---------------------------------------------------------------------------
# PASSWORD HASHING CONTEXT
# ---------------------------------------------------------------------------
# bcrypt includes the salt in the hash, so the same password hashes
# differently every time. deprecated="auto" keeps old hashes verifiable
# if more schemes are added later.
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """
    Hash a plaintext password using bcrypt.

    Returns:
        A bcrypt hash string (e.g., "$2b$12$LQv3c1yqBw...")
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a stored bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    subject: str,
    email: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a signed session token.

    Args:
        subject: The user's ID (stored in the "sub" claim)
        email: The user's email at sign-in time
        role: "admin" or "user"
        expires_delta: Optional custom lifetime; defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings

    Returns:
        A signed JWT string (e.g., "eyJhbGciOiJIUzI1NiIs...")

    The payload is signed, not encrypted. The role claim is only a hint for
    clients; app.deps reloads the user and trusts the database role.
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta
        if expires_delta
        else timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": subject, "email": email, "role": role, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and validate a session token.

    Raises:
        jose.JWTError: On bad signature, malformed token or expiry
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


# ---------------------------------------------------------------------------
# INVITE TOKENS
# ---------------------------------------------------------------------------
# The raw token only ever travels inside the invite link. The database keeps
# its SHA-256 digest, so a leaked invites table cannot be replayed.

def generate_invite_token(num_bytes: int = 32) -> str:
    """Generate a random hex token (64 characters for 32 bytes)."""
    return secrets.token_hex(num_bytes)


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a raw invite token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_device_api_key(device_id: str) -> str:
    """
    Default credential for a device registered without one.

    Format: key_<deviceId>_<epoch milliseconds>
    """
    epoch_ms = int(datetime.now(timezone.utc).timestamp() * 1000)
    return f"key_{device_id}_{epoch_ms}"


# ---------------------------------------------------------------------------
# SESSION IDENTITY
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SessionUser:
    """
    The {userId, email, role} triple every component works with.

    Built by app.deps from the database row behind a valid session token,
    so role changes take effect without re-issuing tokens.
    """
    user_id: uuid.UUID
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
