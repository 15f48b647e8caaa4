"""Security utilities for operator authentication and voter pseudonymization.

Operator tokens are JWTs issued by the accounts service and validated here.
Voters are never stored by email - only by a one-way digest of it.
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from core.config import settings

# Token issuer and audience for validation
TOKEN_ISSUER = "issuepulse-api"
TOKEN_AUDIENCE = "issuepulse-dashboard"


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token.

    Used by the accounts service and by operational scripts; the poll API
    itself only decodes tokens.
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update(
        {
            "exp": expire,
            "iat": now,
            "type": "access",
            "iss": TOKEN_ISSUER,
            "aud": TOKEN_AUDIENCE,
            "jti": secrets.token_urlsafe(16),
        }
    )
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str, expected_type: str | None = "access") -> dict[str, Any] | None:
    """
    Decode and validate a JWT token.

    Args:
        token: The JWT token to decode
        expected_type: If provided, validates the token type matches

    Returns:
        The decoded payload or None if invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=TOKEN_ISSUER,
            audience=TOKEN_AUDIENCE,
        )
        if expected_type and payload.get("type") != expected_type:
            return None
        return payload
    except JWTError:
        return None


def normalize_email(email: str) -> str:
    """Normalize an email address for hashing (trimmed, lowercased)."""
    return email.strip().lower()


def compute_voter_hash(email: str) -> str:
    """
    Compute the pseudonymous voter key for an email address.

    The digest is unsalted so that it stays stable across secret rotations;
    one voter always maps to the same key, in every week.

    Returns:
        SHA-256 hex digest (64 characters)
    """
    return hashlib.sha256(normalize_email(email).encode("utf-8")).hexdigest()
