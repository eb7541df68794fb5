"""Authentication helpers for password hashing and JWT bearer tokens.

Shared primitives used by the registration, login and profile flows.

Pipeline:
- hash_password / verify_password: bcrypt, cost 12
- DUMMY_HASH: Timing-safe constant for user enumeration defense
- create_jwt / issue_access_token: JWT issuance for successful login
- decode_jwt: signature + claim validation for bearer-protected endpoints
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from app.core.config import settings

# bcrypt cost factor for password hashing
BCRYPT_ROUNDS = 12

# bcrypt only reads the first 72 bytes of its input
BCRYPT_MAX_PASSWORD_BYTES = 72

_JWT_ALGORITHM = "HS256"

# Pre-computed bcrypt hash for timing-safe comparison on user-not-found.
# Security: prevents user enumeration via response time differences.
# Pre-generated to avoid ~300ms bcrypt computation on every app startup.
DUMMY_HASH = b"$2b$12$ZP2PVB8yI35X.mkRqcUPUuSzJA1CNRt4dZ7X3cyrfJu.2S3w.Qen2"


def utc_now() -> datetime:
    """Default clock: timezone-aware current UTC time."""
    return datetime.now(UTC)


Clock = Callable[[], datetime]


def hash_password(password: str, *, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password with bcrypt.

    Args:
        password: Plain-text password (at most 72 bytes).
        rounds: bcrypt cost factor. Tests pass a low value for speed.

    Returns:
        bcrypt hash as a str, suitable for the password_hash column.
    """
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password against a stored bcrypt hash.

    Security: when there is no usable hash (unknown user) or the candidate
    exceeds bcrypt's input limit, a comparison against DUMMY_HASH still runs
    so response time does not reveal which case applied.

    Args:
        password: Plain-text candidate password.
        password_hash: Stored bcrypt hash, or None for unknown users.

    Returns:
        True if the password matches, False otherwise.
    """
    candidate = password.encode()
    if password_hash is None or len(candidate) > BCRYPT_MAX_PASSWORD_BYTES:
        bcrypt.checkpw(candidate[:BCRYPT_MAX_PASSWORD_BYTES], DUMMY_HASH)
        return False
    return bcrypt.checkpw(candidate, password_hash.encode())


def create_jwt(
    *,
    user_id: str,
    secret: str,
    expires_delta: timedelta,
    now: datetime | None = None,
) -> str:
    """Create a signed JWT with standard claims.

    Args:
        user_id: User id string for the sub claim.
        secret: HMAC signing secret.
        expires_delta: Time until expiration.
        now: Issue time. Defaults to the current UTC time.

    Returns:
        Encoded JWT string.
    """
    issued_at = now or utc_now()
    payload = {
        "sub": user_id,
        "aud": settings.auth_audience,
        "iss": settings.auth_issuer,
        "exp": issued_at + expires_delta,
        "iat": issued_at,
    }
    return jwt.encode(payload, secret, algorithm=_JWT_ALGORITHM)


def issue_access_token(user_id: str) -> tuple[str, int]:
    """Sign a bearer token for a user with the configured lifetime.

    Args:
        user_id: User id string for the sub claim.

    Returns:
        (token, expires_in) where expires_in is the lifetime in seconds.
    """
    ttl = timedelta(minutes=settings.jwt_ttl_minutes)
    token = create_jwt(
        user_id=user_id,
        secret=settings.auth_secret.get_secret_value(),
        expires_delta=ttl,
    )
    return token, int(ttl.total_seconds())


def decode_jwt(token: str) -> dict[str, Any]:
    """Verify a bearer token and return its claims.

    Checks signature (HS256), exp, aud and iss, and requires sub and iat.

    Args:
        token: Encoded JWT string.

    Returns:
        Decoded claims.

    Raises:
        jwt.InvalidTokenError: If the token fails any check.
    """
    claims: dict[str, Any] = jwt.decode(
        token,
        settings.auth_secret.get_secret_value(),
        algorithms=[_JWT_ALGORITHM],
        audience=settings.auth_audience,
        issuer=settings.auth_issuer,
        options={"require": ["exp", "iat", "sub"]},
    )
    return claims
