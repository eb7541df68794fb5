"""Rate limiting configuration using slowapi.

Security: Throttles credential and mail-sending endpoints against brute
force and mailbox flooding.

Requests carrying a valid bearer token are keyed on the JWT subject
(per-user); anonymous requests fall back to IP-based keying.

Usage in routers:
    from app.core.rate_limiting import limiter

    @router.post("/login")
    @limiter.limit(lambda: settings.rate_limit_auth)
    async def login(request: Request, ...):
        ...
"""

import jwt
from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from app.core.auth import decode_jwt
from app.core.config import settings
from app.core.responses import BaseResponse

_BEARER_PREFIX = "bearer "


def _rate_limit_key_func(request: Request) -> str:
    """Get rate limit key from request.

    Key format:
    - Valid bearer token: "user:{sub}"
    - No/invalid token: "anon:{ip}"

    Args:
        request: The incoming request.

    Returns:
        Rate limit key string.
    """
    authorization = request.headers.get("authorization", "")
    if authorization.lower().startswith(_BEARER_PREFIX):
        token = authorization[len(_BEARER_PREFIX) :].strip()
        try:
            sub = decode_jwt(token)["sub"]
            # Defense-in-depth: a sub longer than a UUID is not one we issued
            if len(sub) <= 36:
                return f"user:{sub}"
        except (jwt.InvalidTokenError, KeyError, TypeError):
            pass

    return f"anon:{get_remote_address(request)}"


# Global limiter instance
# Configured with in-memory storage (suitable for single-instance deployment)
# For multi-instance, configure Redis storage via RATELIMIT_STORAGE_URL
limiter = Limiter(
    key_func=_rate_limit_key_func,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Handle rate limit exceeded errors.

    Returns 429 Too Many Requests with the standard envelope.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and retry-after header.
    """
    # Parse retry-after from exception detail (e.g., "10 per 1 minute")
    # Fallback to 60 seconds if parsing fails
    try:
        retry_after = str(exc.detail.split()[-1])
        int(retry_after.rstrip("s"))
    except (ValueError, AttributeError, IndexError):
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content=BaseResponse.fail(
            "Too many requests.", [f"Rate limit exceeded: {exc.detail}"]
        ).model_dump(),
        headers={"Retry-After": retry_after},
    )
