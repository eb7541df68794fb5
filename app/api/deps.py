"""Shared dependencies for API endpoints.

Bearer-token authentication, the database session and the mail
transport. Everything goes through FastAPI dependency injection so tests
can override the session and the mailer.
"""

import uuid
from typing import Annotated

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import decode_jwt
from app.core.database import get_db
from app.core.email import Mailer, get_mailer
from app.core.errors import AuthenticationError
from app.models import User
from app.repositories.user_repository import UserRepository

_bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)
    ],
) -> uuid.UUID:
    """Get current user ID from the Authorization header.

    Validation steps:
    1. Read "Authorization: Bearer <jwt>"
    2. Decode + verify signature (HS256)
    3. Verify exp, iat, aud, iss claims
    4. Extract sub as UUID

    Args:
        credentials: Parsed bearer credentials (injected by FastAPI).

    Returns:
        UUID of the current authenticated user.

    Raises:
        AuthenticationError: 401 for any auth failure. The response never
            says why (expired, bad signature, ...).
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()

    try:
        payload = decode_jwt(credentials.credentials)
        return uuid.UUID(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError) as exc:
        raise AuthenticationError() from exc


async def get_current_user(
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get full User object for the bearer of the token.

    Raises:
        AuthenticationError: 401 if the user no longer exists.
    """
    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise AuthenticationError()
    return user


# Reusable type aliases for dependency injection
CurrentUserId = Annotated[uuid.UUID, Depends(get_current_user_id)]
CurrentUser = Annotated[User, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
MailerDep = Annotated[Mailer, Depends(get_mailer)]
