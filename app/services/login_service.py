"""Credential login issuing a bearer token.

Security considerations:
- Unknown email and wrong password produce the same InvalidCredentialsError,
  and a bcrypt comparison runs in both cases (DUMMY_HASH) so timing does
  not reveal which one applied.
- The verified-email check runs only after the password matched, so
  EmailNotVerifiedError never tells an anonymous caller that an email
  is registered.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import issue_access_token, verify_password
from app.core.errors import EmailNotVerifiedError, InvalidCredentialsError
from app.models.user import User
from app.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

TokenSigner = Callable[[str], tuple[str, int]]


@dataclass(frozen=True)
class LoginResult:
    """Authenticated user plus the bearer token issued for them.

    Attributes:
        user: The authenticated user.
        token: Signed JWT.
        expires_in: Token lifetime in seconds.
    """

    user: User
    token: str
    expires_in: int
    token_type: str = "bearer"


class LoginService:
    """Authenticates email + password and issues bearer tokens.

    Args:
        db: Async database session (read-only use).
        signer: Signs a token for a subject and returns (token, expires_in).
    """

    def __init__(
        self, db: AsyncSession, *, signer: TokenSigner = issue_access_token
    ) -> None:
        self._db = db
        self._signer = signer

    async def login(self, email: str, password: str) -> LoginResult:
        """Authenticate and issue a bearer token.

        Args:
            email: Account email (case-insensitive).
            password: Plain-text password.

        Returns:
            LoginResult with the user and a signed token.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password.
            EmailNotVerifiedError: Credentials valid, email not verified.
        """
        user = await UserRepository.get_by_email(self._db, email)

        password_hash = user.password_hash if user is not None else None
        if not verify_password(password, password_hash) or user is None:
            raise InvalidCredentialsError()

        if not user.is_email_verified:
            raise EmailNotVerifiedError()

        token, expires_in = self._signer(str(user.id))
        logger.info("User %s logged in", user.id)
        return LoginResult(user=user, token=token, expires_in=expires_in)
