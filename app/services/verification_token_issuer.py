"""Verification token issuance.

Mints the single active verification token for a user. Any earlier
tokens are deleted first, so only the newest link in the user's inbox
works.
"""

import secrets
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Clock, utc_now
from app.core.config import settings
from app.models.email_verification import EmailVerification
from app.models.user import User
from app.repositories.email_verification_repository import (
    EmailVerificationRepository,
)
from app.repositories.user_repository import UserRepository

# 32 random bytes, hex encoded: 64 characters, 256 bits of entropy
_TOKEN_BYTES = 32


def generate_verification_token() -> str:
    """Generate a 64-character cryptographically random token."""
    return secrets.token_hex(_TOKEN_BYTES)


class VerificationTokenIssuer:
    """Creates verification tokens, replacing any a user already holds.

    Does not commit: the caller decides the transaction boundary, so a
    failed email send can roll the new token back together with the
    deletion of the old ones.

    Args:
        db: Async database session.
        clock: Source of the current time.
        ttl: Token lifetime. Defaults to VERIFICATION_TOKEN_TTL_MINUTES.
    """

    def __init__(
        self,
        db: AsyncSession,
        *,
        clock: Clock = utc_now,
        ttl: timedelta | None = None,
    ) -> None:
        self._db = db
        self._clock = clock
        self._ttl = ttl or timedelta(minutes=settings.verification_token_ttl_minutes)

    async def issue(self, user: User) -> EmailVerification:
        """Delete the user's tokens and create a fresh one.

        Args:
            user: Owner of the new token.

        Returns:
            The new, unused EmailVerification expiring one TTL from now.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: On storage failure.
        """
        # Concurrent issuers for one user would each keep their own token
        await UserRepository.lock(self._db, user.id)
        await EmailVerificationRepository.delete_all_for_user(
            self._db, user_id=user.id
        )
        return await EmailVerificationRepository.create(
            self._db,
            user_id=user.id,
            token=generate_verification_token(),
            expires_at=self._clock() + self._ttl,
        )
