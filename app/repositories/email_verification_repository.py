"""Repository for EmailVerification token records.

Single-use verification tokens with time-limited expiry. State
transitions (mark used, delete for re-issue) are compare-and-set
statements whose row count tells the caller whether it won a race.
"""

import uuid
from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.email_verification import EmailVerification


class EmailVerificationRepository:
    """Stateless repository for EmailVerification table operations.

    All methods are static — no instance state.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        token: str,
        expires_at: datetime,
    ) -> EmailVerification:
        """Store a new, unused verification token.

        Args:
            db: Async database session.
            user_id: Owner of the token.
            token: Plain token string.
            expires_at: Token expiry timestamp.

        Returns:
            Created EmailVerification.
        """
        record = EmailVerification(
            user_id=user_id,
            token=token,
            expires_at=expires_at,
            is_used=False,
        )
        db.add(record)
        await db.flush()
        await db.refresh(record)
        return record

    @staticmethod
    async def get_by_token(db: AsyncSession, token: str) -> EmailVerification | None:
        """Look up a token by exact string match.

        Always re-reads the row, so compare-and-set updates made earlier in
        the session are visible.

        Args:
            db: Async database session.
            token: Plain token string from the verification link.

        Returns:
            EmailVerification if found, None otherwise.
        """
        stmt = (
            select(EmailVerification)
            .where(EmailVerification.token == token)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_for_user(
        db: AsyncSession, user_id: uuid.UUID
    ) -> list[EmailVerification]:
        """Fetch all token records owned by a user, newest first.

        Args:
            db: Async database session.
            user_id: Owner of the tokens.

        Returns:
            Token records (fresh from the database).
        """
        stmt = (
            select(EmailVerification)
            .where(EmailVerification.user_id == user_id)
            .order_by(EmailVerification.expires_at.desc())
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def count_for_user(db: AsyncSession, user_id: uuid.UUID) -> int:
        """Count token records owned by a user.

        Args:
            db: Async database session.
            user_id: Owner of the tokens.

        Returns:
            Number of token rows.
        """
        stmt = (
            select(func.count())
            .select_from(EmailVerification)
            .where(EmailVerification.user_id == user_id)
        )
        result = await db.execute(stmt)
        return int(result.scalar_one())

    @staticmethod
    async def delete_all_for_user(db: AsyncSession, *, user_id: uuid.UUID) -> int:
        """Delete every token owned by a user (before issuing a new one).

        Args:
            db: Async database session.
            user_id: Owner of the tokens.

        Returns:
            Number of deleted rows.
        """
        stmt = (
            delete(EmailVerification)
            .where(EmailVerification.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    @staticmethod
    async def delete_by_id(db: AsyncSession, token_id: uuid.UUID) -> bool:
        """Delete one token record.

        Args:
            db: Async database session.
            token_id: Primary key of the token record.

        Returns:
            True if this call deleted the row, False if it was already gone.
        """
        stmt = (
            delete(EmailVerification)
            .where(EmailVerification.id == token_id)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count == 1

    @staticmethod
    async def mark_used(db: AsyncSession, token_id: uuid.UUID) -> bool:
        """Flip is_used from false to true.

        Compare-and-set: only an unused token matches, so of two racing
        requests exactly one sees True. In-session objects are not
        synchronized; refresh them if needed.

        Args:
            db: Async database session.
            token_id: Primary key of the token record.

        Returns:
            True if this call consumed the token, False otherwise.
        """
        stmt = (
            update(EmailVerification)
            .where(
                EmailVerification.id == token_id,
                EmailVerification.is_used.is_(False),
            )
            .values(is_used=True)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count == 1
