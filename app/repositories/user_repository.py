"""Repository for User persistence.

Provides database access for the users table. Email addresses are
normalized to lowercase on write and on lookup.
"""

import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User


class UserRepository:
    """Stateless repository for User table operations.

    All methods are static — no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(
        db: AsyncSession, user_id: uuid.UUID, *, fresh: bool = False
    ) -> User | None:
        """Fetch a user by primary key.

        Args:
            db: Async database session.
            user_id: UUID primary key.
            fresh: Re-read the row even if the user is already in the
                session (after a rollback or a compare-and-set update).

        Returns:
            User if found, None otherwise.
        """
        return await db.get(User, user_id, populate_existing=fresh)

    @staticmethod
    async def lock(db: AsyncSession, user_id: uuid.UUID) -> None:
        """Take a row lock on a user until the transaction ends.

        Serializes per-user token issuance. SELECT ... FOR UPDATE is a
        no-op on SQLite, which serializes writers at the database level.

        Args:
            db: Async database session.
            user_id: UUID of the user to lock.
        """
        await db.execute(select(User.id).where(User.id == user_id).with_for_update())

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Fetch a user by email address (case-insensitive).

        Always re-reads the row, so compare-and-set updates made earlier in
        the session are visible.

        Args:
            db: Async database session.
            email: Email address to look up.

        Returns:
            User if found, None otherwise.
        """
        stmt = (
            select(User)
            .where(User.email == email.strip().lower())
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: str,
    ) -> User:
        """Create a new, unverified user.

        Email is normalized to lowercase before storage.

        Args:
            db: Async database session.
            name: Full name.
            email: User email address.
            password_hash: bcrypt hash.
            role: "applicant" or "company".

        Returns:
            Created User with database-generated fields populated.

        Raises:
            sqlalchemy.exc.IntegrityError: If email already exists.
        """
        user = User(
            name=name,
            email=email.strip().lower(),
            password_hash=password_hash,
            role=role,
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def mark_email_verified(
        db: AsyncSession,
        user_id: uuid.UUID,
        *,
        verified_at: datetime,
    ) -> bool:
        """Set email_verified_at if it is still NULL.

        Compare-and-set: the WHERE clause only matches an unverified user,
        so the verification instant is written exactly once even when two
        requests race. In-session User objects are not synchronized;
        refresh them if needed.

        Args:
            db: Async database session.
            user_id: UUID of the user.
            verified_at: Verification instant.

        Returns:
            True if this call verified the user, False if the user was
            already verified or does not exist.
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.email_verified_at.is_(None))
            .values(email_verified_at=verified_at)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count == 1
