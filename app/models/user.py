"""User model - job board identity.

Applicants and companies share one table, distinguished by role.
email_verified_at is NULL until the verification link is used, then set
exactly once.
"""

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.email_verification import EmailVerification


class UserRole(enum.StrEnum):
    """Account type chosen at registration."""

    APPLICANT = "applicant"
    COMPANY = "company"


class User(Base, TimestampMixin):
    """User account for authentication.

    Attributes:
        id: UUID primary key.
        name: Full name ("First Last").
        email: Unique email address, stored lowercase.
        password_hash: bcrypt hash.
        role: "applicant" or "company".
        email_verified_at: When the email was verified. NULL = unverified.
        remember_token: Reserved for persistent-login tokens. Never serialized.
        created_at: Account creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('applicant', 'company')", name="ck_users_role"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    email_verified_at: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )
    remember_token: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    # Relationships
    email_verifications: Mapped[list["EmailVerification"]] = relationship(
        "EmailVerification",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_email_verified(self) -> bool:
        return self.email_verified_at is not None

    @property
    def is_applicant(self) -> bool:
        return self.role == UserRole.APPLICANT

    @property
    def is_company(self) -> bool:
        return self.role == UserRole.COMPANY
