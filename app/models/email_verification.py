"""Email verification token model.

Single-use, time-limited tokens proving control of an email address.
Tokens are stored in plain text: 256 bits of randomness, looked up by
exact match. A used token is kept (is_used = true) as an audit trail;
superseded tokens are deleted by the issuer.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.user import User


class EmailVerification(Base, TimestampMixin):
    """Verification token issued to a user.

    Attributes:
        id: UUID primary key.
        user_id: Owner of the token.
        token: 64-character random token embedded in the verification link.
        expires_at: Instant after which the token is rejected.
        is_used: Set once when the token verifies the owner's email.
    """

    __tablename__ = "email_verifications"
    __table_args__ = (Index("idx_email_verifications_user_id", "user_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    token: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        nullable=False,
    )
    is_used: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )

    user: Mapped["User"] = relationship(
        "User",
        back_populates="email_verifications",
    )

    def is_expired(self, now: datetime) -> bool:
        """Whether the token is past its expiry at ``now``."""
        return now > self.expires_at

    def is_valid(self, now: datetime) -> bool:
        """Whether the token can still verify its owner at ``now``."""
        return not self.is_used and not self.is_expired(now)
