"""SQLAlchemy ORM models for the job board identity service.

All models are exported from this module for convenient imports:
    from app.models import User, EmailVerification

Models:
- user.py: User, UserRole
- email_verification.py: EmailVerification (verification tokens)
"""

from app.models.base import Base, TimestampMixin, UTCDateTime
from app.models.email_verification import EmailVerification
from app.models.user import User, UserRole

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UTCDateTime",
    # Models
    "EmailVerification",
    "User",
    "UserRole",
]
