"""User registration with email verification.

Creates the account, issues its first verification token and emails the
link as one transaction. If the mail provider rejects the message the
user row and the token are rolled back: an account that never received
its verification link is not kept half-registered. A consequence is that
a mail-provider outage blocks registration.
"""

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import BCRYPT_ROUNDS, Clock, hash_password, utc_now
from app.core.email import MailDeliveryError, Mailer, build_verification_url
from app.core.errors import InternalError, ValidationError
from app.models.user import User
from app.repositories.user_repository import UserRepository
from app.services.auth_validation import (
    EMAIL_TAKEN_MSG,
    validate_email_field,
    validate_registration,
)
from app.services.verification_token_issuer import VerificationTokenIssuer

logger = logging.getLogger(__name__)

_REGISTRATION_FAILED_MSG = "Registration failed. Please try again."
_REGISTRATION_FAILED_DETAIL = "An error occurred during registration."


class RegistrationService:
    """Registers users and sends their first verification email.

    Args:
        db: Async database session. This service commits or rolls back.
        mailer: Outbound mail transport.
        clock: Source of the current time (token expiry).
        bcrypt_rounds: Password hashing cost.
    """

    def __init__(
        self,
        db: AsyncSession,
        mailer: Mailer,
        *,
        clock: Clock = utc_now,
        bcrypt_rounds: int = BCRYPT_ROUNDS,
    ) -> None:
        self._db = db
        self._mailer = mailer
        self._issuer = VerificationTokenIssuer(db, clock=clock)
        self._bcrypt_rounds = bcrypt_rounds

    async def register(
        self,
        *,
        name: str | None,
        email: str | None,
        password: str | None,
        password_confirmation: str | None,
        role: str | None,
    ) -> User:
        """Validate input, create the user and send the verification link.

        Args:
            name: Full name, "First Last".
            email: Email address; stored lowercase.
            password: Plain-text password.
            password_confirmation: Must equal password.
            role: "applicant" or "company".

        Returns:
            The committed, unverified User.

        Raises:
            ValidationError: Any rule failed, including a taken email.
                Nothing is written.
            InternalError: Storage or mail failure; everything rolled back.
        """
        errors = validate_registration(
            name=name,
            email=email,
            password=password,
            password_confirmation=password_confirmation,
            role=role,
        )
        # Uniqueness is only meaningful for a well-formed address
        if email and not validate_email_field(email):
            if await UserRepository.get_by_email(self._db, email) is not None:
                errors.append(EMAIL_TAKEN_MSG)
        if errors:
            raise ValidationError(errors)

        # Validation guarantees every field is present past this point
        assert name and email and password and role  # nosec B101

        password_hash = hash_password(password, rounds=self._bcrypt_rounds)

        try:
            user = await UserRepository.create(
                self._db,
                name=name,
                email=email,
                password_hash=password_hash,
                role=role,
            )
            record = await self._issuer.issue(user)
            await self._mailer.send_verification_email(
                to_email=user.email,
                name=user.name,
                verification_url=build_verification_url(record.token),
            )
            await self._db.commit()
        except IntegrityError as exc:
            # Lost a race against a concurrent registration for this email
            await self._db.rollback()
            raise ValidationError([EMAIL_TAKEN_MSG]) from exc
        except (SQLAlchemyError, MailDeliveryError) as exc:
            await self._db.rollback()
            logger.exception("Registration failed")
            raise InternalError(
                _REGISTRATION_FAILED_MSG, [_REGISTRATION_FAILED_DETAIL]
            ) from exc

        logger.info("Registered user %s (%s)", user.id, user.role)
        return user
