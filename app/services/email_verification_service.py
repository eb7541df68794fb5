"""Email verification: token checks, state transition, re-issuance.

verify() runs the token through an ordered policy and reports one
VerificationOutcome:

1. empty token                         -> MISSING_TOKEN
2. no record with that exact token     -> TOKEN_NOT_FOUND
3. record points at a missing user     -> USER_NOT_FOUND
4. owner already verified              -> ALREADY_VERIFIED (idempotent success)
5. token already used                  -> ALREADY_USED (inconsistent, reported as failure)
6. token expired                       -> REISSUED: delete it, issue a new one,
                                          email it, one transaction
7. otherwise                           -> VERIFIED: stamp email_verified_at and
                                          mark the token used, one transaction

Storage or mail failures inside 6 or 7 roll back and report
INTERNAL_FAILURE.

Concurrency: every write path (steps 6 and 7, resend) locks the user row
before touching that user's tokens, so verify and resend never wait on
each other in opposite orders. Steps 6 and 7 then run a compare-and-set
statement (DELETE by id / UPDATE ... WHERE is_used = false). The database
lets one request match the row; the other sees a zero row count, rolls
back and re-reads the owner and token to report what the winner did.
"""

import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Clock, utc_now
from app.core.email import MailDeliveryError, Mailer, build_verification_url
from app.core.errors import InternalError, InvalidStateError, ValidationError
from app.models.email_verification import EmailVerification
from app.models.user import User
from app.repositories.email_verification_repository import (
    EmailVerificationRepository,
)
from app.repositories.user_repository import UserRepository
from app.services.auth_validation import EMAIL_UNKNOWN_MSG, validate_email_field
from app.services.verification_token_issuer import VerificationTokenIssuer

logger = logging.getLogger(__name__)


class VerificationOutcome(enum.StrEnum):
    """Result of a verify() call."""

    MISSING_TOKEN = "missing_token"
    TOKEN_NOT_FOUND = "token_not_found"
    USER_NOT_FOUND = "user_not_found"
    ALREADY_VERIFIED = "already_verified"
    ALREADY_USED = "already_used"
    REISSUED = "reissued"
    VERIFIED = "verified"
    INTERNAL_FAILURE = "internal_failure"


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a verification attempt.

    Attributes:
        outcome: Which branch of the verification policy applied.
        new_email_sent: True when an expired token was replaced and the
            new link was emailed.
    """

    outcome: VerificationOutcome
    new_email_sent: bool = False


@dataclass(frozen=True)
class VerificationStatus:
    """Read-only verification state of an account."""

    email: str
    is_verified: bool


class EmailVerificationService:
    """Verifies tokens and (re)sends verification emails.

    Args:
        db: Async database session. This service commits and rolls back
            its own atomic units.
        mailer: Outbound mail transport.
        clock: Source of the current time.
        issuer: Token issuer. Defaults to one sharing db and clock.
    """

    def __init__(
        self,
        db: AsyncSession,
        mailer: Mailer,
        *,
        clock: Clock = utc_now,
        issuer: VerificationTokenIssuer | None = None,
    ) -> None:
        self._db = db
        self._mailer = mailer
        self._clock = clock
        self._issuer = issuer or VerificationTokenIssuer(db, clock=clock)

    # ------------------------------------------------------------------
    # verify
    # ------------------------------------------------------------------

    async def verify(self, token: str | None) -> VerificationResult:
        """Validate a token and verify its owner's email.

        Args:
            token: Token string from the verification link, or None.

        Returns:
            VerificationResult describing the applied branch.
        """
        if not token:
            return VerificationResult(VerificationOutcome.MISSING_TOKEN)

        record = await EmailVerificationRepository.get_by_token(self._db, token)
        if record is None:
            return VerificationResult(VerificationOutcome.TOKEN_NOT_FOUND)

        user = await UserRepository.get_by_id(self._db, record.user_id, fresh=True)
        if user is None:
            logger.warning("Verification token %s has no owner", record.id)
            return VerificationResult(VerificationOutcome.USER_NOT_FOUND)

        if user.is_email_verified:
            return VerificationResult(VerificationOutcome.ALREADY_VERIFIED)

        if record.is_used:
            logger.warning(
                "Used verification token %s presented for unverified user %s",
                record.id,
                user.id,
            )
            return VerificationResult(VerificationOutcome.ALREADY_USED)

        now = self._clock()
        if record.is_expired(now):
            return await self._reissue_expired(record, user)
        return await self._mark_verified(record, user, now)

    async def _mark_verified(
        self, record: EmailVerification, user: User, now: datetime
    ) -> VerificationResult:
        token_id, user_id, token = record.id, user.id, record.token
        try:
            await UserRepository.lock(self._db, user_id)
            if not await EmailVerificationRepository.mark_used(self._db, token_id):
                await self._db.rollback()
                return await self._settle_lost_race(user_id, token)
            newly_verified = await UserRepository.mark_email_verified(
                self._db, user_id, verified_at=now
            )
            await self._db.commit()
        except SQLAlchemyError:
            await self._db.rollback()
            logger.exception("Email verification failed for user %s", user_id)
            return VerificationResult(VerificationOutcome.INTERNAL_FAILURE)

        if not newly_verified:
            # Verified through another token in the meantime
            return VerificationResult(VerificationOutcome.ALREADY_VERIFIED)
        logger.info("Email verified for user %s", user_id)
        return VerificationResult(VerificationOutcome.VERIFIED)

    async def _reissue_expired(
        self, record: EmailVerification, user: User
    ) -> VerificationResult:
        token_id, user_id = record.id, user.id
        to_email, name = user.email, user.name
        try:
            await UserRepository.lock(self._db, user_id)
            if not await EmailVerificationRepository.delete_by_id(self._db, token_id):
                # Another request already replaced this token
                await self._db.rollback()
                return VerificationResult(VerificationOutcome.TOKEN_NOT_FOUND)
            new_record = await self._issuer.issue(user)
            await self._mailer.send_verification_email(
                to_email=to_email,
                name=name,
                verification_url=build_verification_url(new_record.token),
            )
            await self._db.commit()
        except (SQLAlchemyError, MailDeliveryError):
            await self._db.rollback()
            logger.exception(
                "Re-issuing expired verification token failed for user %s", user_id
            )
            return VerificationResult(VerificationOutcome.INTERNAL_FAILURE)

        logger.info("Expired verification token replaced for user %s", user_id)
        return VerificationResult(VerificationOutcome.REISSUED, new_email_sent=True)

    async def _settle_lost_race(
        self, user_id: uuid.UUID, token: str
    ) -> VerificationResult:
        """Report what the concurrent request that consumed the token did."""
        user = await UserRepository.get_by_id(self._db, user_id, fresh=True)
        if user is None:
            return VerificationResult(VerificationOutcome.USER_NOT_FOUND)
        if user.is_email_verified:
            return VerificationResult(VerificationOutcome.ALREADY_VERIFIED)
        if await EmailVerificationRepository.get_by_token(self._db, token) is None:
            # Replaced by a resend
            return VerificationResult(VerificationOutcome.TOKEN_NOT_FOUND)
        return VerificationResult(VerificationOutcome.ALREADY_USED)

    # ------------------------------------------------------------------
    # resend / status
    # ------------------------------------------------------------------

    async def _require_user(self, email: str | None) -> User:
        errors = validate_email_field(email)
        if errors:
            raise ValidationError(errors)
        # validate_email_field guarantees a non-empty string here
        user = await UserRepository.get_by_email(self._db, email or "")
        if user is None:
            raise ValidationError([EMAIL_UNKNOWN_MSG])
        return user

    async def resend(self, email: str | None) -> None:
        """Replace the user's token and email a fresh link.

        Security: reveals whether the email is registered (unknown emails
        get a validation error), unlike login.

        Args:
            email: Email address of an existing, unverified account.

        Raises:
            ValidationError: Email missing, malformed or not registered.
            InvalidStateError: Account is already verified.
            InternalError: Storage or mail failure; nothing was changed.
        """
        user = await self._require_user(email)
        user_id = user.id
        # Re-read under the lock; a verify may have committed since the lookup
        await UserRepository.lock(self._db, user_id)
        user = await UserRepository.get_by_id(self._db, user_id, fresh=True)
        if user is None:
            raise ValidationError([EMAIL_UNKNOWN_MSG])
        if user.is_email_verified:
            raise InvalidStateError(
                "Email is already verified.",
                ["Email verification is not required."],
            )

        to_email, name = user.email, user.name
        try:
            record = await self._issuer.issue(user)
            await self._mailer.send_verification_email(
                to_email=to_email,
                name=name,
                verification_url=build_verification_url(record.token),
            )
            await self._db.commit()
        except (SQLAlchemyError, MailDeliveryError) as exc:
            await self._db.rollback()
            logger.exception("Resending verification email failed for user %s", user_id)
            raise InternalError(
                "Failed to send verification email. Please try again.",
                ["An error occurred while sending the verification email."],
            ) from exc

        logger.info("Verification email re-sent for user %s", user_id)

    async def get_status(self, email: str | None) -> VerificationStatus:
        """Report whether an existing account's email is verified.

        Args:
            email: Email address of an existing account.

        Returns:
            VerificationStatus with the stored (lowercase) email.

        Raises:
            ValidationError: Email missing, malformed or not registered.
        """
        user = await self._require_user(email)
        return VerificationStatus(email=user.email, is_verified=user.is_email_verified)
