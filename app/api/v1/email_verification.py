"""Email verification endpoints.

verify-email is reachable by GET (the link in the email) and by POST
(clients submitting the token themselves). Every verification outcome
maps to one fixed envelope below. An expired token is answered with 200
and success=false: the request was handled and a new link is on its way,
but the email is still unverified.

Security considerations:
- Tokens are single-use and expire after the configured TTL
- resend-verification and check-verification reveal whether an email is
  registered (422 for unknown addresses), unlike login
"""

from dataclasses import dataclass

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from app.api.deps import DbSession, MailerDep
from app.core.config import settings
from app.core.rate_limiting import limiter
from app.core.responses import BaseResponse
from app.schemas.auth import EmailRequest, VerificationStatusRead, VerifyEmailRequest
from app.services.email_verification_service import (
    EmailVerificationService,
    VerificationOutcome,
)

logger = structlog.get_logger()

router = APIRouter()


@dataclass(frozen=True)
class _OutcomeResponse:
    status_code: int
    success: bool
    message: str
    errors: list[str] | None = None


_OUTCOME_RESPONSES: dict[VerificationOutcome, _OutcomeResponse] = {
    VerificationOutcome.VERIFIED: _OutcomeResponse(
        200, True, "Email verified successfully! You can now log in to your account."
    ),
    VerificationOutcome.ALREADY_VERIFIED: _OutcomeResponse(
        200, True, "Email is already verified. No further action is required."
    ),
    VerificationOutcome.REISSUED: _OutcomeResponse(
        200,
        False,
        "Verification token has expired. A new verification email has been "
        "sent to your email address.",
        ["Please check your email for the new verification link."],
    ),
    VerificationOutcome.MISSING_TOKEN: _OutcomeResponse(
        422, False, "Token is required.", ["Please provide a verification token."]
    ),
    VerificationOutcome.TOKEN_NOT_FOUND: _OutcomeResponse(
        422,
        False,
        "Invalid verification token.",
        ["The verification token is invalid or malformed."],
    ),
    VerificationOutcome.USER_NOT_FOUND: _OutcomeResponse(
        422,
        False,
        "User not found.",
        ["The user associated with this token was not found."],
    ),
    VerificationOutcome.ALREADY_USED: _OutcomeResponse(
        422,
        False,
        "Token already used.",
        ["This verification token has already been used."],
    ),
    VerificationOutcome.INTERNAL_FAILURE: _OutcomeResponse(
        500,
        False,
        "Email verification failed. Please try again.",
        ["An error occurred during email verification."],
    ),
}


async def _verify(
    token: str | None, db: DbSession, mailer: MailerDep
) -> JSONResponse:
    result = await EmailVerificationService(db, mailer).verify(token)
    mapped = _OUTCOME_RESPONSES[result.outcome]
    logger.info("email_verification_attempt", outcome=result.outcome.value)
    envelope: BaseResponse[None] = BaseResponse(
        success=mapped.success, message=mapped.message, errors=mapped.errors
    )
    return JSONResponse(status_code=mapped.status_code, content=envelope.model_dump())


# ===================================================================
# GET/POST /auth/verify-email
# ===================================================================


@router.get("/verify-email")
@limiter.limit(lambda: settings.rate_limit_auth)
async def verify_email_link(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    db: DbSession,
    mailer: MailerDep,
    token: str | None = Query(None, max_length=255),
) -> JSONResponse:
    """Verify an email address from the link in the verification email."""
    return await _verify(token, db, mailer)


@router.post("/verify-email")
@limiter.limit(lambda: settings.rate_limit_auth)
async def verify_email(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    db: DbSession,
    mailer: MailerDep,
    body: VerifyEmailRequest | None = None,
    token: str | None = Query(None, max_length=255),
) -> JSONResponse:
    """Verify an email address; the token may be in the body or the query."""
    body_token = body.token if body is not None else None
    return await _verify(body_token or token, db, mailer)


# ===================================================================
# POST /auth/resend-verification
# ===================================================================


@router.post("/resend-verification")
@limiter.limit(lambda: settings.rate_limit_mail)
async def resend_verification(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: EmailRequest,
    db: DbSession,
    mailer: MailerDep,
) -> BaseResponse[None]:
    """Invalidate outstanding tokens and email a new verification link."""
    await EmailVerificationService(db, mailer).resend(body.email)
    return BaseResponse.ok("Verification email sent successfully!")


# ===================================================================
# POST /auth/check-verification
# ===================================================================


@router.post("/check-verification")
@limiter.limit(lambda: settings.rate_limit_auth)
async def check_verification(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: EmailRequest,
    db: DbSession,
    mailer: MailerDep,
) -> BaseResponse[VerificationStatusRead]:
    """Report whether an account's email address is verified."""
    status = await EmailVerificationService(db, mailer).get_status(body.email)
    return BaseResponse.ok(
        "Verification status retrieved successfully.",
        VerificationStatusRead(is_verified=status.is_verified, email=status.email),
    )
