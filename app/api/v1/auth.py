"""Authentication endpoints: register, login, current user.

Security considerations:
- register: bcrypt cost 12, every validation rule reported at once,
  verification email sent before the account is committed
- login: unknown email and wrong password produce the same 401, with a
  bcrypt comparison in both cases (DUMMY_HASH)
- me: bearer JWT with sub/aud/iss/exp/iat verified on every request
"""

from fastapi import APIRouter, Request

from app.api.deps import CurrentUser, DbSession, MailerDep
from app.core.config import settings
from app.core.rate_limiting import limiter
from app.core.responses import BaseResponse
from app.schemas.auth import LoginData, LoginRequest, RegisterRequest, UserRead
from app.services.login_service import LoginService
from app.services.registration_service import RegistrationService

router = APIRouter()


# ===================================================================
# POST /auth/register
# ===================================================================


@router.post("/register")
@limiter.limit(lambda: settings.rate_limit_mail)
async def register(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: RegisterRequest,
    db: DbSession,
    mailer: MailerDep,
) -> BaseResponse[UserRead]:
    """Register a new user and email a verification link.

    Unauthenticated. Creates an unverified account; the user must follow
    the emailed link before logging in.
    """
    service = RegistrationService(db, mailer)
    user = await service.register(
        name=body.name,
        email=body.email,
        password=body.password,
        password_confirmation=body.password_confirmation,
        role=body.role,
    )
    return BaseResponse.ok(
        "Registration successful! Please check your email to verify your account.",
        UserRead.model_validate(user),
    )


# ===================================================================
# POST /auth/login
# ===================================================================


@router.post("/login")
@limiter.limit(lambda: settings.rate_limit_auth)
async def login(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: LoginRequest,
    db: DbSession,
) -> BaseResponse[LoginData]:
    """Exchange email + password for a bearer token.

    Unverified accounts are refused with 401 even when the password
    matches.
    """
    result = await LoginService(db).login(body.email, body.password)
    return BaseResponse.ok(
        "Login successful.",
        LoginData(
            user=UserRead.model_validate(result.user),
            token=result.token,
            token_type="bearer",
            expires_in=result.expires_in,
        ),
    )


# ===================================================================
# GET /auth/me
# ===================================================================


@router.get("/me")
async def me(user: CurrentUser) -> BaseResponse[UserRead]:
    """Return the authenticated user's profile."""
    return BaseResponse.ok(
        "User retrieved successfully.", UserRead.model_validate(user)
    )
