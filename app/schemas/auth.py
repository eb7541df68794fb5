"""Auth API request/response schemas.

Registration and email-lookup bodies accept any strings and leave the
rules to app.services.auth_validation, which reports every failed rule
at once. Login uses plain pydantic validation.
"""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

# =============================================================================
# Request Schemas
# =============================================================================


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    email: str | None = None
    password: str | None = None
    password_confirmation: str | None = None
    role: str | None = None


class VerifyEmailRequest(BaseModel):
    """Request body for POST /auth/verify-email."""

    token: str | None = Field(default=None, max_length=255)


class EmailRequest(BaseModel):
    """Request body for POST /auth/resend-verification and /auth/check-verification."""

    model_config = ConfigDict(extra="forbid")

    email: str | None = None


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


# =============================================================================
# Response Schemas
# =============================================================================


class UserRead(BaseModel):
    """Public projection of a user.

    Security: password_hash and remember_token are never part of it.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    role: str
    email_verified_at: datetime | None
    created_at: datetime
    updated_at: datetime


class LoginData(BaseModel):
    """Successful login payload."""

    user: UserRead
    token: str
    token_type: Literal["bearer"] = "bearer"
    expires_in: int


class VerificationStatusRead(BaseModel):
    """Verification state of an account."""

    is_verified: bool
    email: str
