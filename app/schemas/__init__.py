"""Pydantic request/response schemas for API endpoints."""

from app.schemas.auth import (
    EmailRequest,
    LoginData,
    LoginRequest,
    RegisterRequest,
    UserRead,
    VerificationStatusRead,
    VerifyEmailRequest,
)

__all__ = [
    # Requests
    "EmailRequest",
    "LoginRequest",
    "RegisterRequest",
    "VerifyEmailRequest",
    # Responses
    "LoginData",
    "UserRead",
    "VerificationStatusRead",
]
