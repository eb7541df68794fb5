"""Verification email delivery.

Mail is sent synchronously inside the caller's transaction: registration,
resend and expired-token re-issuance only commit after the provider
accepted the message, and roll back on MailDeliveryError.

Transports:
- ResendMailer: HTTP POST to the Resend API (production)
- LogMailer: writes the verification link to the log (local development)
"""

import html
import logging
from typing import Protocol
from urllib.parse import urlencode

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0

_SUBJECT = "Verify Your Email Address"


class MailDeliveryError(Exception):
    """The mail transport did not accept the message."""


class Mailer(Protocol):
    """Outbound mail interface used by the verification flows."""

    async def send_verification_email(
        self, *, to_email: str, name: str, verification_url: str
    ) -> None:
        """Send the verification link to a user.

        Raises:
            MailDeliveryError: If the message could not be handed off.
        """
        ...


def build_verification_url(token: str) -> str:
    """Build the link embedded in verification emails.

    Format: ``<backend_url>/api/v1/auth/verify-email?token=<token>``
    """
    params = urlencode({"token": token})
    return f"{settings.backend_url}/api/v1/auth/verify-email?{params}"


def render_verification_text(*, name: str, verification_url: str) -> str:
    """Plain-text body of the verification email."""
    return (
        f"Hello {name},\n\n"
        "Thank you for registering with Job Finder. To complete your "
        "registration, please verify your email address by opening this link:\n\n"
        f"{verification_url}\n\n"
        "This verification link will expire in "
        f"{_expiry_phrase()} for security reasons.\n\n"
        "If you didn't create an account with Job Finder, you can safely "
        "ignore this email."
    )


def render_verification_html(*, name: str, verification_url: str) -> str:
    """HTML body of the verification email.

    Security: name and URL are escaped; name is user-supplied.
    """
    safe_name = html.escape(name)
    safe_url = html.escape(verification_url, quote=True)
    return (
        "<!DOCTYPE html><html><body>"
        "<h1>Welcome to Job Finder!</h1>"
        f"<h2>Hello {safe_name},</h2>"
        "<p>Thank you for registering with Job Finder. To complete your "
        "registration, please verify your email address by clicking the "
        "button below:</p>"
        f'<p><a href="{safe_url}">Verify Email Address</a></p>'
        "<p>If the button doesn't work, you can copy and paste this link "
        "into your browser:</p>"
        f"<p>{safe_url}</p>"
        "<p><strong>Important:</strong> This verification link will expire "
        f"in {_expiry_phrase()} for security reasons.</p>"
        "<p>If you didn't create an account with Job Finder, you can safely "
        "ignore this email.</p>"
        "</body></html>"
    )


def _expiry_phrase() -> str:
    minutes = settings.verification_token_ttl_minutes
    if minutes % 60 == 0:
        hours = minutes // 60
        return "1 hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minutes"


class ResendMailer:
    """Sends verification emails through the Resend HTTP API."""

    async def send_verification_email(
        self, *, to_email: str, name: str, verification_url: str
    ) -> None:
        """Send a verification email via Resend.

        Args:
            to_email: Recipient email address.
            name: Recipient display name for the greeting.
            verification_url: Link containing the verification token.

        Raises:
            MailDeliveryError: On transport errors or a non-2xx response.
        """
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    _RESEND_API_URL,
                    headers={
                        "Authorization": f"Bearer {settings.resend_api_key.get_secret_value()}",
                    },
                    json={
                        "from": settings.email_from,
                        "to": to_email,
                        "subject": _SUBJECT,
                        "text": render_verification_text(
                            name=name, verification_url=verification_url
                        ),
                        "html": render_verification_html(
                            name=name, verification_url=verification_url
                        ),
                    },
                    timeout=_RESEND_TIMEOUT,
                )
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Failed to send verification email", exc_info=True)
            raise MailDeliveryError("Verification email was not accepted") from exc


class LogMailer:
    """Development transport: records that a message would be sent.

    The link carries the token, so only the recipient and the link's
    lifetime are logged.
    """

    async def send_verification_email(
        self,
        *,
        to_email: str,
        name: str,  # noqa: ARG002
        verification_url: str,  # noqa: ARG002
    ) -> None:
        logger.info(
            "Verification email for %s not sent (MAIL_TRANSPORT=log); "
            "link expires in %s",
            to_email,
            _expiry_phrase(),
        )


def get_mailer() -> Mailer:
    """Return the mail transport selected by settings.

    FastAPI dependency; tests override it with a recording mailer.
    """
    if settings.mail_transport == "resend":
        return ResendMailer()
    return LogMailer()
