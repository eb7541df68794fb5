"""Request validation rules for registration and email lookups.

Each function returns a list of human-readable messages (empty when the
input is valid) so a client sees every problem in one response. Rules
that need the database (email uniqueness, email existence) live in the
services; everything here is pure.

Full-name policy: exactly two alphabetic words separated by one space.
This rejects hyphenated names, middle names and non-Latin scripts; it is
kept as the product rule for now.
"""

import re

from email_validator import EmailNotValidError, validate_email

from app.core.auth import BCRYPT_MAX_PASSWORD_BYTES
from app.models.user import UserRole

_MAX_STRING_LENGTH = 255
_MIN_PASSWORD_LENGTH = 8

# ASCII: \d and \s must not accept other scripts' digits or whitespace
_FULL_NAME_RE = re.compile(r"^[a-zA-Z]+\s[a-zA-Z]+$", flags=re.ASCII)
_PASSWORD_RE = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]+$",
    flags=re.ASCII,
)

NAME_FORMAT_MSG = (
    "The name must contain only alphabets with one space between first and last name."
)
PASSWORD_FORMAT_MSG = (  # nosec B105
    "The password must contain at least one uppercase letter, one lowercase "
    "letter, one number, and one special character."
)
ROLE_MSG = 'The role must be either "applicant" or "company".'
EMAIL_FORMAT_MSG = "The email must be a valid email address."
EMAIL_TAKEN_MSG = "The email has already been taken."
EMAIL_UNKNOWN_MSG = "The selected email is invalid."
PASSWORD_CONFIRMATION_MSG = (  # nosec B105
    "The password confirmation and password must match."
)


def _required(field: str) -> str:
    return f"The {field} field is required."


def _too_long(field: str, limit: int) -> str:
    return f"The {field} must not be greater than {limit} characters."


def is_valid_email(email: str) -> bool:
    """Syntax-only email check (no DNS lookups)."""
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def validate_email_field(email: str | None) -> list[str]:
    """Validate an email-only request body (resend / check-verification).

    Args:
        email: Submitted email address.

    Returns:
        Error messages; empty if the email is present and well-formed.
    """
    if not email or not email.strip():
        return [_required("email")]
    if len(email) > _MAX_STRING_LENGTH:
        return [_too_long("email", _MAX_STRING_LENGTH)]
    if not is_valid_email(email.strip()):
        return [EMAIL_FORMAT_MSG]
    return []


def validate_name(name: str | None) -> list[str]:
    if not name:
        return [_required("name")]
    if len(name) > _MAX_STRING_LENGTH:
        return [_too_long("name", _MAX_STRING_LENGTH)]
    if not _FULL_NAME_RE.fullmatch(name):
        return [NAME_FORMAT_MSG]
    return []


def validate_password(
    password: str | None, password_confirmation: str | None
) -> list[str]:
    """Validate password strength and confirmation.

    Rules: 8 to 72 characters (bcrypt input limit), at least one lowercase,
    one uppercase, one digit and one of ``@$!%*?&``, and nothing outside
    letters, digits and that symbol set.

    Args:
        password: Plain-text password.
        password_confirmation: Repeated password.

    Returns:
        Error messages; empty if both fields are acceptable.
    """
    errors: list[str] = []
    if not password:
        errors.append(_required("password"))
    elif len(password) < _MIN_PASSWORD_LENGTH:
        errors.append(
            f"The password must be at least {_MIN_PASSWORD_LENGTH} characters."
        )
    elif len(password.encode()) > BCRYPT_MAX_PASSWORD_BYTES:
        errors.append(_too_long("password", BCRYPT_MAX_PASSWORD_BYTES))
    elif not _PASSWORD_RE.fullmatch(password):
        errors.append(PASSWORD_FORMAT_MSG)

    if not password_confirmation:
        errors.append(_required("password confirmation"))
    elif password_confirmation != password:
        errors.append(PASSWORD_CONFIRMATION_MSG)
    return errors


def validate_role(role: str | None) -> list[str]:
    if not role:
        return [_required("role")]
    if role not in {r.value for r in UserRole}:
        return [ROLE_MSG]
    return []


def validate_registration(
    *,
    name: str | None,
    email: str | None,
    password: str | None,
    password_confirmation: str | None,
    role: str | None,
) -> list[str]:
    """Validate a registration request, except for email uniqueness.

    Returns:
        All error messages, in field order.
    """
    return [
        *validate_name(name),
        *validate_email_field(email),
        *validate_password(password, password_confirmation),
        *validate_role(role),
    ]
