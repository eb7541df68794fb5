"""API error classes.

Every error maps to an HTTP status and renders through the response
envelope ``{success, message, object, errors}`` in the exception handlers
registered by ``app.main``.

WHY CUSTOM ERROR CLASSES:
- Consistent error response format across all endpoints
- Easy to map to HTTP status codes in exception handlers
- Type-safe error handling in services/repositories
"""


class APIError(Exception):
    """Base class for API errors.

    Attributes:
        code: Machine-readable error code (e.g., "VALIDATION_ERROR"). Logged,
            not serialized.
        message: Human-readable summary, becomes the envelope ``message``.
        status_code: HTTP status code to return.
        errors: Optional itemized messages, become the envelope ``errors``.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        errors: list[str] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.errors = errors
        super().__init__(message)


class ValidationError(APIError):
    """Input validation failed (422).

    Carries one message per failed rule so clients can show all problems
    at once.
    """

    def __init__(
        self,
        errors: list[str],
        message: str = "Validation failed",
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=422,
            errors=errors,
        )


class AuthenticationError(APIError):
    """Authentication failed (401)."""

    def __init__(
        self,
        code: str = "UNAUTHORIZED",
        message: str = "Authentication required",
        errors: list[str] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=401,
            errors=errors,
        )


class InvalidCredentialsError(AuthenticationError):
    """Unknown email or wrong password (401).

    Security: The same message is used for both cases so the response
    does not reveal whether the email is registered.
    """

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_CREDENTIALS",
            message="Invalid credentials.",
            errors=["Email or password is incorrect."],
        )


class EmailNotVerifiedError(AuthenticationError):
    """Correct credentials, but the email address is not verified yet (401)."""

    def __init__(self) -> None:
        super().__init__(
            code="EMAIL_NOT_VERIFIED",
            message="Email not verified.",
            errors=["Please verify your email address before logging in."],
        )


class TokenStateError(APIError):
    """Verification token cannot be used in its current state (422).

    Covers missing, unknown and already-used tokens.
    """

    def __init__(self, code: str, message: str, errors: list[str]) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            errors=errors,
        )


class InvalidStateError(APIError):
    """Business rule violation (422).

    Use when request is syntactically valid but violates business rules.
    E.g., asking to resend a verification email for a verified account.
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(
            code="INVALID_STATE",
            message=message,
            status_code=422,
            errors=errors,
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Storage or mail transport failures. Never expose internals to clients.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        errors: list[str] | None = None,
    ) -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
            errors=errors,
        )
