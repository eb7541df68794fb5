"""Response envelope model.

Every endpoint, success or failure, answers with the same shape:

    {"success": bool, "message": str, "object": any | null, "errors": [str] | null}

WHY ONE ENVELOPE:
- Clients branch on ``success`` without inspecting status codes
- ``errors`` is always a flat list of displayable messages
- Type-safe response building in endpoints
"""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class BaseResponse(BaseModel, Generic[T]):
    """Standard response envelope.

    Usage:
        @router.post("/check-verification")
        async def check(...) -> BaseResponse[VerificationStatus]:
            return BaseResponse.ok("Verification status retrieved.", status)
    """

    success: bool
    message: str
    object: T | None = None
    errors: list[str] | None = None

    @classmethod
    def ok(cls, message: str, obj: T | None = None) -> "BaseResponse[T]":
        """Build a success envelope."""
        return cls(success=True, message=message, object=obj)

    @classmethod
    def fail(
        cls, message: str, errors: list[str] | None = None
    ) -> "BaseResponse[T]":
        """Build a failure envelope (``object`` is always null)."""
        return cls(success=False, message=message, errors=errors)
