"""
Application error hierarchy.

Domain code raises these instead of bare exceptions so callers get a
message for humans, a stable error_code for clients and optional details
for logs.

    BaseApplicationError
    ├── ValidationError       rule checked below the serializer layer
    ├── NotFoundError         missing record or remote object
    ├── ConflictError         duplicate or invalid state change
    └── ExternalServiceError  a third-party API failed

Apps subclass these (see billing.exceptions) and set default_error_code.

Usage:
    from core.exceptions import ConflictError

    raise ConflictError(
        "User is already a Stripe customer",
        details={"stripe_id": user.stripe_id},
    )

Request validation stays in DRF serializers; these are for the service and
model layers.
"""

from __future__ import annotations

from typing import Any


class BaseApplicationError(Exception):
    """
    Root of the application errors.

    Attributes:
        message: Human-readable description, safe to show to API clients
        error_code: Machine-readable code (class default unless given)
        details: Extra context for logging
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """
        Response body for this error.

            {"error": "No such price", "error_code": "INVALID_STRIPE_REQUEST"}

        details is included only when set.
        """
        data: dict[str, Any] = {"error": self.message, "error_code": self.error_code}
        if self.details:
            data["details"] = self.details
        return data

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, error_code={self.error_code!r})"


class ValidationError(BaseApplicationError):
    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    default_error_code: str = "NOT_FOUND"


class ConflictError(BaseApplicationError):
    """The current state of a record forbids the operation (HTTP 409)."""

    default_error_code: str = "CONFLICT"


class ExternalServiceError(BaseApplicationError):
    """A remote service failed; details may hold its raw error."""

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
