"""
Error taxonomy for ticket issuance and check-in.

Every error carries a stable ``code`` and a human-readable ``message`` that is
safe to show to scanner clients; store error text never ends up in either.
"""

from typing import Any

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: dict[str, Any] = {}


class TicketAccessError(Exception):
    """Base exception for the service."""

    status_code = 400

    def __init__(
        self, code: str, message: str, details: dict[str, Any] | None = None
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(code=self.code, message=self.message, details=self.details)


class AuthenticationError(TicketAccessError):
    """Missing or invalid credentials."""

    status_code = 401

    def __init__(
        self, message: str = "Authentication failed", details: dict[str, Any] | None = None
    ) -> None:
        super().__init__("authentication_error", message, details)


class AuthorizationError(TicketAccessError):
    """Wrong organization or insufficient role."""

    status_code = 403

    def __init__(
        self, message: str = "Not allowed", details: dict[str, Any] | None = None
    ) -> None:
        super().__init__("authorization_error", message, details)


class NoOrganizationError(AuthorizationError):
    def __init__(self, details: dict[str, Any] | None = None) -> None:
        super().__init__("User has no organization assigned", details)
        self.code = "no_organization"


class ValidationError(TicketAccessError):
    """Malformed input or missing required fields."""

    def __init__(
        self, message: str = "Validation failed", details: dict[str, Any] | None = None
    ) -> None:
        super().__init__("validation_error", message, details)


class NotFoundError(TicketAccessError):
    status_code = 404

    def __init__(
        self, message: str = "Not found", details: dict[str, Any] | None = None
    ) -> None:
        super().__init__("not_found", message, details)


class ConflictError(TicketAccessError):
    """Rejected after a store round-trip because of current state."""

    status_code = 409

    def __init__(
        self,
        message: str = "Conflict",
        details: dict[str, Any] | None = None,
        code: str = "conflict",
    ) -> None:
        super().__init__(code, message, details)


class QuotaExceededError(ConflictError):
    def __init__(self, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            "Invitation quota exhausted or not assigned",
            details,
            code="quota_exhausted",
        )


class TransientError(TicketAccessError):
    """Store or network timeout. Safe to retry; says nothing about ticket state."""

    status_code = 503

    def __init__(
        self,
        message: str = "Temporarily unavailable, please retry",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__("transient_error", message, details)


class TokenError(TicketAccessError):
    """Base for QR token failures. The code doubles as the check-in result."""


class InvalidTokenError(TokenError):
    def __init__(self, message: str = "Malformed QR code") -> None:
        super().__init__("invalid_token", message)


class InvalidSignatureError(TokenError):
    def __init__(self, message: str = "Invalid digital signature (forged QR)") -> None:
        super().__init__("invalid_signature", message)
