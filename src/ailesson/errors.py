"""Domain exceptions mapped to structured JSON failures by the error handler."""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base class for expected, request-local failures.

    ``code`` is the machine-readable reason returned to the caller and
    ``detail`` the human-readable one.
    """

    status_code = 400
    code = "ERROR"

    def __init__(self, detail: str, **extra: Any) -> None:  # noqa: ANN401
        super().__init__(detail)
        self.detail = detail
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        return {"success": False, "detail": self.detail, "code": self.code, **self.extra}


class ValidationFailed(DomainError):
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFound(DomainError):
    status_code = 404
    code = "NOT_FOUND"


class Forbidden(DomainError):
    status_code = 403
    code = "FORBIDDEN"


class Conflict(DomainError):
    status_code = 409
    code = "CONFLICT"


class AlreadyClaimed(DomainError):
    status_code = 409
    code = "ALREADY_CLAIMED"


class InsufficientFunds(DomainError):
    """Balance too low for a priced action. Nothing was written."""

    status_code = 400
    code = "INSUFFICIENT_FUNDS"

    def __init__(self, balance: int, required: int) -> None:
        super().__init__(
            f"Insufficient wisdom coins. You have {balance}, but need {required}.",
            current_balance=balance,
            required=required,
        )
        self.balance = balance
        self.required = required


class ServiceUnavailable(DomainError):
    """A text-generation dependency failed; the cause is logged, not returned."""

    status_code = 502
    code = "AI_SERVICE_ERROR"
