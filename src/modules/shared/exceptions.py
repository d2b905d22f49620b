"""
Domain exceptions.

Purpose
-------
Structured exception hierarchy for business rule violations raised by the
service layer. A transport layer maps them onto its own status codes:

- `NotFoundError`   -> 404 (missing, or already soft-deleted)
- `ForbiddenError`  -> 403 (principal does not own the plan)
- `ValidationError` -> 400 (bad input, future dates, malformed filters)
- `ConflictError`   -> 409 (an active record already occupies the day)

Every exception carries `message`, `details`, `severity`, `is_retryable`
and `error_code`, and serializes with `to_dict()` for structured logs.
Infrastructure failures live in `src.core.exceptions`.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from src.core.exceptions import ErrorSeverity


class DomainException(Exception):
    """Base class for all domain-level errors."""

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False
    STATUS_CODE: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "status_code": self.STATUS_CODE,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r})"
        )


class NotFoundError(DomainException):
    """
    Raised when a plan or record does not exist.

    Also raised for records that exist but are soft-deleted, wherever the
    operation only accepts active records.
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    STATUS_CODE = 404

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier

        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"

        super().__init__(
            message,
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{_code(resource_type)}_NOT_FOUND",
        )


class ForbiddenError(DomainException):
    """Raised when the requesting user does not own the plan behind a resource."""

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    STATUS_CODE = 403

    def __init__(self, action: str, reason: str, user_id: Optional[str] = None) -> None:
        self.action = action
        self.reason = reason
        self.user_id = user_id
        super().__init__(
            f"Cannot {action}: {reason}",
            details={"action": action, "reason": reason, "user_id": user_id},
            error_code="FORBIDDEN",
        )


class ValidationError(DomainException):
    """
    Raised when input fails validation (bad request).

    Args:
        field: Name of the offending field
        message: Why the value was rejected
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    STATUS_CODE = 400

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code=f"VALIDATION_{_code(field)}",
        )


class ConflictError(DomainException):
    """Raised when a write would violate a uniqueness invariant."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    STATUS_CODE = 409

    def __init__(
        self,
        resource_type: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.resource_type = resource_type
        super().__init__(
            message,
            details={"resource_type": resource_type, **(details or {})},
            error_code=f"{_code(resource_type)}_CONFLICT",
        )


def _code(name: str) -> str:
    return name.upper().replace(" ", "_").replace("-", "_")
