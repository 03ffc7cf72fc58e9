"""Error types surfaced to API clients.

Every error carries a stable ``code`` and an HTTP status; the handlers in
``main`` render them as ``{"error": {"code", "message", "details"}}``.
"""

from __future__ import annotations

from typing import Any, Optional


class TrackerError(Exception):
    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class MeasurementValidationError(TrackerError):
    """A single entered value could not be accepted; nothing was saved."""

    def __init__(self, field: str, message: str):
        super().__init__(
            message=f"Invalid value for {field}: {message}",
            code="INVALID_MEASUREMENT",
            status_code=422,
            details={"field": field},
        )
        self.field = field


class NothingToSaveError(TrackerError):
    def __init__(self) -> None:
        super().__init__(
            message="Please enter at least one valid measurement.",
            code="NOTHING_TO_SAVE",
            status_code=422,
        )


class ProfileValidationError(TrackerError):
    def __init__(self, field: str, message: str):
        super().__init__(
            message=f"Invalid {field}: {message}",
            code="INVALID_PROFILE",
            status_code=422,
            details={"field": field},
        )
        self.field = field


class WriteOnceFieldError(TrackerError):
    def __init__(self, field: str):
        super().__init__(
            message=f"{field} is already set and cannot be changed",
            code="WRITE_ONCE_FIELD",
            status_code=409,
            details={"field": field},
        )
        self.field = field


class StoreError(TrackerError):
    """The document store rejected or failed a read/write. The user may retry."""

    def __init__(self, operation: str, message: str):
        super().__init__(
            message=f"Store error during {operation}: {message}",
            code="STORE_ERROR",
            status_code=502,
            details={"operation": operation},
        )
        self.operation = operation
