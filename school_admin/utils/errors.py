from typing import Any, List, Optional


class AppError(Exception):
    """Base error rendered as the JSON envelope ``{"error": ..., "details": ...}``."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, details: Optional[Any] = None, error: Optional[str] = None):
        if error is not None:
            self.error = error
        self.details = details
        super().__init__(details if details is not None else self.error)

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(AppError, ValueError):
    """Bad day-of-week, malformed time or an empty time range."""

    status_code = 400
    error = "Validation failed"


class ConflictError(AppError):
    """A schedule overlaps an active one for the same teacher or room."""

    status_code = 409
    error = "Schedule conflict"

    def __init__(self, details=None, error=None, conflicts: Optional[List[dict]] = None):
        super().__init__(details, error)
        self.conflicts = conflicts or []

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["conflicts"] = self.conflicts
        return body
