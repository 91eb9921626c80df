"""
Error taxonomy for the analytics pipeline.

Each error carries the HTTP status the API layer answers with. Storage
failures keep their cause chained for logging but expose only a generic
message.
"""

from __future__ import annotations

from typing import Any


class AnalyticsError(Exception):
    """Base analytics error."""

    code = "analytics_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_detail(self) -> dict[str, Any]:
        return {"success": False, "error": self.message, "code": self.code}


class ValidationError(AnalyticsError):
    """Malformed payload, unknown event type or oversized batch."""

    code = "validation_error"
    status_code = 400

    def __init__(self, message: str, issues: list[dict[str, Any]] | None = None) -> None:
        self.issues = issues or []
        super().__init__(message)

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        if self.issues:
            detail["details"] = self.issues
        return detail


class NotFoundError(AnalyticsError):
    """Unknown widget id or tenant."""

    code = "not_found"
    status_code = 404


class RateLimitError(AnalyticsError):
    """Widget exceeded its event budget for the current window."""

    code = "rate_limit_exceeded"
    status_code = 429

    def __init__(self, widget_id: str, limit: int) -> None:
        self.widget_id = widget_id
        self.limit = limit
        self.remaining = 0
        super().__init__(
            f"Rate limit exceeded for widget {widget_id}: max {limit} events per window"
        )

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail["remaining"] = self.remaining
        return detail


class AuthError(AnalyticsError):
    """Missing or invalid scheduler token or session."""

    code = "unauthorized"
    status_code = 401


class StoreError(AnalyticsError):
    """Durable storage failure."""

    code = "store_error"
    status_code = 500

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__("Internal server error")
