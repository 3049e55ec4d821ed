"""Error taxonomy and the uniform response envelopes."""

from __future__ import annotations

from typing import Any, Optional


class GatewayError(Exception):
    """Base error carrying an HTTP-style status and a details bag."""

    status = 500

    def __init__(self, message: str, status: Optional[int] = None, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "message": self.message, "details": self.details}


class ConfigurationError(GatewayError):
    """A required credential or identifier is missing."""

    status = 500


class UpstreamError(GatewayError):
    """The CMS answered with a non-success status."""

    def __init__(self, status: int, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, status=status, details=details)

    @property
    def name(self) -> Optional[str]:
        """Error name from the upstream envelope (`name` or `code`), if any."""
        body = self.details.get("body")
        if isinstance(body, dict):
            value = body.get("name") or body.get("code")
            if isinstance(value, str):
                return value
        return None


class ValidationError(GatewayError):
    """Caller input failed a precondition; no upstream call was made."""

    status = 400


class PaginationLimitError(GatewayError):
    status = 502


class SmokeTestError(GatewayError):
    status = 502


def error_envelope(exc: GatewayError) -> dict[str, Any]:
    """Build the error body returned at the HTTP boundary."""
    return {"status": "error", "message": exc.message, "details": exc.details or None}


def ok(**payload: Any) -> dict[str, Any]:
    """Build a success envelope."""
    return {"status": "ok", **payload}
