"""
HTTP-aware error taxonomy for the lounge proxy.

Services raise these directly, the same way they would raise
``fastapi.HTTPException``; the application installs a handler that renders
every one of them as ``{"error": detail}``.
"""

from __future__ import annotations

from typing import Literal

from fastapi import HTTPException

UpstreamFailureKind = Literal["http", "timeout", "network", "unknown"]


class InvalidInputError(HTTPException):
    """Client fault: malformed, oversized or missing input (400)."""

    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


class NotFoundError(HTTPException):
    """Upstream has no such player/table, or an exact match found nothing (404)."""

    def __init__(self, detail: str):
        super().__init__(status_code=404, detail=detail)


class UpstreamError(HTTPException):
    """
    Dependency fault raised by the upstream client.

    ``status_code`` mirrors the upstream status when one was received.
    Timeouts and connection failures carry 504/503 so callers can treat
    them as retryable rather than as client errors.
    """

    def __init__(
        self,
        status_code: int = 500,
        detail: str = "Upstream ranking service unavailable",
        *,
        kind: UpstreamFailureKind = "unknown",
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.kind = kind

    @property
    def is_not_found(self) -> bool:
        return self.kind == "http" and self.status_code == 404


__all__ = ["InvalidInputError", "NotFoundError", "UpstreamError", "UpstreamFailureKind"]
