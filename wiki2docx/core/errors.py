from __future__ import annotations

from typing import Optional


class Wiki2DocxError(Exception):
    """Base error for a single failed step; ``reason`` is shown in the run report."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class NetworkError(Wiki2DocxError):
    """Transport-level failure (DNS, connection refused, timeout)."""


class APIError(Wiki2DocxError):
    """Non-200 status, or an ``error`` object in an otherwise valid reply."""

    def __init__(
        self, status_code: int, detail: Optional[str] = None, code: Optional[str] = None
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        self.code = code
        msg = f"API error {code}" if code else f"API returned status {status_code}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class NotFoundError(Wiki2DocxError):
    def __init__(self, title: str) -> None:
        self.title = title
        super().__init__(f"article not found: {title}")


class ParseError(Wiki2DocxError):
    """Response body is not the JSON document the API promises."""


class DocumentWriteError(Wiki2DocxError, OSError):
    """Output directory, file or archive entry could not be written."""


class TitleSourceError(Wiki2DocxError):
    """No work items could be produced; fatal for the whole run."""


__all__ = [
    "Wiki2DocxError",
    "NetworkError",
    "APIError",
    "NotFoundError",
    "ParseError",
    "DocumentWriteError",
    "TitleSourceError",
]
