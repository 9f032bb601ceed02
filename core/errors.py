"""Errors raised by the scrapers.

Only whole-call failures are exceptions. A field that cannot be found in a
payload is never an error: it takes its default and the record is returned.
"""

from typing import Any


class ScraperError(Exception):
    """Base class for failures of a single scraper operation."""

    def __init__(self, platform: str, operation: str, context: dict[str, Any] | None = None):
        self.platform = platform
        self.operation = operation
        self.context = context or {}
        super().__init__(self._describe())

    def _context_text(self) -> str:
        return ", ".join(f"{k}={v!r}" for k, v in self.context.items())

    def _describe(self) -> str:
        return f"{self.platform} {self.operation} failed ({self._context_text()})"


class FetchError(ScraperError):
    """The transport returned a non-ok response."""

    def __init__(
        self,
        platform: str,
        operation: str,
        status_code: int,
        status_text: str = "",
        context: dict[str, Any] | None = None,
    ):
        self.status_code = status_code
        self.status_text = status_text
        super().__init__(platform, operation, context)

    def _describe(self) -> str:
        status = f"{self.status_code} {self.status_text}".strip()
        return f"{self.platform} {self.operation} failed: {status} ({self._context_text()})"


class ShapeError(ScraperError):
    """A response did not have the top-level shape the operation requires."""

    def __init__(
        self,
        platform: str,
        operation: str,
        detail: str,
        context: dict[str, Any] | None = None,
    ):
        self.detail = detail
        super().__init__(platform, operation, context)

    def _describe(self) -> str:
        return f"{self.platform} {self.operation}: {self.detail} ({self._context_text()})"
