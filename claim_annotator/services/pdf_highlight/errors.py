"""
Highlight pipeline errors.

Only structural failures are exceptions. Per-row and per-match data
quality problems are expressed as None rows, zero values or empty
result lists and never raised.
"""

from typing import Optional


class HighlightError(Exception):
    """Base class for highlight pipeline failures."""


class DocumentReadError(HighlightError):
    """The whole PDF could not be opened (missing, corrupt or encrypted)."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class PageReadError(HighlightError):
    """A single page could not be read; the page is skipped, not the document."""

    def __init__(self, page_index: int, reason: str = ""):
        super().__init__(f"Page {page_index} could not be read: {reason}")
        self.page_index = page_index
        self.reason = reason


class UnknownConditionError(HighlightError):
    """The caller passed a classification selector outside the known set."""

    def __init__(self, condition):
        super().__init__(f"Unknown condition: {condition!r}")
        self.condition = condition
