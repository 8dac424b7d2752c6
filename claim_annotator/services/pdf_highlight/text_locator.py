"""
Text Locator

Finds evidence text on one page through its position index and turns each
occurrence into a single rectangle.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import fitz  # PyMuPDF

from .models import HighlightType
from .text_index import PageTextIndex
from .token_matchers import strip_whitespace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextMatch:
    """One occurrence of a target on the page."""

    start: int  # Index into the page's stripped text
    end: int  # Exclusive
    rect: fitz.Rect

    def __repr__(self):
        return f"TextMatch(start={self.start}, end={self.end}, rect={tuple(self.rect)})"


def match_rect(index: PageTextIndex, start: int, end: int) -> fitz.Rect:
    """
    Rectangle from the first glyph's left edge to the last glyph's right edge.

    Top and height are taken from the first glyph.
    """
    first = index.boxes[start]
    last = index.boxes[end - 1]
    return fitz.Rect(first.x0, first.y0, last.x1, first.y0 + first.height)


def find_occurrences(
    index: PageTextIndex,
    target: str,
    start: int = 0,
    end: Optional[int] = None,
) -> list[TextMatch]:
    """All non-overlapping occurrences of an already-normalized target within text[start:end]."""
    if not target:
        return []

    end = len(index.text) if end is None else end
    matches = []
    pos = index.text.find(target, start, end)
    while pos >= 0:
        stop = pos + len(target)
        matches.append(TextMatch(start=pos, end=stop, rect=match_rect(index, pos, stop)))
        pos = index.text.find(target, stop, end)
    return matches


class PageTextLocator:
    """
    Locator for a single page.

    Results are memoized per (highlight type, normalized target) for the
    lifetime of the locator, which the pipeline creates per page.
    """

    def __init__(self, page_index: int, index: PageTextIndex):
        self.page_index = page_index
        self.index = index
        self._cache: dict[tuple, list[TextMatch]] = {}

    def locate(self, highlight_type: Optional[HighlightType], target: str) -> list[TextMatch]:
        """
        Args:
            highlight_type: Type the evidence belongs to (part of the cache key); None for row text
            target: Evidence text; whitespace is ignored

        Returns:
            Matches in page order; empty when the target is blank or absent
        """
        normalized = strip_whitespace(target)
        if not normalized:
            return []

        key = (highlight_type, normalized)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        matches = find_occurrences(self.index, normalized)
        if not matches:
            logger.debug(f"Page {self.page_index}: '{normalized[:40]}' not found")
        self._cache[key] = matches
        return matches

    def locate_in_row(self, highlight_type: HighlightType, target: str, row_text: str) -> list[TextMatch]:
        """
        Occurrences of target inside the on-page occurrences of its own row.

        The whole page is searched instead when the row text is not on the
        page as one run (a row continued across a page break).
        """
        normalized = strip_whitespace(target)
        if not normalized:
            return []

        row_spans = self.locate(None, row_text)
        if not row_spans:
            return self.locate(highlight_type, target)

        matches = []
        for span in row_spans:
            matches.extend(find_occurrences(self.index, normalized, span.start, span.end))
        return matches

    def clear(self) -> None:
        self._cache.clear()
