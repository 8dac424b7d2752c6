"""
Overlay Renderer

Draws the visual overlay for a highlighted document:
- a summary box on the first page with the document-wide count per type
- one colored tab per type present on a page, stacked at the right edge
- one margin bar per mark at the mark's vertical position

Everything is drawn on top of the existing page content.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional

import fitz  # PyMuPDF

from .document import PdfDocument
from .models import HighlightMark, HighlightType

logger = logging.getLogger(__name__)


@dataclass
class OverlayStyle:
    """Geometry and colors of overlay elements (points, RGB 0.0-1.0)."""

    margin: float = 18.0

    summary_height: float = 26.0
    summary_fill: tuple = (0.5, 0.5, 0.5)
    summary_fill_opacity: float = 0.15
    summary_stroke_width: float = 0.7
    summary_text_color: tuple = (0.1, 0.1, 0.1)
    summary_font: str = "korea"
    summary_fontsize: float = 10.0
    summary_text_inset: float = 8.0

    tab_width: float = 6.0
    tab_height: float = 16.0
    tab_gap: float = 4.0
    tab_opacity: float = 0.85

    bar_x: float = 10.0
    bar_width: float = 3.0
    bar_min_height: float = 10.0
    bar_opacity: float = 0.9


@dataclass
class RenderResult:
    """What the renderer drew."""

    summary_drawn: bool = False
    summary_text: str = ""
    tabs_per_page: dict[int, list[HighlightType]] = field(default_factory=dict)
    bars_per_page: dict[int, int] = field(default_factory=dict)

    @property
    def total_bars(self) -> int:
        return sum(self.bars_per_page.values())


def format_summary(summary: dict[HighlightType, int]) -> str:
    """Every type in display order, zero counts included."""
    parts = [f"{t.label} {summary.get(t, 0)}" for t in HighlightType]
    return "조건 요약: " + " · ".join(parts)


def summarize_marks(marks: list[HighlightMark]) -> dict[HighlightType, int]:
    """Count of placed marks per type, all types present."""
    summary = {t: 0 for t in HighlightType}
    for mark in marks:
        summary[mark.highlight_type] += 1
    return summary


def group_marks_by_page(marks: list[HighlightMark]) -> dict[int, list[HighlightMark]]:
    grouped: dict[int, list[HighlightMark]] = defaultdict(list)
    for mark in marks:
        grouped[mark.page_index].append(mark)
    return dict(grouped)


class OverlayRenderer:
    """Draws summary box, type tabs and margin bars with PyMuPDF shapes."""

    def __init__(self, style: Optional[OverlayStyle] = None):
        self.style = style or OverlayStyle()

    def render(
        self,
        document: PdfDocument,
        marks: list[HighlightMark],
        summary: dict[HighlightType, int],
    ) -> RenderResult:
        """
        Args:
            document: Open document to draw on
            marks: Every mark placed in the document
            summary: Count per highlight type for the summary box

        Returns:
            RenderResult describing the drawn elements
        """
        result = RenderResult()
        page_count = document.page_count()
        if page_count == 0:
            return result

        result.summary_text = self._draw_summary_box(document, summary)
        result.summary_drawn = True

        for page_index, page_marks in sorted(group_marks_by_page(marks).items()):
            if page_index < 0 or page_index >= page_count:
                logger.warning(f"Skipping {len(page_marks)} marks on missing page {page_index}")
                continue

            result.tabs_per_page[page_index] = self._draw_tabs(document, page_index, page_marks)
            result.bars_per_page[page_index] = self._draw_margin_bars(document, page_index, page_marks)

        logger.info(
            f"Rendered overlay: {len(result.bars_per_page)} pages with marks, "
            f"{result.total_bars} margin bars"
        )
        return result

    def _draw_summary_box(self, document: PdfDocument, summary: dict[HighlightType, int]) -> str:
        s = self.style
        page = document.page(0)
        width = document.page_width(0)

        rect = fitz.Rect(s.margin, s.margin, width - s.margin, s.margin + s.summary_height)
        shape = page.new_shape()
        shape.draw_rect(rect)
        shape.finish(
            color=s.summary_fill,
            fill=s.summary_fill,
            fill_opacity=s.summary_fill_opacity,
            width=s.summary_stroke_width,
        )
        shape.commit()

        text = format_summary(summary)
        baseline = fitz.Point(rect.x0 + s.summary_text_inset, rect.y0 + s.summary_height / 2 + s.summary_fontsize / 3)
        try:
            page.insert_text(
                baseline,
                text,
                fontname=s.summary_font,
                fontsize=s.summary_fontsize,
                color=s.summary_text_color,
            )
        except (RuntimeError, ValueError) as e:
            logger.warning(f"Summary text not drawn with font '{s.summary_font}': {e}")

        return text

    def _draw_tabs(self, document: PdfDocument, page_index: int, marks: list[HighlightMark]) -> list[HighlightType]:
        s = self.style
        page = document.page(page_index)
        width = document.page_width(page_index)

        # First encounter order, one tab per type
        present: list[HighlightType] = []
        for mark in marks:
            if mark.highlight_type not in present:
                present.append(mark.highlight_type)

        shape = page.new_shape()
        for i, highlight_type in enumerate(present):
            y0 = s.margin + i * (s.tab_height + s.tab_gap)
            rect = fitz.Rect(width - s.tab_width, y0, width, y0 + s.tab_height)
            shape.draw_rect(rect)
            shape.finish(color=None, fill=highlight_type.color, fill_opacity=s.tab_opacity, width=0)
        shape.commit()

        return present

    def _draw_margin_bars(self, document: PdfDocument, page_index: int, marks: list[HighlightMark]) -> int:
        s = self.style
        page = document.page(page_index)
        page_height = document.media_box_height(page_index)

        shape = page.new_shape()
        drawn = 0
        for mark in sorted(marks, key=lambda m: m.rect.y0):
            height = max(mark.rect.height, s.bar_min_height)
            y0 = min(max(mark.rect.y0, 0.0), max(page_height - height, 0.0))
            rect = fitz.Rect(s.bar_x, y0, s.bar_x + s.bar_width, y0 + height)
            shape.draw_rect(rect)
            shape.finish(color=None, fill=mark.highlight_type.color, fill_opacity=s.bar_opacity, width=0)
            drawn += 1
        shape.commit()

        return drawn
