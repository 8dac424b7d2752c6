"""
Text Position Index

Per-page character stream with one glyph box per character. Whitespace
glyphs are dropped from the text and the box list together, so text[i]
always belongs to boxes[i].
"""

import logging
from dataclasses import dataclass, field

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GlyphBox:
    """Bounding box of one glyph in page space (top-left origin)."""

    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    @classmethod
    def from_bbox(cls, bbox) -> "GlyphBox":
        x0, y0, x1, y1 = bbox
        return cls(float(x0), float(y0), float(x1), float(y1))


@dataclass
class PageTextIndex:
    """Whitespace-stripped text of a page paired 1:1 with glyph boxes."""

    text: str
    boxes: list[GlyphBox] = field(default_factory=list)

    def __post_init__(self):
        if len(self.text) != len(self.boxes):
            raise ValueError(
                f"Text/position length mismatch: {len(self.text)} chars, {len(self.boxes)} boxes"
            )

    def __len__(self) -> int:
        return len(self.text)

    @classmethod
    def from_chars(cls, chars) -> "PageTextIndex":
        """Build from (char, bbox) pairs; blank characters are skipped."""
        text = []
        boxes = []
        for c, bbox in chars:
            if not c or c.isspace():
                continue
            text.append(c)
            boxes.append(GlyphBox.from_bbox(bbox))
        return cls("".join(text), boxes)


@dataclass
class PageText:
    """Everything one page read yields: raw lines for rows, glyph index for locating."""

    page_index: int
    lines: list[str]
    index: PageTextIndex


@dataclass
class TextSegment:
    """One extractor line: usually a single table cell, with its glyphs."""

    x0: float
    y0: float
    y1: float
    chars: list = field(default_factory=list)  # (char, bbox) pairs

    @property
    def middle(self) -> float:
        return (self.y0 + self.y1) / 2

    @property
    def text(self) -> str:
        return "".join(c for c, _ in self.chars).strip()


def group_segments_by_baseline(segments: list[TextSegment]) -> list[list[TextSegment]]:
    """
    Physical lines of a page: segments sharing a vertical band, left to right.

    A segment joins the current line when its vertical middle falls inside
    the band of the line's first segment.
    """
    groups: list[list[TextSegment]] = []
    for segment in sorted(segments, key=lambda s: (s.middle, s.x0)):
        if groups and groups[-1][0].y0 <= segment.middle <= groups[-1][0].y1:
            groups[-1].append(segment)
        else:
            groups.append([segment])

    return [sorted(group, key=lambda s: s.x0) for group in groups]


def read_page_text(page: fitz.Page) -> PageText:
    """
    Read a page once with rawdict extraction.

    Table cells come back as separate extractor lines; they are regrouped
    into physical lines by baseline and joined with a space. The glyph
    index follows the same order, so a row's text is contiguous in it.
    """
    raw = page.get_text("rawdict")

    segments = []
    for block in raw.get("blocks", []):
        # Image blocks carry no "lines"
        for line in block.get("lines", []):
            chars = [
                (char.get("c", ""), char["bbox"])
                for span in line.get("spans", [])
                for char in span.get("chars", [])
            ]
            if not "".join(c for c, _ in chars).strip():
                continue
            x0, y0, _, y1 = line["bbox"]
            segments.append(TextSegment(float(x0), float(y0), float(y1), chars))

    lines = []
    chars = []
    for group in group_segments_by_baseline(segments):
        lines.append(" ".join(segment.text for segment in group))
        for segment in group:
            chars.extend(segment.chars)

    index = PageTextIndex.from_chars(chars)
    logger.debug(f"Page {page.number}: {len(segments)} segments, {len(lines)} lines, {len(index)} glyphs")
    return PageText(page_index=page.number, lines=lines, index=index)
