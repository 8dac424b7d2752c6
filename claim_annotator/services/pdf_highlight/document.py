"""
PDF document collaborator.

Thin wrapper over a PyMuPDF document. PyMuPDF objects are not safe to use
from several threads at once, so every call into fitz goes through one lock;
the page workers of the pipeline only ever hold it for a single page read.
"""

import logging
import threading
from pathlib import Path
from typing import Optional

import fitz  # PyMuPDF

from .errors import DocumentReadError, PageReadError
from .text_index import PageText, PageTextIndex, read_page_text

logger = logging.getLogger(__name__)


class PdfDocument:
    """Opened PDF with page reads, highlight drawing and save."""

    def __init__(self, doc: fitz.Document, path: Optional[str] = None):
        self.doc = doc
        self.path = path
        self._lock = threading.Lock()

    @classmethod
    def open(cls, pdf_path) -> "PdfDocument":
        """
        Open a PDF from disk.

        Raises:
            DocumentReadError: Missing, unreadable or encrypted file
        """
        path = Path(pdf_path)
        if not path.exists():
            raise DocumentReadError(f"PDF file not found: {path}", path=str(path))

        try:
            doc = fitz.open(str(path))
        except Exception as e:
            raise DocumentReadError(f"Failed to open PDF: {e}", path=str(path)) from e

        if doc.is_encrypted:
            doc.close()
            raise DocumentReadError(f"PDF is encrypted: {path}", path=str(path))

        logger.debug(f"Opened {path.name} ({doc.page_count} pages)")
        return cls(doc, path=str(path))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def page_count(self) -> int:
        with self._lock:
            return self.doc.page_count

    def media_box_height(self, page_index: int) -> float:
        with self._lock:
            return float(self.doc[page_index].rect.height)

    def page_width(self, page_index: int) -> float:
        with self._lock:
            return float(self.doc[page_index].rect.width)

    def read_page(self, page_index: int) -> PageText:
        """
        Raw lines and glyph index of one page.

        Raises:
            PageReadError: The page cannot be loaded or its text extracted
        """
        with self._lock:
            try:
                page = self.doc.load_page(page_index)
                return read_page_text(page)
            except Exception as e:
                raise PageReadError(page_index, str(e)) from e

    def extract_text_with_positions(self, page_index: int) -> tuple[str, list]:
        """Whitespace-stripped page text and the matching glyph boxes."""
        index: PageTextIndex = self.read_page(page_index).index
        return index.text, index.boxes

    def page(self, page_index: int) -> fitz.Page:
        """Page handle for drawing; callers must not share it across threads."""
        return self.doc[page_index]

    def draw_highlight(self, page_index: int, rect: fitz.Rect, color: tuple, opacity: float) -> None:
        """Add a highlight annotation; page content is left untouched."""
        with self._lock:
            page = self.doc[page_index]
            annot = page.add_highlight_annot(fitz.Rect(rect))
            annot.set_colors(stroke=color)
            annot.set_opacity(opacity)
            annot.update()

    def save(self, output_path) -> str:
        output = Path(output_path)
        output.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            self.doc.save(str(output), garbage=4, deflate=True)
        logger.info(f"Saved annotated PDF to {output}")
        return str(output)

    def close(self) -> None:
        with self._lock:
            if not self.doc.is_closed:
                self.doc.close()
