"""
Shared fixtures: small PDFs built on the fly with PyMuPDF.

Text is ASCII so the built-in Helvetica font can render it.
"""

import fitz  # PyMuPDF
import pytest


LINE_HEIGHT = 20
TOP = 100
LEFT = 72


def write_pdf(path, pages: list[list[str]]):
    """One PDF page per entry, one inserted text line per string."""
    doc = fitz.open()
    for lines in pages:
        page = doc.new_page(width=595, height=842)
        for i, line in enumerate(lines):
            page.insert_text((LEFT, TOP + i * LINE_HEIGHT), line, fontname="helv", fontsize=10)
    doc.save(str(path))
    doc.close()
    return path


@pytest.fixture
def make_pdf(tmp_path):
    """Factory: make_pdf([[...page 0 lines], [...page 1 lines]], name="x.pdf") -> Path."""

    def _make(pages: list[list[str]], name: str = "input.pdf"):
        return write_pdf(tmp_path / name, pages)

    return _make


COLUMN_LEFT = 40
COLUMN_STEP = 62


def write_table_pdf(path, pages: list[list[list[str]]]):
    """
    One PDF page per entry, one table row per cell list.

    Every cell is inserted on its own at its column's x position, the way
    report tables are drawn, so the extractor returns one line per cell.
    """
    doc = fitz.open()
    for rows in pages:
        page = doc.new_page(width=595, height=842)
        for i, cells in enumerate(rows):
            for j, cell in enumerate(cells):
                point = (COLUMN_LEFT + j * COLUMN_STEP, TOP + i * LINE_HEIGHT)
                page.insert_text(point, cell, fontname="helv", fontsize=10)
    doc.save(str(path))
    doc.close()
    return path


@pytest.fixture
def make_table_pdf(tmp_path):
    """Factory: make_table_pdf([[[cells of row 0], ...page 0], ...], name="x.pdf") -> Path."""

    def _make(pages: list[list[list[str]]], name: str = "table.pdf"):
        return write_table_pdf(tmp_path / name, pages)

    return _make
