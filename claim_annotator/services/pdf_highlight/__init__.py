"""
PDF Highlight Service

Highlights the rows of medical-insurance report PDFs that satisfy a billing
condition.

Components:
- PdfDocument: Thread-safe wrapper over the PyMuPDF document
- PageTextIndex: Whitespace-stripped page text paired with glyph boxes
- RowReconstructor: Merges wrapped lines into logical table rows
- extract_row: Per-report-type field parsers
- sum_days_by_hospital / sum_days_by_drug: Document-wide threshold key sets
- classify: Condition rule engine
- PageTextLocator: Finds evidence text and its rectangles on a page
- OverlayRenderer: Summary box, type tabs and margin bars
- HighlightPipeline: Main orchestrator that coordinates all components
"""

from .errors import DocumentReadError, HighlightError, PageReadError, UnknownConditionError
from .models import (
    CONDITION_TYPES,
    DocumentType,
    HighlightMark,
    HighlightType,
    PdfRow,
    highlight_type_for_condition,
)
from .document import PdfDocument
from .text_index import GlyphBox, PageText, PageTextIndex
from .row_reconstructor import RowReconstructor, reconstruct_rows, reconstruct_surgery_rows
from .field_extractor import extract_row
from .aggregator import (
    drug_day_sums,
    hospital_day_sums,
    normalize_drug_key,
    normalize_hospital_key,
    parse_total_days,
    sum_days_by_drug,
    sum_days_by_hospital,
)
from .highlight_rules import classify, evidence_target
from .text_locator import PageTextLocator, TextMatch
from .overlay_renderer import OverlayRenderer, OverlayStyle, RenderResult
from .document_classifier import classify_pdf, detect_document_type
from .highlighter_service import HighlightConfig, HighlightPipeline, HighlightRunResult

__all__ = [
    "DocumentReadError",
    "HighlightError",
    "PageReadError",
    "UnknownConditionError",
    "CONDITION_TYPES",
    "DocumentType",
    "HighlightMark",
    "HighlightType",
    "PdfRow",
    "highlight_type_for_condition",
    "PdfDocument",
    "GlyphBox",
    "PageText",
    "PageTextIndex",
    "RowReconstructor",
    "reconstruct_rows",
    "reconstruct_surgery_rows",
    "extract_row",
    "drug_day_sums",
    "hospital_day_sums",
    "normalize_drug_key",
    "normalize_hospital_key",
    "parse_total_days",
    "sum_days_by_drug",
    "sum_days_by_hospital",
    "classify",
    "evidence_target",
    "PageTextLocator",
    "TextMatch",
    "OverlayRenderer",
    "OverlayStyle",
    "RenderResult",
    "classify_pdf",
    "detect_document_type",
    "HighlightConfig",
    "HighlightPipeline",
    "HighlightRunResult",
]
