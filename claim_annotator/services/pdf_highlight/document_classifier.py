"""
Document Classifier

Identifies which insurance report a PDF is from the title printed on its
first page.
"""

import logging
from typing import Optional

from .document import PdfDocument
from .errors import PageReadError
from .models import DocumentType

logger = logging.getLogger(__name__)

# Checked in order; the first title found wins
TITLE_TYPES = (
    ("진료정보요약", DocumentType.VISIT_SUMMARY),
    ("기본진료정보", DocumentType.DRUG_SUMMARY),
    ("세부진료정보", DocumentType.TREATMENT_DETAIL),
    ("처방조제정보", DocumentType.PRESCRIPTION),
)

DEFAULT_DOCUMENT_TYPE = DocumentType.VISIT_SUMMARY


def detect_document_type(first_page_text: Optional[str]) -> DocumentType:
    """Report type named by the first page title; VisitSummary when none is found."""
    compact = "".join((first_page_text or "").split())
    for title, document_type in TITLE_TYPES:
        if title in compact:
            return document_type

    logger.debug(f"No report title found, defaulting to {DEFAULT_DOCUMENT_TYPE.value}")
    return DEFAULT_DOCUMENT_TYPE


def classify_pdf(pdf_path) -> DocumentType:
    """
    Open a PDF and detect its report type.

    Raises:
        DocumentReadError: The file cannot be opened
    """
    with PdfDocument.open(pdf_path) as document:
        if document.page_count() == 0:
            return DEFAULT_DOCUMENT_TYPE
        try:
            page = document.read_page(0)
        except PageReadError as e:
            logger.warning(f"{e}; defaulting to {DEFAULT_DOCUMENT_TYPE.value}")
            return DEFAULT_DOCUMENT_TYPE

    document_type = detect_document_type(" ".join(page.lines))
    logger.info(f"Detected {document_type.value} for {pdf_path}")
    return document_type
