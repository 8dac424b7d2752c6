"""
Unit tests for report type detection.
"""

import pytest

from claim_annotator.services.pdf_highlight.document_classifier import (
    classify_pdf,
    detect_document_type,
)
from claim_annotator.services.pdf_highlight.errors import DocumentReadError
from claim_annotator.services.pdf_highlight.models import DocumentType


class TestDetectDocumentType:
    """Title lookup on first-page text."""

    @pytest.mark.parametrize("text,expected", [
        ("건강보험 진료정보요약 발급일 2024-05-01", DocumentType.VISIT_SUMMARY),
        ("기본진료정보\n순번 진료시작일", DocumentType.DRUG_SUMMARY),
        ("세부 진료 정보", DocumentType.TREATMENT_DETAIL),
        ("처방조제정보 (약국)", DocumentType.PRESCRIPTION),
    ])
    def test_titles(self, text, expected):
        assert detect_document_type(text) == expected

    def test_fallback(self):
        assert detect_document_type("unrelated text") == DocumentType.VISIT_SUMMARY
        assert detect_document_type(None) == DocumentType.VISIT_SUMMARY


class TestClassifyPdf:
    """Detection from a file."""

    def test_pdf_without_title_falls_back(self, make_pdf):
        path = make_pdf([["1 X 4(0) 10,000 5,000 5,000"]])
        assert classify_pdf(path) == DocumentType.VISIT_SUMMARY

    def test_missing_file(self, tmp_path):
        with pytest.raises(DocumentReadError):
            classify_pdf(tmp_path / "missing.pdf")
