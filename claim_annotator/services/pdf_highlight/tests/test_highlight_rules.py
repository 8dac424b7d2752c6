"""
Unit tests for the condition rule engine.
"""

import pytest

from claim_annotator.services.pdf_highlight.errors import UnknownConditionError
from claim_annotator.services.pdf_highlight.highlight_rules import classify, evidence_target
from claim_annotator.services.pdf_highlight.models import (
    DocumentType,
    HighlightType,
    PdfRow,
    highlight_type_for_condition,
)


def visit(name, days, page=0):
    return PdfRow(
        page_index=page,
        document_type=DocumentType.VISIT_SUMMARY,
        raw_line=f"1 {name} {days} 1,000 500 500",
        institution_name=name,
        days_of_stay_or_visit=days,
    )


def detail(text, page=0):
    return PdfRow(
        page_index=page,
        document_type=DocumentType.TREATMENT_DETAIL,
        raw_line=text,
        treatment_detail=text,
    )


def prescription(date, days, page=0):
    raw = f"1 {date} 서울약국 처방조제 타이레놀 아세트아미노펜 1 3 {days}"
    return PdfRow(
        page_index=page,
        document_type=DocumentType.PRESCRIPTION,
        raw_line=raw,
        treatment_start_date=date,
        treatment_item="타이레놀",
        code_name="아세트아미노펜",
        total_days=days,
        treatment_detail=raw,
    )


class TestConditionTable:
    """Condition integer mapping."""

    @pytest.mark.parametrize("condition,expected", [
        (0, HighlightType.VISIT_OVER_7_DAYS),
        (1, HighlightType.MONTH_OVER_30_DRUG),
        (2, HighlightType.HAS_HOSPITALIZATION),
        (3, HighlightType.HAS_SURGERY),
    ])
    def test_known_conditions(self, condition, expected):
        assert highlight_type_for_condition(condition) == expected

    @pytest.mark.parametrize("condition", [4, -1, None, "0", True, 1.0])
    def test_unknown_condition(self, condition):
        with pytest.raises(UnknownConditionError) as exc_info:
            highlight_type_for_condition(condition)
        assert exc_info.value.condition == condition

    def test_classify_unknown_condition_fails(self):
        with pytest.raises(UnknownConditionError):
            classify([visit("A", "9(0)")], 7)


class TestClassify:
    """classify per condition."""

    def test_visit_over_7_days(self):
        rows = [visit("A", "4(0)"), visit("A", "3(0)"), visit("B", "2(0)"), visit("A약국", "9(0)")]

        result = classify(rows, 0)

        marked = [r.institution_name for r in result if r.is_marked]
        assert marked == ["A", "A"]
        assert result[0].highlight_types == frozenset({HighlightType.VISIT_OVER_7_DAYS})
        assert result[2].highlight_types == frozenset()

    def test_hospitalization(self):
        rows = [visit("A", "2(0)"), visit("B", "0(3)"), visit("C약국", "1(0)")]

        result = classify(rows, 2)

        assert [r.is_marked for r in result] == [True, False, False]

    def test_surgery(self):
        rows = [
            detail("1 2024-03-02 서울병원 처치및수술료 부분층피부이식수술 1 1 1"),
            detail("2 2024-03-03 서울병원 처치및수술료 창상수술후처치 1 1 1"),
            visit("A", "2(0)"),
        ]

        result = classify(rows, 3)

        assert [r.is_marked for r in result] == [True, False, False]

    def test_month_over_30_drug(self):
        rows = [prescription("2024-01-01", "20"), prescription("2024-02-01", "10"), visit("A", "1(0)")]

        result = classify(rows, 1)

        assert [r.is_marked for r in result] == [True, True, False]

    def test_copy_on_write(self):
        rows = [visit("A", "9(0)")]

        result = classify(rows, 0)

        assert result[0] is not rows[0]
        assert rows[0].highlight_types == frozenset()
        assert result[0].institution_name == rows[0].institution_name

    def test_reclassify_replaces_previous_set(self):
        marked = classify([visit("A", "9(0)")], 0)
        again = classify(marked, 3)
        assert again[0].highlight_types == frozenset()

    def test_empty_input(self):
        assert classify([], 1) == []


class TestEvidenceTarget:
    """evidence_target per highlight type."""

    def test_targets(self):
        v = visit("서울병원", "11(0)")
        assert evidence_target(v, HighlightType.VISIT_OVER_7_DAYS) == "서울병원"
        assert evidence_target(v, HighlightType.HAS_HOSPITALIZATION) == "11(0)"

        d = detail("1 2024-03-02 부분층피부이식수술 1 1 1")
        assert evidence_target(d, HighlightType.HAS_SURGERY) == "03-02부분층피부이식수술"

        p = prescription("2024-01-01", "20")
        assert evidence_target(p, HighlightType.MONTH_OVER_30_DRUG) == p.raw_line
