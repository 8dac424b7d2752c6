"""
Data models for the highlight pipeline.

- DocumentType: the four supported insurance report layouts
- HighlightType: the four billing conditions, their colors and evidence documents
- PdfRow: one reconstructed logical table row (immutable, copy-on-write highlights)
- HighlightMark: one placed highlight rectangle on a page
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Optional

import fitz  # PyMuPDF

from .errors import UnknownConditionError


class DocumentType(Enum):
    """Report layouts recognized by the row reconstructor."""

    VISIT_SUMMARY = "visit_summary"        # 진료정보요약
    DRUG_SUMMARY = "drug_summary"          # 기본진료정보
    TREATMENT_DETAIL = "treatment_detail"  # 세부진료정보
    PRESCRIPTION = "prescription"          # 처방조제정보


class HighlightType(Enum):
    """
    Billing conditions a row can be highlighted for.

    Declaration order is the fixed display order of the summary box.
    """

    VISIT_OVER_7_DAYS = "visit_over_7_days"
    HAS_HOSPITALIZATION = "has_hospitalization"
    HAS_SURGERY = "has_surgery"
    MONTH_OVER_30_DRUG = "month_over_30_drug"

    @property
    def color(self) -> tuple:
        """RGB color (0.0-1.0) used for highlights, tabs and margin bars."""
        return _COLORS[self]

    @property
    def label(self) -> str:
        """Short label shown in the summary box."""
        return _LABELS[self]

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @property
    def target(self) -> DocumentType:
        """Document type whose rows carry the evidence for this condition."""
        return _TARGETS[self]


_COLORS = {
    HighlightType.VISIT_OVER_7_DAYS: (1.0, 217 / 255, 64 / 255),   # Yellow
    HighlightType.HAS_HOSPITALIZATION: (70 / 255, 140 / 255, 1.0),  # Blue
    HighlightType.HAS_SURGERY: (1.0, 80 / 255, 80 / 255),          # Red
    HighlightType.MONTH_OVER_30_DRUG: (1.0, 153 / 255, 51 / 255),  # Orange
}

_LABELS = {
    HighlightType.VISIT_OVER_7_DAYS: "7일이상",
    HighlightType.HAS_HOSPITALIZATION: "입원",
    HighlightType.HAS_SURGERY: "수술",
    HighlightType.MONTH_OVER_30_DRUG: "30일초과",
}

_DESCRIPTIONS = {
    HighlightType.VISIT_OVER_7_DAYS: "동일 병원 누적 내원 7일 이상",
    HighlightType.HAS_HOSPITALIZATION: "입원 내역 포함",
    HighlightType.HAS_SURGERY: "수술 내역 포함",
    HighlightType.MONTH_OVER_30_DRUG: "30일 초과 약제 복용",
}

_TARGETS = {
    HighlightType.VISIT_OVER_7_DAYS: DocumentType.VISIT_SUMMARY,
    HighlightType.HAS_HOSPITALIZATION: DocumentType.VISIT_SUMMARY,
    HighlightType.HAS_SURGERY: DocumentType.TREATMENT_DETAIL,
    HighlightType.MONTH_OVER_30_DRUG: DocumentType.PRESCRIPTION,
}

# External condition selector -> highlight type
CONDITION_TYPES = {
    0: HighlightType.VISIT_OVER_7_DAYS,
    1: HighlightType.MONTH_OVER_30_DRUG,
    2: HighlightType.HAS_HOSPITALIZATION,
    3: HighlightType.HAS_SURGERY,
}


def highlight_type_for_condition(condition: int) -> HighlightType:
    """
    Map the external condition integer to its highlight type.

    Raises:
        UnknownConditionError: For any value outside the condition table
    """
    # bool is an int subclass; True must not silently select condition 1
    if isinstance(condition, bool) or not isinstance(condition, int):
        raise UnknownConditionError(condition)
    try:
        return CONDITION_TYPES[condition]
    except KeyError:
        raise UnknownConditionError(condition) from None


@dataclass(frozen=True)
class PdfRow:
    """One reconstructed logical row of a report table."""

    page_index: int  # 0-based
    document_type: DocumentType
    raw_line: str  # Merged source text, untouched

    sequence: Optional[str] = None
    institution_name: Optional[str] = None

    # VisitSummary / DrugSummary
    days_of_stay_or_visit: Optional[str] = None  # "11(0)" or "7"
    total_medical_fee: Optional[str] = None
    insurance_benefit: Optional[str] = None
    user_paid_amount: Optional[str] = None

    # TreatmentDetail / Prescription
    treatment_start_date: Optional[str] = None
    treatment_item: Optional[str] = None  # Treatment item, or drug name for prescriptions
    code_name: Optional[str] = None  # Code name, or ingredient for prescriptions
    dose_per_once: Optional[str] = None
    times_per_day: Optional[str] = None
    total_days: Optional[str] = None

    treatment_detail: Optional[str] = None

    highlight_types: frozenset = field(default_factory=frozenset)

    def with_highlight_types(self, types: Iterable[HighlightType]) -> "PdfRow":
        """Return a copy carrying a fresh highlight set; self is never mutated."""
        return replace(self, highlight_types=frozenset(types))

    @property
    def is_marked(self) -> bool:
        return bool(self.highlight_types)


@dataclass(frozen=True)
class HighlightMark:
    """A single placed highlight: page, condition and rectangle in page space."""

    page_index: int
    highlight_type: HighlightType
    rect: fitz.Rect

    @property
    def key(self) -> tuple:
        """Hashable identity used to avoid placing the same mark twice."""
        return (self.page_index, self.highlight_type, tuple(round(v, 2) for v in self.rect))
