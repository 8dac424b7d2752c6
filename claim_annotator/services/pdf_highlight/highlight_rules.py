"""
Highlight Rule Engine

One condition per call selects one highlight type. Rows are judged
independently, apart from the document-wide key sets computed up front.
"""

import logging
from typing import Callable, Optional

from .aggregator import (
    drug_key,
    is_pharmacy,
    normalize_hospital_key,
    sum_days_by_drug,
    sum_days_by_hospital,
)
from .models import DocumentType, HighlightType, PdfRow, highlight_type_for_condition
from .token_matchers import extract_surgery_token, has_hospitalization, has_real_surgery_token

logger = logging.getLogger(__name__)


def _surgery_text(row: PdfRow) -> str:
    return row.treatment_detail or row.raw_line or ""


def classify(rows: list[PdfRow], condition: int) -> list[PdfRow]:
    """
    Return new rows whose highlight set holds the evaluated type or nothing.

    Raises:
        UnknownConditionError: condition is not in the condition table
    """
    highlight_type = highlight_type_for_condition(condition)

    predicate: Callable[[PdfRow], bool]

    if highlight_type == HighlightType.VISIT_OVER_7_DAYS:
        hospital_keys = sum_days_by_hospital(rows)

        def predicate(row: PdfRow) -> bool:
            return (
                row.document_type == DocumentType.VISIT_SUMMARY
                and not is_pharmacy(row.institution_name)
                and normalize_hospital_key(row.institution_name) in hospital_keys
            )

    elif highlight_type == HighlightType.HAS_HOSPITALIZATION:

        def predicate(row: PdfRow) -> bool:
            return (
                row.document_type == DocumentType.VISIT_SUMMARY
                and not is_pharmacy(row.institution_name)
                and has_hospitalization(row.days_of_stay_or_visit)
            )

    elif highlight_type == HighlightType.HAS_SURGERY:

        def predicate(row: PdfRow) -> bool:
            return (
                row.document_type == DocumentType.TREATMENT_DETAIL
                and has_real_surgery_token(_surgery_text(row))
            )

    else:
        drug_keys = sum_days_by_drug(rows)

        def predicate(row: PdfRow) -> bool:
            return row.document_type == DocumentType.PRESCRIPTION and drug_key(row) in drug_keys

    classified = []
    marked = 0
    for row in rows:
        if predicate(row):
            classified.append(row.with_highlight_types({highlight_type}))
            marked += 1
        else:
            classified.append(row.with_highlight_types(()))

    logger.info(f"Classified {len(rows)} rows for {highlight_type.value}: {marked} marked")
    return classified


def evidence_target(row: PdfRow, highlight_type: HighlightType) -> Optional[str]:
    """Literal text a mark for this row is anchored to; None when there is none."""
    if highlight_type == HighlightType.VISIT_OVER_7_DAYS:
        return row.institution_name
    if highlight_type == HighlightType.HAS_HOSPITALIZATION:
        return row.days_of_stay_or_visit
    if highlight_type == HighlightType.HAS_SURGERY:
        return extract_surgery_token(_surgery_text(row))
    return row.treatment_detail or row.raw_line
