"""
Field Extractor

Parses one logical row of text into a PdfRow. There is one pure parse
function per document type, selected by extract_row(). Every parser
returns None for text it does not recognize; the row is then dropped.
"""

import logging
import re
from dataclasses import replace
from typing import Callable, Optional

from .models import DocumentType, PdfRow

logger = logging.getLogger(__name__)

VISIT_SUMMARY_ROW = re.compile(
    r"^(\d+)\s+(.+?)\s+(\d+[(（]\d+[)）])\s+([\d,]+)\s+([\d,]+)\s+([\d,]+)\s*$"
)

# "1 2025-04-29 ..." sequence + ISO date
SEQ_DATE_ROW = re.compile(r"^(\d+)\s+(\d{4}-\d{2}-\d{2})\s+(.+)$")

# Dose per once, times per day, total days at the end of a treatment row
TRAILING_3_NUMS = re.compile(r"(\d+)\s+(\d+)\s+(\d+)\s*$")

VISIT_TYPE_MARKERS = ("외래", "입원")
PRESCRIPTION_MARKERS = ("처방조제", "외래", "입원")

MIN_DRUG_SUMMARY_TOKENS = 8
MIN_DETAIL_TOKENS = 6

_WHITESPACE_RE = re.compile(r"\s+")


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def _join(tokens: list[str], start: int, end: int) -> str:
    start = max(start, 0)
    end = min(end, len(tokens))
    if start >= end:
        return ""
    return " ".join(tokens[start:end])


def _index_of_any(tokens: list[str], keys: tuple, start: int = 0, end: Optional[int] = None) -> int:
    end = len(tokens) if end is None else end
    for i in range(start, min(end, len(tokens))):
        if tokens[i] in keys:
            return i
    return -1


def parse_visit_summary_row(row: str, page_index: int) -> Optional[PdfRow]:
    """
    "<seq> <institution...> <N(M)> <fee> <benefit> <paid>"
    """
    merged = _collapse(row)
    m = VISIT_SUMMARY_ROW.match(merged)
    if not m:
        return None

    institution_name = m.group(2).strip()

    return PdfRow(
        page_index=page_index,
        document_type=DocumentType.VISIT_SUMMARY,
        raw_line=merged,
        sequence=m.group(1),
        institution_name=institution_name or None,
        days_of_stay_or_visit=m.group(3),
        total_medical_fee=m.group(4),
        insurance_benefit=m.group(5),
        user_paid_amount=m.group(6),
    )


def parse_drug_summary_row(row: str, page_index: int) -> Optional[PdfRow]:
    """
    "<seq> <date> <institution...> 외래 <codes...> <visit days> <fee> <benefit> <paid>"

    Institution runs from the token after the date up to the first visit
    type marker, or up to the visit-days token when no marker is present.
    """
    tokens = row.strip().split()
    if len(tokens) < MIN_DRUG_SUMMARY_TOKENS:
        return None

    n = len(tokens)
    visit_days = tokens[n - 4]

    start = 2
    marker_idx = _index_of_any(tokens, VISIT_TYPE_MARKERS)
    end = marker_idx if marker_idx > start else n - 4
    institution_name = _join(tokens, start, end).strip()

    return PdfRow(
        page_index=page_index,
        document_type=DocumentType.DRUG_SUMMARY,
        raw_line=row,
        sequence=tokens[0],
        treatment_start_date=tokens[1],
        institution_name=institution_name or None,
        days_of_stay_or_visit=visit_days,
        total_medical_fee=tokens[n - 3],
        insurance_benefit=tokens[n - 2],
        user_paid_amount=tokens[n - 1],
        treatment_detail=row,
    )


def _parse_dose_row(row: str, page_index: int, document_type: DocumentType) -> Optional[tuple]:
    tokens = row.strip().split()
    if len(tokens) < MIN_DETAIL_TOKENS:
        return None

    n = len(tokens)
    institution_name = _join(tokens, 2, max(2, n - 3)).strip()

    base = PdfRow(
        page_index=page_index,
        document_type=document_type,
        raw_line=row,
        sequence=tokens[0],
        treatment_start_date=tokens[1],
        institution_name=institution_name or None,
        dose_per_once=tokens[n - 3],
        times_per_day=tokens[n - 2],
        total_days=tokens[n - 1],
        treatment_detail=row,
    )
    return base, tokens


def parse_treatment_detail_row(row: str, page_index: int) -> Optional[PdfRow]:
    """Last token is the total dose days; institution is tokens[2 .. len-3)."""
    parsed = _parse_dose_row(row, page_index, DocumentType.TREATMENT_DETAIL)
    if parsed is None:
        return None
    return parsed[0]


def parse_prescription_row(row: str, page_index: int) -> Optional[PdfRow]:
    """
    Same token rule as treatment detail, plus drug name and ingredient.

    After a dispensation/visit marker the first token is the drug name and
    the rest (up to the three dose columns) the ingredient.
    """
    parsed = _parse_dose_row(row, page_index, DocumentType.PRESCRIPTION)
    if parsed is None:
        return None
    base, tokens = parsed

    dose_start = len(tokens) - 3
    marker_idx = _index_of_any(tokens, PRESCRIPTION_MARKERS, start=2, end=dose_start)
    drug_idx = marker_idx + 1 if marker_idx >= 0 else 3

    drug_name = tokens[drug_idx] if drug_idx < dose_start else ""
    ingredient = _join(tokens, drug_idx + 1, dose_start)

    return replace(base, treatment_item=drug_name or None, code_name=ingredient or None)


def parse_surgery_block(raw_block: str, page_index: int) -> Optional[PdfRow]:
    """
    Treatment detail block restricted to surgery rows.

    "<seq> <date> <institution> <item> <code name...> <dose> <times> <days>"
    Rows whose remaining text has no "수술" are discarded.
    """
    block = _collapse(raw_block)

    start = SEQ_DATE_ROW.match(block)
    if not start:
        return None

    seq = start.group(1)
    start_date = start.group(2)
    rest = start.group(3).strip()

    dose_per_once = times_per_day = total_days = None
    tail = TRAILING_3_NUMS.search(rest)
    if tail:
        dose_per_once, times_per_day, total_days = tail.group(1), tail.group(2), tail.group(3)
        rest = rest[:tail.start()].strip()

    if "수술" not in rest:
        return None

    tokens = rest.split(" ")
    institution_name = tokens[0] if tokens else None
    treatment_item = tokens[1] if len(tokens) > 1 else None
    code_name = " ".join(tokens[2:]) if len(tokens) > 2 else None

    return PdfRow(
        page_index=page_index,
        document_type=DocumentType.TREATMENT_DETAIL,
        raw_line=block,
        sequence=seq,
        treatment_start_date=start_date,
        institution_name=institution_name,
        treatment_item=treatment_item,
        code_name=code_name,
        dose_per_once=dose_per_once,
        times_per_day=times_per_day,
        total_days=total_days,
        treatment_detail=block,
    )


ROW_PARSERS: dict[DocumentType, Callable[[str, int], Optional[PdfRow]]] = {
    DocumentType.VISIT_SUMMARY: parse_visit_summary_row,
    DocumentType.DRUG_SUMMARY: parse_drug_summary_row,
    DocumentType.TREATMENT_DETAIL: parse_treatment_detail_row,
    DocumentType.PRESCRIPTION: parse_prescription_row,
}


def extract_row(document_type: DocumentType, row: str, page_index: int) -> Optional[PdfRow]:
    """Parse a logical row with the rule for its document type; None if unrecognized."""
    if not row or not row.strip():
        return None

    parsed = ROW_PARSERS[document_type](row, page_index)
    if parsed is None:
        logger.debug(f"Dropped unparsable {document_type.value} row on page {page_index}: '{row[:80]}'")
    return parsed
