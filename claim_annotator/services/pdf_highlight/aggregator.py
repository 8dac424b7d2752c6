"""
Cumulative Aggregator

Document-wide running sums that back the threshold conditions:
- hospital key -> cumulative visit days (VisitSummary rows, pharmacies excluded)
- drug key -> cumulative dose days (Prescription rows, deduplicated per day)

All helpers here are pure and fail soft: malformed numbers count as 0.
"""

import logging
import re
from collections import defaultdict
from typing import Iterable, Optional

from .models import DocumentType, PdfRow

logger = logging.getLogger(__name__)

VISIT_DAYS_THRESHOLD = 7
DRUG_DAYS_THRESHOLD = 30

PHARMACY_MARKER = "약국"
DISPENSATION_MARKER = "처방조제"

_WHITESPACE_RE = re.compile(r"\s+")
_NON_KEY_CHARS_RE = re.compile(r"[^가-힣a-zA-Z0-9]")
_DAYS_WITH_SPLIT_RE = re.compile(r"^(\d+)[(（](\d+)[)）]$")
_DAYS_PLAIN_RE = re.compile(r"^(\d+)$")
_NON_DIGIT_RE = re.compile(r"[^0-9]")


def safe_parse_int(value: Optional[str]) -> int:
    """Parse an integer, returning 0 instead of raising."""
    if value is None:
        return 0
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


def parse_positive_int(value: Optional[str]) -> int:
    """Keep only the digits of a token ("30일" -> 30); 0 when none remain."""
    if value is None:
        return 0
    digits = _NON_DIGIT_RE.sub("", str(value))
    return safe_parse_int(digits) if digits else 0


def parse_total_days(days_of_stay_or_visit: Optional[str]) -> int:
    """"11(0)" -> 11, "3(5)" -> 8, "7" -> 7, anything else -> 0."""
    if days_of_stay_or_visit is None:
        return 0
    s = days_of_stay_or_visit.strip()

    m = _DAYS_WITH_SPLIT_RE.match(s)
    if m:
        return safe_parse_int(m.group(1)) + safe_parse_int(m.group(2))

    m = _DAYS_PLAIN_RE.match(s)
    if m:
        return safe_parse_int(m.group(1))

    return 0


def normalize_hospital_key(institution_name: Optional[str]) -> str:
    """
    Aggregation key for an institution.

    Whitespace and every character outside Hangul syllables, ASCII letters
    and digits are removed; ASCII letters are lower-cased. Idempotent.
    """
    if institution_name is None:
        return ""
    s = _WHITESPACE_RE.sub("", institution_name.strip())
    s = _NON_KEY_CHARS_RE.sub("", s)
    return s.lower()


def normalize_drug_key(text: Optional[str]) -> str:
    """Drug name / ingredient key: whitespace and underscores removed. Idempotent."""
    if text is None:
        return ""
    return _WHITESPACE_RE.sub("", text.strip()).replace("_", "")


def is_pharmacy(institution_name: Optional[str]) -> bool:
    return PHARMACY_MARKER in normalize_hospital_key(institution_name)


def is_dispensation(row: PdfRow) -> bool:
    """True when the row is a pharmacy dispensation record rather than an outpatient one."""
    return DISPENSATION_MARKER in (row.raw_line or "")


def drug_key(row: PdfRow) -> str:
    """Ingredient + drug name key; empty when either part is missing."""
    ingredient = normalize_drug_key(row.code_name)
    drug_name = normalize_drug_key(row.treatment_item)
    if not ingredient or not drug_name:
        return ""
    return f"{ingredient}|{drug_name}"


def hospital_day_sums(rows: Iterable[PdfRow]) -> dict[str, int]:
    """Cumulative visit days per normalized hospital key."""
    sums: dict[str, int] = defaultdict(int)

    for row in rows:
        if row.document_type != DocumentType.VISIT_SUMMARY:
            continue
        if is_pharmacy(row.institution_name):
            continue

        key = normalize_hospital_key(row.institution_name)
        if not key:
            continue

        days = parse_total_days(row.days_of_stay_or_visit)
        if days <= 0:
            continue

        sums[key] += days

    return dict(sums)


def sum_days_by_hospital(rows: Iterable[PdfRow]) -> set[str]:
    """Hospital keys whose cumulative visit days reach the 7-day threshold."""
    sums = hospital_day_sums(rows)
    hits = {key for key, total in sums.items() if total >= VISIT_DAYS_THRESHOLD}
    logger.debug(f"Hospital day sums: {len(sums)} hospitals, {len(hits)} at or over {VISIT_DAYS_THRESHOLD} days")
    return hits


def dedupe_prescriptions(rows: Iterable[PdfRow]) -> list[PdfRow]:
    """
    Keep one record per (date, ingredient, drug name).

    A dispensation record replaces an outpatient record for the same key;
    otherwise the first record seen wins. Rows missing any key part are dropped.
    """
    picked: dict[tuple, PdfRow] = {}

    for row in rows:
        if row.document_type != DocumentType.PRESCRIPTION:
            continue

        date = (row.treatment_start_date or "").strip()
        ingredient = normalize_drug_key(row.code_name)
        drug_name = normalize_drug_key(row.treatment_item)
        if not date or not ingredient or not drug_name:
            continue

        day_key = (date, ingredient, drug_name)
        previous = picked.get(day_key)
        if previous is None:
            picked[day_key] = row
        elif not is_dispensation(previous) and is_dispensation(row):
            picked[day_key] = row

    return list(picked.values())


def drug_day_sums(rows: Iterable[PdfRow]) -> dict[str, int]:
    """Cumulative dose days per drug key, after per-day deduplication."""
    sums: dict[str, int] = defaultdict(int)

    for row in dedupe_prescriptions(rows):
        key = drug_key(row)
        if not key:
            continue

        days = parse_positive_int(row.total_days)
        if days <= 0:
            continue

        sums[key] += days

    return dict(sums)


def sum_days_by_drug(rows: Iterable[PdfRow]) -> set[str]:
    """Drug keys whose cumulative dose days reach the 30-day threshold."""
    sums = drug_day_sums(rows)
    hits = {key for key, total in sums.items() if total >= DRUG_DAYS_THRESHOLD}
    logger.debug(f"Drug day sums: {len(sums)} drugs, {len(hits)} at or over {DRUG_DAYS_THRESHOLD} days")
    return hits
