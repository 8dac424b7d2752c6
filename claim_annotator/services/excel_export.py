"""
Spreadsheet export of the rows behind a condition.

One sheet per condition with fixed Korean headers, a 1-based page column
and the raw source line.
"""

import logging
from pathlib import Path
from typing import Optional

import openpyxl
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter

from claim_annotator.services.pdf_highlight import (
    DocumentType,
    HighlightType,
    PdfRow,
    highlight_type_for_condition,
)
from claim_annotator.services.pdf_highlight.aggregator import (
    dedupe_prescriptions,
    drug_key,
    is_pharmacy,
    normalize_hospital_key,
    sum_days_by_drug,
    sum_days_by_hospital,
)
from claim_annotator.services.pdf_highlight.token_matchers import (
    has_hospitalization,
    has_real_surgery_token,
)

logger = logging.getLogger(__name__)

MAX_COLUMN_WIDTH = 60

SHEET_NAMES = {
    HighlightType.VISIT_OVER_7_DAYS: "7일이상내원",
    HighlightType.HAS_HOSPITALIZATION: "입원내역",
    HighlightType.HAS_SURGERY: "수술내역",
    HighlightType.MONTH_OVER_30_DRUG: "30일초과약제",
}

VISIT_HEADERS = [
    "순번",
    "병·의원&약국",
    "입원(외래)일수",
    "총 진료비(건강보험 적용분)",
    "건강보험 등 혜택받은 금액",
    "내가 낸 의료비(진료비)",
    "페이지",
    "원문",
]

SURGERY_HEADERS = [
    "순번", "진료시작일", "병·의원&약국", "진료내역", "코드명",
    "1회 투약량", "1회 투여횟수", "총 투약일수", "페이지", "원문",
]

DRUG_HEADERS = [
    "순번", "진료시작일", "병·의원&약국", "약품명", "성분명",
    "1회 투약량", "1회 투여횟수", "총 투약일수", "누적 투약일수", "페이지", "원문",
]


def _safe(value: Optional[str]) -> str:
    return value or ""


def select_export_rows(condition: int, rows: list[PdfRow]) -> list[PdfRow]:
    """
    Evidence rows for a condition, sorted by page then institution.

    Surgery expects rows from the surgery block parser; drug rows are
    deduplicated per day before filtering and also sorted by date.

    Raises:
        UnknownConditionError: condition is not in the condition table
    """
    highlight_type = highlight_type_for_condition(condition)

    if highlight_type == HighlightType.VISIT_OVER_7_DAYS:
        hospital_keys = sum_days_by_hospital(rows)
        selected = [
            r for r in rows
            if r.document_type == DocumentType.VISIT_SUMMARY
            and not is_pharmacy(r.institution_name)
            and normalize_hospital_key(r.institution_name) in hospital_keys
        ]
    elif highlight_type == HighlightType.HAS_HOSPITALIZATION:
        selected = [
            r for r in rows
            if r.document_type == DocumentType.VISIT_SUMMARY
            and not is_pharmacy(r.institution_name)
            and has_hospitalization(r.days_of_stay_or_visit)
        ]
    elif highlight_type == HighlightType.HAS_SURGERY:
        selected = [
            r for r in rows
            if r.document_type == DocumentType.TREATMENT_DETAIL
            and has_real_surgery_token(r.code_name)
        ]
    else:
        drug_keys = sum_days_by_drug(rows)
        selected = [r for r in dedupe_prescriptions(rows) if drug_key(r) in drug_keys]
        return sorted(
            selected,
            key=lambda r: (r.page_index, _safe(r.institution_name), _safe(r.treatment_start_date)),
        )

    return sorted(selected, key=lambda r: (r.page_index, _safe(r.institution_name)))


def _visit_values(row: PdfRow, drug_sums: dict[str, int]) -> list:
    return [
        _safe(row.sequence),
        _safe(row.institution_name),
        _safe(row.days_of_stay_or_visit),
        _safe(row.total_medical_fee),
        _safe(row.insurance_benefit),
        _safe(row.user_paid_amount),
        row.page_index + 1,
        _safe(row.raw_line),
    ]


def _surgery_values(row: PdfRow, drug_sums: dict[str, int]) -> list:
    return [
        _safe(row.sequence),
        _safe(row.treatment_start_date),
        _safe(row.institution_name),
        _safe(row.treatment_item),
        _safe(row.code_name),
        _safe(row.dose_per_once),
        _safe(row.times_per_day),
        _safe(row.total_days),
        row.page_index + 1,
        _safe(row.raw_line),
    ]


def _drug_values(row: PdfRow, drug_sums: dict[str, int]) -> list:
    return [
        _safe(row.sequence),
        _safe(row.treatment_start_date),
        _safe(row.institution_name),
        _safe(row.treatment_item),  # Drug name
        _safe(row.code_name),  # Ingredient
        _safe(row.dose_per_once),
        _safe(row.times_per_day),
        _safe(row.total_days),
        drug_sums.get(drug_key(row), 0),
        row.page_index + 1,
        _safe(row.raw_line),
    ]


SHEET_LAYOUTS = {
    HighlightType.VISIT_OVER_7_DAYS: (VISIT_HEADERS, _visit_values),
    HighlightType.HAS_HOSPITALIZATION: (VISIT_HEADERS, _visit_values),
    HighlightType.HAS_SURGERY: (SURGERY_HEADERS, _surgery_values),
    HighlightType.MONTH_OVER_30_DRUG: (DRUG_HEADERS, _drug_values),
}


def write_workbook(
    condition: int,
    rows: list[PdfRow],
    output_path,
    drug_sums: Optional[dict[str, int]] = None,
) -> Path:
    """
    Write the selected rows of a condition to an .xlsx file.

    Args:
        condition: External condition selector
        rows: Rows already selected for export
        output_path: Destination file; parent directories are created
        drug_sums: Cumulative dose days per drug key (drug sheet only)

    Returns:
        Path of the written workbook
    """
    highlight_type = highlight_type_for_condition(condition)
    headers, values = SHEET_LAYOUTS[highlight_type]
    drug_sums = drug_sums or {}

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = SHEET_NAMES[highlight_type]

    _write_headers(ws, headers)
    for row in rows:
        ws.append(values(row, drug_sums))
    _format_sheet(ws, len(headers))

    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    wb.save(output)

    logger.info(f"Excel export written: {output} ({len(rows)} rows, sheet '{ws.title}')")
    return output


def _write_headers(ws, headers: list[str]) -> None:
    """Write and style header row."""
    header_font = Font(bold=True)
    for col_num, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col_num)
        cell.value = header
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center", vertical="center")


def _format_sheet(ws, num_columns: int) -> None:
    """Auto-size columns and freeze the header row."""
    for col_num in range(1, num_columns + 1):
        column_letter = get_column_letter(col_num)
        max_length = max(
            (len(str(cell.value)) for cell in ws[column_letter] if cell.value is not None),
            default=0,
        )
        ws.column_dimensions[column_letter].width = min(max_length + 2, MAX_COLUMN_WIDTH)

    ws.freeze_panes = "A2"
