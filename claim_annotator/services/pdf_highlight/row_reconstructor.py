"""
Row Reconstructor

Merges wrapped extraction lines into logical table rows. Each report type
has a row-start rule; lines that do not start a row are appended to the
open row buffer, header/noise lines are discarded before buffering.
"""

import logging
import re
from typing import Callable, Iterable, Optional

from .field_extractor import SEQ_DATE_ROW, extract_row, parse_surgery_block
from .models import DocumentType, PdfRow

logger = logging.getLogger(__name__)

# VisitSummary: digits, optionally followed by more text
VISIT_ROW_START = re.compile(r"^\d+(\s+.*)?$")

# All other types: sequence + ISO date
SEQ_DATE_ROW_START = re.compile(r"^\d+\s+\d{4}-\d{2}-\d{2}\s+.*")

# "- 1 / 3 -", "2/5" page counters
PAGE_COUNTER = re.compile(r"^-?\s*\d+\s*/\s*\d+\s*-?$")

REPORT_TITLES = ("진료정보요약", "기본진료정보", "세부진료정보", "처방조제정보")

HEADER_PREFIXES = {
    DocumentType.VISIT_SUMMARY: (
        "순번", "진료내용", "총 진료비", "(건강보험", "건강보험", "혜택받은", "내가 낸",
    ),
    DocumentType.DRUG_SUMMARY: (
        "순번", "진료시작일", "진료형태", "주상병", "내원일수", "총 진료비", "(건강보험",
        "건강보험", "혜택받은", "내가 낸",
    ),
    DocumentType.TREATMENT_DETAIL: (
        "순번", "진료시작일", "진료내역", "코드명", "1회 투약량", "1회 투여횟수", "총 투약일수",
    ),
    DocumentType.PRESCRIPTION: (
        "순번", "진료시작일", "처방구분", "약품명", "성분명", "1회 투약량", "1회 투여횟수", "총 투약일수",
    ),
}

HEADER_FRAGMENTS = ("병·의원&약국",)


def is_noise_line(document_type: DocumentType, line: str) -> bool:
    """Table headers, report titles and page counters."""
    if PAGE_COUNTER.match(line):
        return True
    if any(title in line for title in REPORT_TITLES):
        return True
    if any(fragment in line for fragment in HEADER_FRAGMENTS):
        return True
    if line.startswith(HEADER_PREFIXES[document_type]):
        return True
    return False


def is_row_start(document_type: DocumentType, line: str) -> bool:
    if document_type == DocumentType.VISIT_SUMMARY:
        return VISIT_ROW_START.match(line) is not None
    return SEQ_DATE_ROW_START.match(line) is not None


def clean_lines(raw_lines: Iterable[str]) -> list[str]:
    """Trim every line and drop blank ones."""
    lines = []
    for raw in raw_lines:
        line = (raw or "").strip()
        if line:
            lines.append(line)
    return lines


class RowReconstructor:
    """
    Rebuilds logical rows for one document.

    The open buffer survives page breaks; a row keeps the page index of the
    line that started it. VisitSummary rows are also emitted as soon as the
    merged buffer parses, so trailing footers cannot corrupt a complete row.
    """

    def __init__(
        self,
        document_type: DocumentType,
        parser: Optional[Callable[[str, int], Optional[PdfRow]]] = None,
    ):
        self.document_type = document_type
        self._parse = parser or (lambda row, page_index: extract_row(document_type, row, page_index))
        self._eager = document_type == DocumentType.VISIT_SUMMARY and parser is None

        self._rows: list[PdfRow] = []
        self._buffer: list[str] = []
        self._buffer_page: Optional[int] = None
        self.dropped = 0

    def reconstruct(self, pages: Iterable[tuple[int, list[str]]]) -> list[PdfRow]:
        """
        Args:
            pages: (page_index, raw lines) in page order

        Returns:
            Parsed rows in reading order
        """
        self._rows = []
        self._buffer = []
        self._buffer_page = None
        self.dropped = 0

        for page_index, raw_lines in pages:
            for line in clean_lines(raw_lines):
                self._feed(page_index, line)

        self._flush()

        logger.info(
            f"Reconstructed {len(self._rows)} {self.document_type.value} rows "
            f"({self.dropped} dropped)"
        )
        return self._rows

    def _feed(self, page_index: int, line: str) -> None:
        if is_noise_line(self.document_type, line):
            return

        if is_row_start(self.document_type, line):
            self._flush()
            self._buffer = [line]
            self._buffer_page = page_index
        elif self._buffer:
            self._buffer.append(line)
        else:
            # Continuation with no open row (preamble text)
            return

        if self._eager:
            row = self._parse(self._merged(), self._buffer_page)
            if row is not None:
                self._rows.append(row)
                self._buffer = []
                self._buffer_page = None

    def _merged(self) -> str:
        return " ".join(self._buffer).strip()

    def _flush(self) -> None:
        if not self._buffer:
            return

        text = self._merged()
        page_index = self._buffer_page
        self._buffer = []
        self._buffer_page = None

        if self.document_type != DocumentType.VISIT_SUMMARY and not SEQ_DATE_ROW_START.match(text):
            self.dropped += 1
            return

        row = self._parse(text, page_index)
        if row is None:
            self.dropped += 1
            return
        self._rows.append(row)


def reconstruct_rows(document_type: DocumentType, pages: Iterable[tuple[int, list[str]]]) -> list[PdfRow]:
    """Rows of a report, parsed with the rule for its document type."""
    return RowReconstructor(document_type).reconstruct(pages)


def reconstruct_surgery_rows(pages: Iterable[tuple[int, list[str]]]) -> list[PdfRow]:
    """Treatment detail rows restricted to surgery procedures (block parser)."""
    reconstructor = RowReconstructor(DocumentType.TREATMENT_DETAIL, parser=parse_surgery_block)
    rows = reconstructor.reconstruct(pages)
    return [row for row in rows if SEQ_DATE_ROW.match(row.raw_line)]
