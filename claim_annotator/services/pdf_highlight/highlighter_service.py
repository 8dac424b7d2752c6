"""
Highlight Pipeline

Main orchestrator: reads pages, rebuilds rows, classifies them for one
condition, finds the evidence on each page and draws the overlay.

Per-page failures never block the document; the pipeline always saves an
output copy once the document itself could be opened.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .document import PdfDocument
from .errors import PageReadError
from .highlight_rules import classify, evidence_target
from .models import DocumentType, HighlightMark, HighlightType, PdfRow, highlight_type_for_condition
from .overlay_renderer import OverlayRenderer, OverlayStyle, RenderResult, summarize_marks
from .row_reconstructor import reconstruct_rows, reconstruct_surgery_rows
from .text_index import PageText
from .text_locator import PageTextLocator
from .token_matchers import find_hospitalization_tokens

logger = logging.getLogger(__name__)


@dataclass
class HighlightConfig:
    """Tunables of the pipeline; built by the caller, never read from globals."""

    max_page_workers: int = 4
    highlight_opacity: float = 0.9
    summary_font: str = "korea"

    def validate(self) -> list[str]:
        """
        Returns:
            List of validation errors (empty if valid)
        """
        errors = []
        if self.max_page_workers < 1:
            errors.append(f"max_page_workers must be at least 1, got {self.max_page_workers}")
        if not 0 < self.highlight_opacity <= 1:
            errors.append(f"highlight_opacity must be between 0 and 1, got {self.highlight_opacity}")
        return errors


@dataclass
class HighlightRunResult:
    """Result of one highlight run."""

    output_path: Optional[Path] = None
    document_type: Optional[DocumentType] = None
    highlight_type: Optional[HighlightType] = None
    rows_parsed: int = 0
    rows_marked: int = 0
    marks_by_type: dict[HighlightType, int] = field(default_factory=dict)
    pages_skipped: list[int] = field(default_factory=list)
    used_fallback: bool = False
    render: Optional[RenderResult] = None

    @property
    def total_marks(self) -> int:
        return sum(self.marks_by_type.values())


class HighlightPipeline:
    """
    Highlights the rows of one report that satisfy one billing condition.

    Orchestrates:
    1. Page reads (thread pool, merged by page index)
    2. Row reconstruction and field extraction
    3. Document-wide aggregation and classification
    4. Evidence location per page (thread pool)
    5. Highlight annotations, overlay and save
    """

    def __init__(self, config: Optional[HighlightConfig] = None):
        self.config = config or HighlightConfig()

        errors = self.config.validate()
        if errors:
            raise ValueError("; ".join(errors))

        self.renderer = OverlayRenderer(OverlayStyle(summary_font=self.config.summary_font))

    def run(
        self,
        pdf_path,
        document_type: DocumentType,
        condition: int,
        output_path,
    ) -> HighlightRunResult:
        """
        Annotate a PDF for one condition and save the result.

        Args:
            pdf_path: Source PDF
            document_type: Report layout of the source
            condition: External condition selector
            output_path: Where the annotated copy is written

        Returns:
            HighlightRunResult with counts and the output path

        Raises:
            UnknownConditionError: condition is not in the condition table
            DocumentReadError: The source cannot be opened
        """
        highlight_type = highlight_type_for_condition(condition)
        result = HighlightRunResult(document_type=document_type, highlight_type=highlight_type)

        logger.info(f"Starting highlight run for {Path(pdf_path).name} ({document_type.value}, {highlight_type.value})")

        with PdfDocument.open(pdf_path) as document:
            # Step 1: Read every page once
            pages, skipped = self.read_pages(document)
            result.pages_skipped = skipped

            # Step 2: Rows
            rows = reconstruct_rows(
                document_type,
                ((i, pages[i].lines) for i in sorted(pages)),
            )
            result.rows_parsed = len(rows)

            # Step 3: Classification
            classified = classify(rows, condition)
            marked = [row for row in classified if row.is_marked]
            result.rows_marked = len(marked)

            # Step 4: Evidence on the page
            marks = self.locate_marks(pages, marked, highlight_type)

            if highlight_type == HighlightType.HAS_HOSPITALIZATION and not marks:
                marks = self.locate_hospitalization_fallback(pages)
                result.used_fallback = True

            # Step 5: Draw and save
            for mark in marks:
                document.draw_highlight(
                    mark.page_index,
                    mark.rect,
                    mark.highlight_type.color,
                    self.config.highlight_opacity,
                )

            summary = summarize_marks(marks)
            result.marks_by_type = summary
            result.render = self.renderer.render(document, marks, summary)
            result.output_path = Path(document.save(output_path))

        logger.info(
            f"Highlight run complete: {result.rows_parsed} rows, {result.rows_marked} marked, "
            f"{result.total_marks} marks, {len(result.pages_skipped)} pages skipped"
        )
        return result

    def parse_rows(self, pdf_path, document_type: DocumentType, surgery_blocks: bool = False) -> list[PdfRow]:
        """
        Rows of a report without drawing anything.

        Args:
            pdf_path: Source PDF
            document_type: Report layout of the source
            surgery_blocks: Use the surgery block parser (treatment detail reports)

        Raises:
            DocumentReadError: The source cannot be opened
        """
        with PdfDocument.open(pdf_path) as document:
            pages, _ = self.read_pages(document)

        ordered = ((i, pages[i].lines) for i in sorted(pages))
        if surgery_blocks:
            return reconstruct_surgery_rows(ordered)
        return reconstruct_rows(document_type, ordered)

    def read_pages(self, document: PdfDocument) -> tuple[dict[int, PageText], list[int]]:
        """
        Read all pages in parallel.

        Returns:
            (page index -> PageText for readable pages, sorted unreadable page indices)
        """
        page_count = document.page_count()
        pages: dict[int, PageText] = {}
        skipped: list[int] = []

        with ThreadPoolExecutor(max_workers=self.config.max_page_workers) as executor:
            futures = {executor.submit(document.read_page, i): i for i in range(page_count)}
            for future in as_completed(futures):
                page_index = futures[future]
                try:
                    pages[page_index] = future.result()
                except PageReadError as e:
                    logger.warning(f"Skipping page: {e}")
                    skipped.append(page_index)

        logger.info(f"Read {len(pages)}/{page_count} pages")
        return pages, sorted(skipped)

    def locate_marks(
        self,
        pages: dict[int, PageText],
        rows: list[PdfRow],
        highlight_type: HighlightType,
    ) -> list[HighlightMark]:
        """Marks for the evidence of marked rows, located page by page in parallel."""
        rows_by_page: dict[int, list[PdfRow]] = {}
        for row in rows:
            if row.page_index in pages:
                rows_by_page.setdefault(row.page_index, []).append(row)

        per_page: dict[int, list[HighlightMark]] = {}
        with ThreadPoolExecutor(max_workers=self.config.max_page_workers) as executor:
            futures = {
                executor.submit(locate_page_marks, pages[i], page_rows, highlight_type): i
                for i, page_rows in rows_by_page.items()
            }
            for future in as_completed(futures):
                per_page[futures[future]] = future.result()

        marks = [mark for i in sorted(per_page) for mark in per_page[i]]
        logger.info(f"Located {len(marks)} {highlight_type.value} marks on {len(per_page)} pages")
        return marks

    def locate_hospitalization_fallback(self, pages: dict[int, PageText]) -> list[HighlightMark]:
        """Every occurrence of the first inpatient "N(M)" token with N > 0 on each page."""
        marks = []
        for page_index in sorted(pages):
            page = pages[page_index]
            tokens = find_hospitalization_tokens(page.index.text)
            if not tokens:
                continue

            token = tokens[0]
            locator = PageTextLocator(page_index, page.index)
            matches = locator.locate(HighlightType.HAS_HOSPITALIZATION, token)
            if not matches:
                continue

            normalized = token.replace("（", "(").replace("）", ")")
            logger.debug(f"Page {page_index}: hospitalization token '{normalized}' marked {len(matches)}x by page scan")
            marks.extend(HighlightMark(page_index, HighlightType.HAS_HOSPITALIZATION, m.rect) for m in matches)

        logger.info(f"Hospitalization page scan placed {len(marks)} marks")
        return marks


def locate_page_marks(page: PageText, rows: list[PdfRow], highlight_type: HighlightType) -> list[HighlightMark]:
    """
    Marks for one page.

    Evidence is searched inside the row's own text on the page, so a target
    that also appears within another row is not marked there. Each match is
    placed once.
    """
    locator = PageTextLocator(page.page_index, page.index)
    marks: list[HighlightMark] = []
    seen: set[tuple] = set()

    for row in rows:
        target = evidence_target(row, highlight_type)
        if not target:
            continue

        for match in locator.locate_in_row(highlight_type, target, row.raw_line):
            mark = HighlightMark(page.page_index, highlight_type, match.rect)
            if mark.key in seen:
                continue
            seen.add(mark.key)
            marks.append(mark)

    return marks
