"""
Document Service

Stores uploaded report PDFs, resolves which file of an upload bundle holds
the evidence for a condition, and produces highlighted PDFs and
spreadsheet exports on request.
"""

import logging
import re
import uuid
from datetime import date
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import Session

from claim_annotator.db import Document
from claim_annotator.services.excel_export import select_export_rows, write_workbook
from claim_annotator.services.pdf_highlight import (
    DocumentType,
    HighlightConfig,
    HighlightPipeline,
    HighlightRunResult,
    HighlightType,
    classify_pdf,
    highlight_type_for_condition,
)
from claim_annotator.services.pdf_highlight.aggregator import drug_day_sums

logger = logging.getLogger(__name__)

# Name part of spreadsheet exports per condition
EXPORT_LABELS = {
    HighlightType.VISIT_OVER_7_DAYS: "visit7days",
    HighlightType.HAS_HOSPITALIZATION: "hospitalization",
    HighlightType.HAS_SURGERY: "surgery",
    HighlightType.MONTH_OVER_30_DRUG: "drug30days",
}

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9\-]")


class DocumentNotFoundError(Exception):
    """No stored document (or bundle sibling) matches the request."""

    def __init__(self, message: str, document_id: Optional[str] = None):
        super().__init__(message)
        self.document_id = document_id


class StoredFileMissingError(Exception):
    """The document row exists but its PDF is gone from disk."""

    def __init__(self, path: Path):
        super().__init__(f"Stored file not found: {path}")
        self.path = path


def _safe_name(text: str) -> str:
    return _UNSAFE_NAME_CHARS.sub("", text or "") or "out"


class DocumentService:
    """
    Upload storage and on-demand outputs for report bundles.

    Paths and pipeline tunables are passed in; nothing here reads settings.
    """

    def __init__(
        self,
        db: Session,
        upload_dir: Path,
        highlighted_dir: Optional[Path] = None,
        excel_dir: Optional[Path] = None,
        config: Optional[HighlightConfig] = None,
    ):
        self.db = db
        self.upload_dir = Path(upload_dir)
        self.highlighted_dir = Path(highlighted_dir) if highlighted_dir else self.upload_dir / "highlighted"
        self.excel_dir = Path(excel_dir) if excel_dir else self.upload_dir / "excel"
        self.pipeline = HighlightPipeline(config)

    def save_uploads(self, files: list[tuple[str, bytes]]) -> list[Document]:
        """
        Store one upload bundle.

        Args:
            files: (original filename, content) pairs; empty files are skipped

        Returns:
            Stored Document rows, all sharing one bundle key

        Raises:
            DocumentReadError: A file is not a readable PDF (no file of the bundle is kept)
        """
        bundle_key = str(uuid.uuid4())
        self.upload_dir.mkdir(parents=True, exist_ok=True)

        saved = []
        written: list[Path] = []
        try:
            for original_filename, content in files:
                if not content:
                    logger.info(f"Skipping empty upload '{original_filename}'")
                    continue

                document_id = str(uuid.uuid4())
                stored_filename = f"{document_id}.pdf"
                stored_path = self.upload_dir / stored_filename
                stored_path.write_bytes(content)
                written.append(stored_path)

                document = Document(
                    id=document_id,
                    original_filename=original_filename or stored_filename,
                    stored_filename=stored_filename,
                    bundle_key=bundle_key,
                    document_type=classify_pdf(stored_path).value,
                )
                self.db.add(document)
                saved.append(document)

            self.db.commit()
        except Exception:
            # The bundle is stored whole or not at all
            self.db.rollback()
            for path in written:
                path.unlink(missing_ok=True)
            logger.warning(f"Discarded bundle {bundle_key}: {len(written)} stored files removed")
            raise

        for document in saved:
            self.db.refresh(document)

        logger.info(f"Stored bundle {bundle_key}: {len(saved)} documents")
        return saved

    def get_document(self, document_id: str) -> Document:
        document = self.db.query(Document).filter(Document.id == str(document_id)).first()
        if document is None:
            raise DocumentNotFoundError("Document not found", document_id=str(document_id))
        return document

    def find_bundle_document(self, bundle_key: str, document_type: DocumentType) -> Document:
        document = (
            self.db.query(Document)
            .filter(Document.bundle_key == bundle_key, Document.document_type == document_type.value)
            .order_by(Document.created_at.desc())
            .first()
        )
        if document is None:
            raise DocumentNotFoundError(
                f"No {document_type.value} document in bundle {bundle_key}",
            )
        return document

    def resolve_pdf_path(self, document_id: str, condition: int) -> tuple[Document, Path]:
        """
        Original PDF holding the evidence for a condition.

        The requested document only selects the bundle; the file used is the
        bundle member whose report type is the condition's evidence type.

        Raises:
            UnknownConditionError: condition is not in the condition table
            DocumentNotFoundError: Unknown id or no matching bundle member
            StoredFileMissingError: The matching file is missing on disk
        """
        highlight_type = highlight_type_for_condition(condition)
        base = self.get_document(document_id)
        target = self.find_bundle_document(base.bundle_key, highlight_type.target)

        path = self.upload_dir / target.stored_filename
        if not path.exists():
            raise StoredFileMissingError(path)
        return target, path

    def render_highlighted(self, document_id: str, condition: int) -> tuple[Path, HighlightRunResult]:
        """Highlighted copy of the bundle's evidence PDF for a condition."""
        target, pdf_path = self.resolve_pdf_path(document_id, condition)
        document_type = DocumentType(target.document_type)

        filename = f"{_safe_name(target.bundle_key)}-{document_type.name}-cond{condition}-highlighted.pdf"
        output_path = self.highlighted_dir / filename

        result = self.pipeline.run(pdf_path, document_type, condition, output_path)
        return result.output_path, result

    def export_excel(self, document_id: str, condition: int) -> Path:
        """Spreadsheet of the rows behind a condition."""
        highlight_type = highlight_type_for_condition(condition)
        target, pdf_path = self.resolve_pdf_path(document_id, condition)
        document_type = DocumentType(target.document_type)

        rows = self.pipeline.parse_rows(
            pdf_path,
            document_type,
            surgery_blocks=highlight_type == HighlightType.HAS_SURGERY,
        )
        selected = select_export_rows(condition, rows)

        drug_sums = None
        if highlight_type == HighlightType.MONTH_OVER_30_DRUG:
            drug_sums = drug_day_sums(rows)

        filename = "{}-{}-{}-{}.xlsx".format(
            _safe_name(target.bundle_key),
            EXPORT_LABELS[highlight_type],
            date.today().strftime("%Y%m%d"),
            uuid.uuid4().hex[:8],
        )
        return write_workbook(condition, selected, self.excel_dir / filename, drug_sums=drug_sums)
