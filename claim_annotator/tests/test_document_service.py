"""
Tests for bundle storage, evidence resolution and on-demand outputs.
"""

import openpyxl
import pytest

from claim_annotator.db import Document
from claim_annotator.services.document_service import (
    DocumentNotFoundError,
    StoredFileMissingError,
)
from claim_annotator.services.pdf_highlight import (
    DocumentReadError,
    DocumentType,
    HighlightType,
    UnknownConditionError,
)
from claim_annotator.tests.conftest import pdf_bytes

VISIT_PAGES = [
    ["1 X 4(0) 10,000 5,000 5,000"],
    ["1 X 3(1) 10,000 5,000 5,000"],
]

PRESCRIPTION_PAGES = [[
    "1 2024-01-01 PharmA Tylenol Acetaminophen 1 3 20",
    "2 2024-02-01 PharmA Tylenol Acetaminophen 1 3 10",
]]


def add_member(service, bundle_key, document_type, pages, name="member.pdf"):
    """Store a bundle member with a fixed report type."""
    document = Document(
        original_filename=name,
        stored_filename=f"{document_type.value}-{bundle_key}.pdf",
        bundle_key=bundle_key,
        document_type=document_type.value,
    )
    service.upload_dir.mkdir(parents=True, exist_ok=True)
    (service.upload_dir / document.stored_filename).write_bytes(pdf_bytes(pages))
    service.db.add(document)
    service.db.commit()
    service.db.refresh(document)
    return document


class TestSaveUploads:
    """Bundle storage."""

    def test_bundle_shares_key(self, service):
        documents = service.save_uploads([
            ("a.pdf", pdf_bytes(VISIT_PAGES)),
            ("b.pdf", pdf_bytes(PRESCRIPTION_PAGES)),
        ])

        assert len(documents) == 2
        assert documents[0].bundle_key == documents[1].bundle_key
        assert documents[0].id != documents[1].id
        for document in documents:
            assert document.stored_filename == f"{document.id}.pdf"
            assert (service.upload_dir / document.stored_filename).exists()
            assert document.created_at is not None

    def test_untitled_report_stored_as_visit_summary(self, service):
        (document,) = service.save_uploads([("a.pdf", pdf_bytes(VISIT_PAGES))])
        assert document.document_type == DocumentType.VISIT_SUMMARY.value
        assert document.original_filename == "a.pdf"

    def test_empty_files_skipped(self, service):
        documents = service.save_uploads([("empty.pdf", b""), ("a.pdf", pdf_bytes(VISIT_PAGES))])
        assert [d.original_filename for d in documents] == ["a.pdf"]

    def test_unreadable_pdf_not_kept(self, service):
        with pytest.raises(DocumentReadError):
            service.save_uploads([("bad.pdf", b"this is not a pdf")])
        assert list(service.upload_dir.iterdir()) == []
        assert service.db.query(Document).count() == 0

    def test_bundle_with_unreadable_member_keeps_nothing(self, service):
        with pytest.raises(DocumentReadError):
            service.save_uploads([
                ("a.pdf", pdf_bytes(VISIT_PAGES)),
                ("bad.pdf", b"this is not a pdf"),
            ])

        assert list(service.upload_dir.iterdir()) == []
        assert service.db.query(Document).count() == 0

    def test_store_usable_after_failed_bundle(self, service):
        with pytest.raises(DocumentReadError):
            service.save_uploads([("a.pdf", pdf_bytes(VISIT_PAGES)), ("bad.pdf", b"junk")])

        documents = service.save_uploads([("b.pdf", pdf_bytes(VISIT_PAGES))])

        assert [d.original_filename for d in documents] == ["b.pdf"]
        assert service.db.query(Document).count() == 1


class TestResolvePdfPath:
    """Evidence file lookup within a bundle."""

    def test_same_document_for_visit_conditions(self, service):
        (document,) = service.save_uploads([("a.pdf", pdf_bytes(VISIT_PAGES))])

        for condition in (0, 2):
            target, path = service.resolve_pdf_path(document.id, condition)
            assert target.id == document.id
            assert path == service.upload_dir / document.stored_filename

    def test_sibling_selected_by_condition(self, service):
        (visit,) = service.save_uploads([("a.pdf", pdf_bytes(VISIT_PAGES))])
        prescription = add_member(service, visit.bundle_key, DocumentType.PRESCRIPTION, PRESCRIPTION_PAGES)

        target, _ = service.resolve_pdf_path(visit.id, 1)
        assert target.id == prescription.id

        # Any member selects the bundle
        target, _ = service.resolve_pdf_path(prescription.id, 0)
        assert target.id == visit.id

    def test_other_bundles_ignored(self, service):
        (visit,) = service.save_uploads([("a.pdf", pdf_bytes(VISIT_PAGES))])
        add_member(service, "another-bundle", DocumentType.PRESCRIPTION, PRESCRIPTION_PAGES)

        with pytest.raises(DocumentNotFoundError):
            service.resolve_pdf_path(visit.id, 1)

    def test_unknown_document(self, service):
        with pytest.raises(DocumentNotFoundError) as exc_info:
            service.resolve_pdf_path("missing-id", 0)
        assert exc_info.value.document_id == "missing-id"

    def test_unknown_condition(self, service):
        (document,) = service.save_uploads([("a.pdf", pdf_bytes(VISIT_PAGES))])
        with pytest.raises(UnknownConditionError):
            service.resolve_pdf_path(document.id, 4)

    def test_file_missing_on_disk(self, service):
        (document,) = service.save_uploads([("a.pdf", pdf_bytes(VISIT_PAGES))])
        (service.upload_dir / document.stored_filename).unlink()

        with pytest.raises(StoredFileMissingError):
            service.resolve_pdf_path(document.id, 0)


class TestRenderHighlighted:
    """Highlighted PDF generation."""

    def test_visit_condition(self, service):
        (document,) = service.save_uploads([("a.pdf", pdf_bytes(VISIT_PAGES))])

        output_path, result = service.render_highlighted(document.id, 0)

        assert output_path.exists()
        assert output_path.parent == service.highlighted_dir
        assert output_path.name.endswith("-VISIT_SUMMARY-cond0-highlighted.pdf")
        assert result.marks_by_type[HighlightType.VISIT_OVER_7_DAYS] == 2

    def test_drug_condition_uses_prescription_member(self, service):
        (visit,) = service.save_uploads([("a.pdf", pdf_bytes(VISIT_PAGES))])
        add_member(service, visit.bundle_key, DocumentType.PRESCRIPTION, PRESCRIPTION_PAGES)

        output_path, result = service.render_highlighted(visit.id, 1)

        assert "-PRESCRIPTION-cond1-" in output_path.name
        assert result.document_type == DocumentType.PRESCRIPTION
        assert result.rows_parsed == 2
        assert result.rows_marked == 2


class TestExportExcel:
    """Spreadsheet exports."""

    def test_visit_export(self, service):
        (document,) = service.save_uploads([("a.pdf", pdf_bytes(VISIT_PAGES))])

        output = service.export_excel(document.id, 0)

        assert output.parent == service.excel_dir
        assert "-visit7days-" in output.name
        ws = openpyxl.load_workbook(output).active
        assert ws.max_row == 3
        assert [ws.cell(row=r, column=7).value for r in (2, 3)] == [1, 2]

    def test_hospitalization_export(self, service):
        pages = [["1 X 0(4) 10,000 5,000 5,000", "2 Y 2(1) 10,000 5,000 5,000"]]
        (document,) = service.save_uploads([("a.pdf", pdf_bytes(pages))])

        ws = openpyxl.load_workbook(service.export_excel(document.id, 2)).active

        # Only the row with a non-zero inpatient count
        assert ws.max_row == 2
        assert ws.cell(row=2, column=3).value == "2(1)"

    def test_drug_export(self, service):
        (visit,) = service.save_uploads([("a.pdf", pdf_bytes(VISIT_PAGES))])
        add_member(service, visit.bundle_key, DocumentType.PRESCRIPTION, PRESCRIPTION_PAGES)

        output = service.export_excel(visit.id, 1)

        assert "-drug30days-" in output.name
        ws = openpyxl.load_workbook(output).active
        assert ws.max_row == 3
        assert ws.cell(row=2, column=4).value == "Tylenol"
        assert ws.cell(row=2, column=9).value == 30

    def test_missing_member(self, service):
        (document,) = service.save_uploads([("a.pdf", pdf_bytes(VISIT_PAGES))])
        with pytest.raises(DocumentNotFoundError):
            service.export_excel(document.id, 3)

    def test_export_names_unique(self, service):
        (document,) = service.save_uploads([("a.pdf", pdf_bytes(VISIT_PAGES))])
        assert service.export_excel(document.id, 0) != service.export_excel(document.id, 0)
