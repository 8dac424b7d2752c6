"""
Shared fixtures: in-memory document store and generated report PDFs.
"""

import fitz  # PyMuPDF
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from claim_annotator.db import init_schema
from claim_annotator.services.document_service import DocumentService
from claim_annotator.services.pdf_highlight import HighlightConfig


def pdf_bytes(pages: list[list[str]]) -> bytes:
    """PDF content with one page per entry, one text line per string."""
    doc = fitz.open()
    for lines in pages:
        page = doc.new_page(width=595, height=842)
        for i, line in enumerate(lines):
            page.insert_text((72, 100 + i * 20), line, fontname="helv", fontsize=10)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_schema(engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def service(db_session, tmp_path):
    return DocumentService(
        db_session,
        upload_dir=tmp_path / "uploads",
        config=HighlightConfig(max_page_workers=2),
    )
