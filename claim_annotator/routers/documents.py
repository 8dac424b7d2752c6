"""
Document router for report uploads and condition outputs.

Endpoints:
- POST /upload - Upload one bundle of report PDFs
- GET /{document_id} - Get document details
- GET /{document_id}/highlighted - Highlighted PDF for a condition
- GET /{document_id}/excel - Spreadsheet export for a condition
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from claim_annotator.config import settings
from claim_annotator.db import Document, get_db
from claim_annotator.services.document_service import (
    DocumentNotFoundError,
    DocumentService,
    StoredFileMissingError,
)
from claim_annotator.services.pdf_highlight import DocumentReadError, UnknownConditionError

logger = logging.getLogger(__name__)

router = APIRouter()

PDF_MEDIA_TYPE = "application/pdf"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# =============================================================================
# Response Models
# =============================================================================

class DocumentResponse(BaseModel):
    """Response model for document details."""
    id: str
    original_filename: str
    bundle_key: str
    document_type: str
    created_at: Optional[str] = None


class UploadResponse(BaseModel):
    """Response model for a bundle upload."""
    bundle_key: Optional[str] = None
    documents: list[DocumentResponse]


def to_response(document: Document) -> DocumentResponse:
    return DocumentResponse(
        id=document.id,
        original_filename=document.original_filename,
        bundle_key=document.bundle_key,
        document_type=document.document_type,
        created_at=document.created_at.isoformat() if document.created_at else None,
    )


# =============================================================================
# Dependencies
# =============================================================================

def get_document_service(db: Session = Depends(get_db)) -> DocumentService:
    """Document service bound to the request's session."""
    return DocumentService(
        db,
        upload_dir=settings.upload_dir,
        highlighted_dir=settings.highlighted_dir,
        excel_dir=settings.excel_dir,
        config=settings.highlight_config(),
    )


def raise_http_error(e: Exception):
    """Map service and pipeline errors to HTTP errors."""
    if isinstance(e, (DocumentNotFoundError, StoredFileMissingError)):
        raise HTTPException(status_code=404, detail=str(e)) from e
    if isinstance(e, UnknownConditionError):
        raise HTTPException(status_code=400, detail=str(e)) from e
    if isinstance(e, DocumentReadError):
        raise HTTPException(status_code=422, detail=str(e)) from e
    raise e


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/upload", response_model=UploadResponse)
async def upload_documents(
    files: list[UploadFile] = File(...),
    service: DocumentService = Depends(get_document_service),
):
    """
    Upload report PDFs as one bundle.

    Every file gets its report type detected from the first page title.
    Empty files are skipped.
    """
    payload = []
    for file in files:
        if file.filename and not file.filename.lower().endswith(".pdf"):
            raise HTTPException(status_code=400, detail=f"Only PDF files are accepted: {file.filename}")
        try:
            payload.append((file.filename, await file.read()))
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to read file: {e}")

    try:
        documents = service.save_uploads(payload)
    except DocumentReadError as e:
        raise_http_error(e)

    logger.info(f"Uploaded {len(documents)} documents")
    return UploadResponse(
        bundle_key=documents[0].bundle_key if documents else None,
        documents=[to_response(d) for d in documents],
    )


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    service: DocumentService = Depends(get_document_service),
):
    """Get document details by ID."""
    try:
        document = service.get_document(document_id)
    except DocumentNotFoundError as e:
        raise_http_error(e)
    return to_response(document)


@router.get("/{document_id}/highlighted")
def get_highlighted_pdf(
    document_id: str,
    condition: int = Query(..., description="0: 7+ visit days, 1: 30+ drug days, 2: hospitalization, 3: surgery"),
    service: DocumentService = Depends(get_document_service),
):
    """
    Highlighted PDF for a condition.

    The bundle member holding the condition's evidence is rendered, whichever
    document of the bundle was requested.
    """
    try:
        output_path, result = service.render_highlighted(document_id, condition)
    except (DocumentNotFoundError, StoredFileMissingError, UnknownConditionError, DocumentReadError) as e:
        raise_http_error(e)

    logger.info(f"Highlighted {document_id} for condition {condition}: {result.total_marks} marks")
    return Response(
        content=output_path.read_bytes(),
        media_type=PDF_MEDIA_TYPE,
        headers={"Content-Disposition": f'inline; filename="{output_path.name}"'},
    )


@router.get("/{document_id}/excel")
def get_excel_export(
    document_id: str,
    condition: int = Query(..., description="0: 7+ visit days, 1: 30+ drug days, 2: hospitalization, 3: surgery"),
    service: DocumentService = Depends(get_document_service),
):
    """Spreadsheet of the rows behind a condition."""
    try:
        output_path = service.export_excel(document_id, condition)
    except (DocumentNotFoundError, StoredFileMissingError, UnknownConditionError, DocumentReadError) as e:
        raise_http_error(e)

    return Response(
        content=output_path.read_bytes(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{output_path.name}"'},
    )
