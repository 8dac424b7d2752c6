"""
SQLAlchemy models for the document store.

One row per uploaded report PDF; files uploaded together share a bundle key.
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Index, String, create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from claim_annotator.config import settings


Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class Document(Base):
    """Uploaded report PDF stored on disk under the upload directory."""

    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_bundle_key", "bundle_key"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    original_filename = Column(String(255), nullable=False)
    stored_filename = Column(String(255), nullable=False, unique=True)  # <uuid>.pdf
    bundle_key = Column(String(36), nullable=False)  # Shared by one multi-file upload
    document_type = Column(String(50), nullable=False)  # DocumentType value
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"Document(id={self.id}, type={self.document_type}, file={self.original_filename})"


# Database engine and session factory
_engine = None
_SessionLocal = None


def get_engine():
    """Get or create database engine."""
    global _engine
    if _engine is None:
        connect_args = {}
        if settings.database_url.startswith("sqlite"):
            # Sessions are used from FastAPI's worker threads
            connect_args["check_same_thread"] = False
        _engine = create_engine(
            settings.database_url,
            connect_args=connect_args,
            pool_pre_ping=True,
            echo=False,
        )
    return _engine


def get_session_factory():
    """Get or create session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=get_engine()
        )
    return _SessionLocal


def get_db() -> Session:
    """Get database session (dependency injection)."""
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_schema(engine=None):
    """Create all tables."""
    Base.metadata.create_all(bind=engine or get_engine())
