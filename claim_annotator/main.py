"""
FastAPI application entry point for claim_annotator.

Provides REST API for:
- Report PDF upload (multi-file bundles)
- Highlighted PDF download per condition
- Spreadsheet export per condition
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from claim_annotator.config import settings
from claim_annotator.db import init_schema
from claim_annotator.routers import documents


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(),
    ]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("Starting claim_annotator application...")

    # Ensure directories exist
    for dir_path in [settings.upload_dir, settings.highlighted_dir, settings.excel_dir]:
        Path(dir_path).mkdir(parents=True, exist_ok=True)

    # Initialize database schema
    try:
        init_schema()
        logger.info("Database schema initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database schema: {e}")
        raise

    logger.info("claim_annotator application started")
    yield

    # Shutdown
    logger.info("Shutting down claim_annotator application...")


# Create FastAPI application
app = FastAPI(
    title="Claim Annotator",
    description="Highlights billing-condition evidence in medical-insurance report PDFs",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": "1.0.0",
    }


app.include_router(documents.router, prefix="/documents", tags=["documents"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "claim_annotator.main:app",
        host="0.0.0.0",
        port=8080,
        reload=settings.debug,
    )
