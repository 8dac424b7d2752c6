"""
Configuration settings for claim_annotator.

Reads settings from the project .env file and the environment.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from claim_annotator.services.pdf_highlight import HighlightConfig


# Resolve paths
PACKAGE_DIR = Path(__file__).parent
PROJECT_ROOT = PACKAGE_DIR.parent
ENV_FILE = PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database - SQLite file by default
    database_url: str = Field(
        default=f"sqlite:///{PROJECT_ROOT / 'claim_annotator.db'}",
        alias="DATABASE_URL",
        description="SQLAlchemy connection URL for the document store"
    )

    # Uploaded PDFs and generated outputs
    upload_dir: Path = Field(
        default=PROJECT_ROOT / "uploads",
        alias="UPLOAD_DIR",
    )

    # Application settings
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Highlight pipeline settings
    max_page_workers: int = Field(
        default=4,
        alias="MAX_PAGE_WORKERS",
        description="Max concurrent page reads / evidence lookups per document"
    )
    highlight_opacity: float = Field(
        default=0.9,
        alias="HIGHLIGHT_OPACITY",
        description="Opacity of highlight annotations (0.0-1.0)"
    )
    summary_font: str = Field(
        default="korea",
        alias="SUMMARY_FONT",
        description="PyMuPDF font name used for the summary box text"
    )

    @computed_field
    @property
    def highlighted_dir(self) -> Path:
        """Path to highlighted PDF outputs."""
        return Path(self.upload_dir) / "highlighted"

    @computed_field
    @property
    def excel_dir(self) -> Path:
        """Path to spreadsheet exports."""
        return Path(self.upload_dir) / "excel"

    def highlight_config(self) -> HighlightConfig:
        """Pipeline tunables as a plain dataclass."""
        return HighlightConfig(
            max_page_workers=self.max_page_workers,
            highlight_opacity=self.highlight_opacity,
            summary_font=self.summary_font,
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience accessors
settings = get_settings()
