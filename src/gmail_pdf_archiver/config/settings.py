"""Configuration via pydantic-settings with .env support."""

from __future__ import annotations

from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ArchiverSettings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Immutable once built: a single instance is created per process and passed
    to every component.
    """

    model_config = SettingsConfigDict(
        env_prefix="GMAIL_PDF_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Archival behaviour
    labels: list[str] = Field(default_factory=lambda: ["PDF"])
    root_folder_id: str | None = None
    save_attachments: bool = True
    processed_sublabel: str | None = "Traité"
    archive_threads: bool = True
    unread_only: bool = False
    lookback_days: int = Field(default=30, ge=0)
    dry_run: bool = False
    timezone: str = "UTC"

    # Destination
    storage_backend: Literal["drive", "local"] = "drive"
    output_dir: Path = Path("output/archive")

    # OAuth credentials
    credentials_path: Path = Path("credentials/client_secret.json")
    token_path: Path = Path("credentials/token.json")

    # Gmail API settings
    max_results_per_page: int = 100
    inter_page_delay_seconds: float = 0.2

    # State database (processed markers, triggers, run log)
    database_path: Path = Path("data/gmail_pdf_archiver.db")

    # Scheduling
    trigger_interval_minutes: int = Field(default=5, ge=1)

    # Logging
    log_level: str = "INFO"

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def marker_sublabel(self) -> str | None:
        """The processed sub-label name, or None when blank or unset."""
        if self.processed_sublabel and self.processed_sublabel.strip():
            return self.processed_sublabel.strip()
        return None

    def ensure_directories(self) -> None:
        """Create output and data directories if they don't exist."""
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self.credentials_path.parent.mkdir(parents=True, exist_ok=True)
        if self.storage_backend == "local":
            self.output_dir.mkdir(parents=True, exist_ok=True)
