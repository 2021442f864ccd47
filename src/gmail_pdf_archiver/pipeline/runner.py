"""Top-level entry point: archive every configured label, one after the other."""

from __future__ import annotations

import logging
import time

from gmail_pdf_archiver.config.settings import ArchiverSettings
from gmail_pdf_archiver.core.auth import authenticate, build_service
from gmail_pdf_archiver.core.gmail_client import GmailClient
from gmail_pdf_archiver.core.interfaces import FileStore
from gmail_pdf_archiver.core.models import LabelRunResult, RunSummary
from gmail_pdf_archiver.core.renderer import PdfRenderer, PlaywrightBackend
from gmail_pdf_archiver.pipeline.processor import LabelProcessor
from gmail_pdf_archiver.storage.drive import DriveFileStore
from gmail_pdf_archiver.storage.local import LocalFileStore
from gmail_pdf_archiver.storage.state import (
    PROCESSED_KEY_PREFIX,
    ProcessedStateStore,
    SqlitePropertyStore,
)

logger = logging.getLogger(__name__)


class ArchiveRunner:
    """Runs the label processor over every configured label.

    A failing label is logged and recorded in the summary; the remaining
    labels still run. Failed labels are not retried within the same run.
    """

    def __init__(
        self,
        settings: ArchiverSettings | None = None,
        *,
        processor: LabelProcessor | None = None,
        properties: SqlitePropertyStore | None = None,
    ) -> None:
        self._settings = settings or ArchiverSettings()
        # Components initialized lazily
        self._processor = processor
        self._properties = properties

    @property
    def settings(self) -> ArchiverSettings:
        return self._settings

    def _ensure_properties(self) -> SqlitePropertyStore:
        if self._properties is None:
            self._settings.ensure_directories()
            self._properties = SqlitePropertyStore(self._settings.database_path)
            self._properties.connect()
        return self._properties

    def _ensure_initialized(self) -> tuple[LabelProcessor, SqlitePropertyStore]:
        """Wire the Gmail, file-store and renderer adapters if not injected."""
        properties = self._ensure_properties()

        if self._processor is None:
            settings = self._settings
            creds = authenticate(settings.credentials_path, settings.token_path)
            mailbox = GmailClient(
                build_service("gmail", creds),
                max_results_per_page=settings.max_results_per_page,
                inter_page_delay_seconds=settings.inter_page_delay_seconds,
            )
            store: FileStore
            if settings.storage_backend == "local":
                store = LocalFileStore(settings.output_dir)
            else:
                store = DriveFileStore(build_service("drive", creds))

            self._processor = LabelProcessor(
                settings,
                mailbox,
                store,
                ProcessedStateStore(properties),
                PdfRenderer(PlaywrightBackend(), tz=settings.tzinfo),
            )

        return self._processor, properties

    def run(self, labels: list[str] | None = None) -> RunSummary:
        """Process each label in order (defaults to ``settings.labels``)."""
        started = time.perf_counter()
        summary = RunSummary()
        try:
            processor, properties = self._ensure_initialized()
            for label in labels or self._settings.labels:
                summary.results.append(self.run_label(label, processor, properties))
        except Exception as e:
            logger.exception("Critical error during archival run")
            summary.fatal_error = str(e) or type(e).__name__
        finally:
            logger.info(
                "Run finished in %.2fs: %d archived, %d failed, failed labels: %s",
                time.perf_counter() - started,
                summary.archived,
                summary.failed,
                summary.failed_labels or "none",
            )
        return summary

    def run_label(
        self,
        label: str,
        processor: LabelProcessor,
        properties: SqlitePropertyStore,
    ) -> LabelRunResult:
        run_id = properties.start_run(label)
        try:
            result = processor.process(label)
        except Exception as e:
            logger.exception("Label %r failed", label)
            result = LabelRunResult(label=label, error=str(e) or type(e).__name__)

        properties.complete_run(
            run_id,
            threads_found=result.threads_found,
            messages_archived=result.archived,
            messages_skipped=result.skipped,
            messages_simulated=result.simulated,
            messages_failed=result.failed,
            error_message=result.error,
        )
        return result

    def processed_counts(self) -> dict[str, int]:
        """Number of processed-message records per label."""
        properties = self._ensure_properties()
        counts: dict[str, int] = {}
        for key in properties.keys(f"{PROCESSED_KEY_PREFIX}:"):
            # traite:<label>:<message_id>; labels may themselves contain ':'
            label = key[len(PROCESSED_KEY_PREFIX) + 1 :].rsplit(":", 1)[0]
            counts[label] = counts.get(label, 0) + 1
        return counts

    def recent_runs(self, limit: int = 10) -> list[dict]:
        return self._ensure_properties().recent_runs(limit)

    def close(self) -> None:
        """Clean up resources."""
        if self._properties:
            self._properties.close()
