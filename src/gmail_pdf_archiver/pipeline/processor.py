"""Per-label orchestration: search → render → save → relabel → archive → record."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, tzinfo

from gmail_pdf_archiver.config.settings import ArchiverSettings
from gmail_pdf_archiver.core.interfaces import FileStore, Mailbox
from gmail_pdf_archiver.core.models import (
    EmailMessage,
    EmailThread,
    LabelRef,
    LabelRunResult,
    MessageOutcome,
)
from gmail_pdf_archiver.core.renderer import PdfRenderer
from gmail_pdf_archiver.core.sanitize import quote_query
from gmail_pdf_archiver.storage.attachments import AttachmentArchiver
from gmail_pdf_archiver.storage.folders import FolderResolver
from gmail_pdf_archiver.storage.state import ProcessedStateStore

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"


def build_search_query(
    label: str,
    lookback_days: int,
    *,
    unread_only: bool = False,
    now: datetime | None = None,
    tz: tzinfo = UTC,
) -> str:
    """Gmail query bounding the scan to one label and a lookback window.

    Example: ``label:"PDF" after:2024/02/01 is:unread``
    """
    now = now or datetime.now(UTC)
    start = (now - timedelta(days=lookback_days)).astimezone(tz)
    query = f"label:{quote_query(label)} after:{start.strftime('%Y/%m/%d')}"
    if unread_only:
        query += " is:unread"
    return query


def describe_pdf(label: str, message_id: str) -> str:
    return f"Exporté depuis Gmail (libellé : {label}) | ID: {message_id}"


@dataclass(frozen=True)
class _LabelContext:
    name: str
    label: LabelRef
    marker: LabelRef | None
    folder_id: str


class LabelProcessor:
    """Archive every not-yet-processed message carrying one label.

    Messages are isolated from each other: any error inside the per-message
    pipeline becomes a ``failed`` outcome and the loop moves on. Errors while
    resolving labels, searching or resolving the destination folder propagate
    to the caller.
    """

    def __init__(
        self,
        settings: ArchiverSettings,
        mailbox: Mailbox,
        store: FileStore,
        state: ProcessedStateStore,
        renderer: PdfRenderer,
        *,
        folders: FolderResolver | None = None,
        attachments: AttachmentArchiver | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings
        self._mailbox = mailbox
        self._state = state
        self._renderer = renderer
        self._store = store
        self._folders = folders or FolderResolver(store)
        self._attachments = attachments or AttachmentArchiver(store, self._folders)
        self._clock = clock or (lambda: datetime.now(UTC))

    def process(self, label_name: str) -> LabelRunResult:
        """Run the full pipeline for one label and return per-message outcomes."""
        settings = self._settings
        result = LabelRunResult(label=label_name)

        label = self._mailbox.find_or_create_label(label_name)
        marker: LabelRef | None = None
        if settings.marker_sublabel:
            marker = self._mailbox.find_or_create_label(f"{label_name}/{settings.marker_sublabel}")

        result.query = build_search_query(
            label_name,
            settings.lookback_days,
            unread_only=settings.unread_only,
            now=self._clock(),
            tz=settings.tzinfo,
        )
        logger.info("Searching %r: %s", label_name, result.query)

        threads = self._mailbox.search(result.query)
        result.threads_found = len(threads)
        if not threads:
            logger.info("No matching conversation for %r", label_name)
            return result

        folder_id = ""
        if not settings.dry_run:
            root_id = self._folders.root(settings.root_folder_id)
            folder_id = self._folders.get_or_create(root_id, label_name)

        context = _LabelContext(name=label_name, label=label, marker=marker, folder_id=folder_id)
        for thread in threads:
            for message in thread.messages:
                result.record(self.process_message(message, thread, context))

        logger.info(
            "Label %r: %d archived, %d skipped, %d simulated, %d failed",
            label_name,
            result.archived,
            result.skipped,
            result.simulated,
            result.failed,
        )
        return result

    def process_message(
        self, message: EmailMessage, thread: EmailThread, context: _LabelContext
    ) -> MessageOutcome:
        """Per-message pipeline. Never raises.

        Bodies and attachments are downloaded only once both skip checks pass.
        """
        message_id = message.message_id

        if self._state.is_processed(context.name, message_id):
            return MessageOutcome(message_id=message_id, status="skipped_processed")
        if self._settings.unread_only and not message.is_unread:
            return MessageOutcome(message_id=message_id, status="skipped_read")

        base_name = ""
        try:
            message = self._mailbox.load_message(message)
            pdf = self._renderer.render(message)
            base_name = pdf.base_name

            if self._settings.dry_run:
                logger.info("[SIMULATION] Would archive: %s", base_name)
                return MessageOutcome(message_id=message_id, status="simulated", base_name=base_name)

            file_id = self._store.create_file(
                context.folder_id, pdf.filename, pdf.content, PDF_MIME_TYPE
            )
            self._store.set_description(file_id, describe_pdf(context.name, message_id))

            if self._settings.save_attachments:
                self._attachments.archive(message, context.folder_id, base_name)

            if context.marker is not None:
                self._mailbox.add_label(thread, context.marker)
                self._mailbox.remove_label(thread, context.label)
            if self._settings.archive_threads:
                self._mailbox.archive(thread)

            # Must remain the final step: an earlier failure leaves the message unrecorded.
            self._state.mark_processed(context.name, message_id)
        except Exception as e:
            logger.exception("Failed to archive message %s", message_id)
            return MessageOutcome(
                message_id=message_id, status="failed", base_name=base_name, error=str(e)
            )

        logger.info("Archived: %s", base_name)
        return MessageOutcome(message_id=message_id, status="archived", base_name=base_name)
