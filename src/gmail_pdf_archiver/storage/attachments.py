"""Save a message's regular attachments under ``PiecesJointes/<base name>``."""

from __future__ import annotations

import logging

from gmail_pdf_archiver.core.interfaces import FileStore
from gmail_pdf_archiver.core.models import EmailMessage
from gmail_pdf_archiver.core.sanitize import sanitize_filename
from gmail_pdf_archiver.storage.folders import FolderResolver

logger = logging.getLogger(__name__)

ATTACHMENTS_FOLDER = "PiecesJointes"
UNNAMED_ATTACHMENT = "piece-jointe"


class AttachmentArchiver:
    """Persist non-inline attachment parts of a message into a per-message folder."""

    def __init__(self, store: FileStore, folders: FolderResolver | None = None) -> None:
        self._store = store
        self._folders = folders or FolderResolver(store)

    def archive(self, message: EmailMessage, label_folder_id: str, base_name: str) -> int:
        """Save every regular attachment; returns how many files were written.

        No folder is created when the message has no regular attachment.
        Zero-byte parts are skipped.
        """
        attachments = message.attachments
        if not attachments:
            return 0

        attachments_root = self._folders.get_or_create(label_folder_id, ATTACHMENTS_FOLDER)
        message_folder = self._folders.get_or_create(attachments_root, base_name)

        saved = 0
        for part in attachments:
            if part.size == 0:
                logger.warning(
                    "Skipping empty attachment %r of message %s", part.filename, message.message_id
                )
                continue
            name = sanitize_filename(part.filename) or UNNAMED_ATTACHMENT
            self._store.create_file(
                message_folder, name, part.data, part.mime_type or "application/octet-stream"
            )
            saved += 1

        logger.debug("Saved %d attachment(s) for %s", saved, message.message_id)
        return saved
