"""Idempotent find-or-create for destination folders."""

from __future__ import annotations

import logging

from gmail_pdf_archiver.core.interfaces import FileStore

logger = logging.getLogger(__name__)


class FolderResolver:
    """Resolve child folders by name, creating them only when missing.

    When the store already holds several same-named siblings, the first one
    it returns wins; no further duplicate is ever created.
    """

    def __init__(self, store: FileStore) -> None:
        self._store = store

    def root(self, folder_id: str | None = None) -> str:
        """The configured root folder, or the store's top-level root."""
        if folder_id:
            return self._store.get_folder(folder_id)
        return self._store.get_root_folder()

    def get_or_create(self, parent_id: str, name: str) -> str:
        existing = self._store.find_child_by_name(parent_id, name)
        if existing is not None:
            return existing
        folder_id = self._store.create_folder(parent_id, name)
        logger.info("Created folder %r under %s", name, parent_id)
        return folder_id
