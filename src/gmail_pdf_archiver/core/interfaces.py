"""Collaborator protocols consumed by the archival pipeline.

Concrete adapters: ``GmailClient`` (Mailbox), ``DriveFileStore`` and
``LocalFileStore`` (FileStore), ``SqlitePropertyStore`` (PropertyStore) and
``PlaywrightBackend`` (RenderBackend). Tests substitute in-memory fakes.
"""

from __future__ import annotations

from typing import Protocol

from gmail_pdf_archiver.core.models import EmailMessage, EmailThread, LabelRef


class Mailbox(Protocol):
    def find_or_create_label(self, name: str) -> LabelRef: ...

    def search(self, query: str) -> list[EmailThread]: ...

    def load_message(self, message: EmailMessage) -> EmailMessage: ...

    def add_label(self, thread: EmailThread, label: LabelRef) -> None: ...

    def remove_label(self, thread: EmailThread, label: LabelRef) -> None: ...

    def archive(self, thread: EmailThread) -> None: ...


class FileStore(Protocol):
    """Hierarchical store addressed by opaque folder/file IDs."""

    def get_root_folder(self) -> str: ...

    def get_folder(self, folder_id: str) -> str: ...

    def find_child_by_name(self, parent_id: str, name: str) -> str | None: ...

    def create_folder(self, parent_id: str, name: str) -> str: ...

    def create_file(self, parent_id: str, name: str, content: bytes, mime_type: str) -> str: ...

    def set_description(self, file_id: str, description: str) -> None: ...


class PropertyStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class RenderBackend(Protocol):
    def render_html_to_pdf(self, html: str) -> bytes: ...
