"""Shared fixtures and in-memory collaborators for Gmail PDF Archiver tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

import pytest

from gmail_pdf_archiver.config.settings import ArchiverSettings
from gmail_pdf_archiver.core.exceptions import StorageError
from gmail_pdf_archiver.core.models import (
    EmailBody,
    EmailHeader,
    EmailMessage,
    EmailThread,
    LabelRef,
    MessagePart,
)

FAKE_PDF = b"%PDF-1.7 fake"


class FakeMailbox:
    """Mailbox that returns canned threads and records every mutation."""

    def __init__(self, threads: list[EmailThread] | None = None) -> None:
        self.threads = threads or []
        self.labels: dict[str, LabelRef] = {}
        self.created_labels: list[str] = []
        self.queries: list[str] = []
        self.mutations: list[tuple[str, ...]] = []
        self.loaded: list[str] = []
        self.load_errors: dict[str, Exception] = {}

    def find_or_create_label(self, name: str) -> LabelRef:
        if name not in self.labels:
            self.labels[name] = LabelRef(label_id=f"Label_{len(self.labels) + 1}", name=name)
            self.created_labels.append(name)
        return self.labels[name]

    def search(self, query: str) -> list[EmailThread]:
        self.queries.append(query)
        return list(self.threads)

    def load_message(self, message: EmailMessage) -> EmailMessage:
        self.loaded.append(message.message_id)
        if message.message_id in self.load_errors:
            raise self.load_errors[message.message_id]
        return message

    def add_label(self, thread: EmailThread, label: LabelRef) -> None:
        self.mutations.append(("add", thread.thread_id, label.name))

    def remove_label(self, thread: EmailThread, label: LabelRef) -> None:
        self.mutations.append(("remove", thread.thread_id, label.name))

    def archive(self, thread: EmailThread) -> None:
        self.mutations.append(("archive", thread.thread_id))


class FakeFileStore:
    """In-memory hierarchical store; IDs are 'root', 'folder-N' and 'file-N'."""

    def __init__(self) -> None:
        self.folders: dict[str, tuple[str | None, str]] = {"root": (None, "")}
        self.files: dict[str, dict] = {}
        self.mutations: list[tuple[str, ...]] = []

    def get_root_folder(self) -> str:
        return "root"

    def get_folder(self, folder_id: str) -> str:
        if folder_id not in self.folders:
            raise StorageError(f"No folder {folder_id}")
        return folder_id

    def find_child_by_name(self, parent_id: str, name: str) -> str | None:
        for folder_id, (parent, folder_name) in self.folders.items():
            if parent == parent_id and folder_name == name:
                return folder_id
        return None

    def create_folder(self, parent_id: str, name: str) -> str:
        folder_id = f"folder-{len(self.folders)}"
        self.folders[folder_id] = (parent_id, name)
        self.mutations.append(("create_folder", parent_id, name))
        return folder_id

    def create_file(self, parent_id: str, name: str, content: bytes, mime_type: str) -> str:
        file_id = f"file-{len(self.files) + 1}"
        self.files[file_id] = {
            "parent": parent_id,
            "name": name,
            "content": content,
            "mime_type": mime_type,
            "description": "",
        }
        self.mutations.append(("create_file", parent_id, name))
        return file_id

    def set_description(self, file_id: str, description: str) -> None:
        self.files[file_id]["description"] = description
        self.mutations.append(("set_description", file_id))

    def path_of(self, folder_id: str) -> str:
        """Slash-joined folder names from the root, e.g. 'PDF/PiecesJointes'."""
        names: list[str] = []
        current: str | None = folder_id
        while current and current != "root":
            parent, name = self.folders[current]
            names.append(name)
            current = parent
        return "/".join(reversed(names))

    def files_in(self, path: str) -> list[str]:
        return sorted(f["name"] for f in self.files.values() if self.path_of(f["parent"]) == path)


class FakePropertyStore:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class FakeBackend:
    """Rendering backend that records the HTML it receives."""

    def __init__(self, content: bytes = FAKE_PDF, error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.rendered: list[str] = []

    def render_html_to_pdf(self, html: str) -> bytes:
        self.rendered.append(html)
        if self.error is not None:
            raise self.error
        return self.content


@pytest.fixture
def fake_mailbox() -> FakeMailbox:
    return FakeMailbox()


@pytest.fixture
def fake_store() -> FakeFileStore:
    return FakeFileStore()


@pytest.fixture
def fake_properties() -> FakePropertyStore:
    return FakePropertyStore()


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings(tmp_path: Path) -> ArchiverSettings:
    """Settings isolated from the environment, pointing to temporary paths."""
    return ArchiverSettings(
        _env_file=None,
        labels=["PDF"],
        root_folder_id=None,
        save_attachments=True,
        processed_sublabel="Traité",
        archive_threads=True,
        unread_only=False,
        lookback_days=30,
        dry_run=False,
        timezone="UTC",
        database_path=tmp_path / "data" / "state.db",
        credentials_path=tmp_path / "creds" / "client_secret.json",
        token_path=tmp_path / "creds" / "token.json",
        output_dir=tmp_path / "archive",
    )


@pytest.fixture
def make_message() -> Callable[..., EmailMessage]:
    """Factory for EmailMessage objects with sensible defaults."""

    def _make(
        message_id: str = "18e0c0ffee123456",
        thread_id: str = "thread_001",
        *,
        subject: str = "Invoice #1",
        sender: str = "billing@example.com",
        to: str = "me@example.com",
        cc: str = "",
        date: datetime = datetime(2024, 3, 1, 9, 15, tzinfo=UTC),
        html: str | None = "<p>Hello</p>",
        plain_text: str | None = None,
        unread: bool = True,
        parts: tuple[MessagePart, ...] = (),
    ) -> EmailMessage:
        label_ids = ("INBOX", "Label_1") + (("UNREAD",) if unread else ())
        return EmailMessage(
            message_id=message_id,
            thread_id=thread_id,
            label_ids=label_ids,
            header=EmailHeader(subject=subject, sender=sender, to=to, date=date, cc=cc),
            body=EmailBody(plain_text=plain_text, html=html),
            parts=parts,
        )

    return _make


@pytest.fixture
def logo_part() -> MessagePart:
    """Inline PNG referenced as cid:logo."""
    return MessagePart(
        filename="logo.png",
        mime_type="image/png",
        data=b"\x89PNG\r\n\x1a\nlogo",
        headers=(("Content-ID", "<logo>"), ("Content-Disposition", "inline")),
        inline=True,
    )


@pytest.fixture
def report_part() -> MessagePart:
    """Regular 10KB PDF attachment."""
    return MessagePart(
        filename="report.pdf",
        mime_type="application/pdf",
        data=b"x" * 10240,
        headers=(("Content-Disposition", 'attachment; filename="report.pdf"'),),
        inline=False,
    )


@pytest.fixture
def tmp_db_path(tmp_path: Path) -> Path:
    """Temporary database path for tests."""
    return tmp_path / "test.db"
