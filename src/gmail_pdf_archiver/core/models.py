"""Frozen dataclasses for the Gmail PDF Archiver domain model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

OutcomeStatus = Literal["archived", "skipped_processed", "skipped_read", "simulated", "failed"]


@dataclass(frozen=True)
class LabelRef:
    """A Gmail label handle (ID plus full hierarchical name)."""

    label_id: str
    name: str


@dataclass(frozen=True)
class EmailHeader:
    """Parsed email headers."""

    subject: str
    sender: str
    to: str
    date: datetime
    cc: str = ""


@dataclass(frozen=True)
class EmailBody:
    """Parsed email body content. At least one of plain_text or html will be set."""

    plain_text: str | None = None
    html: str | None = None


@dataclass(frozen=True)
class MessagePart:
    """A non-body MIME part: either an inline image or a regular attachment."""

    filename: str
    mime_type: str
    data: bytes
    headers: tuple[tuple[str, str], ...] = field(default_factory=tuple)
    inline: bool = False

    @property
    def size(self) -> int:
        return len(self.data)

    def get_header(self, name: str) -> str:
        """Case-insensitive header lookup; returns '' when absent."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return ""


@dataclass(frozen=True)
class EmailMessage:
    """Complete parsed email with headers, body and attachment parts."""

    message_id: str
    thread_id: str
    label_ids: tuple[str, ...] = field(default_factory=tuple)
    header: EmailHeader | None = None
    body: EmailBody | None = None
    parts: tuple[MessagePart, ...] = field(default_factory=tuple)

    @property
    def is_unread(self) -> bool:
        return "UNREAD" in self.label_ids

    @property
    def inline_images(self) -> tuple[MessagePart, ...]:
        return tuple(p for p in self.parts if p.inline)

    @property
    def attachments(self) -> tuple[MessagePart, ...]:
        return tuple(p for p in self.parts if not p.inline)


@dataclass(frozen=True)
class EmailThread:
    """A Gmail conversation: ordered messages sharing a thread ID."""

    thread_id: str
    messages: tuple[EmailMessage, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RenderedPdf:
    """PDF bytes for one message plus the base name used for every artifact it produces."""

    base_name: str
    content: bytes

    @property
    def filename(self) -> str:
        return f"{self.base_name}.pdf"


@dataclass(frozen=True)
class MessageOutcome:
    """Result of running the per-message pipeline once."""

    message_id: str
    status: OutcomeStatus
    base_name: str = ""
    error: str = ""


@dataclass
class LabelRunResult:
    """Mutable per-label counters for run reporting."""

    label: str
    query: str = ""
    threads_found: int = 0
    archived: int = 0
    skipped: int = 0
    simulated: int = 0
    failed: int = 0
    error: str = ""
    outcomes: list[MessageOutcome] = field(default_factory=list)

    def record(self, outcome: MessageOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.status == "archived":
            self.archived += 1
        elif outcome.status == "simulated":
            self.simulated += 1
        elif outcome.status == "failed":
            self.failed += 1
        else:
            self.skipped += 1


@dataclass
class RunSummary:
    """Aggregate result of one pass over every configured label.

    ``fatal_error`` is set when the run stopped before its labels were
    processed (authentication, adapter wiring).
    """

    results: list[LabelRunResult] = field(default_factory=list)
    fatal_error: str = ""

    @property
    def archived(self) -> int:
        return sum(r.archived for r in self.results)

    @property
    def failed(self) -> int:
        return sum(r.failed for r in self.results)

    @property
    def failed_labels(self) -> list[str]:
        return [r.label for r in self.results if r.error]
