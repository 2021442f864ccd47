"""Tests for the domain dataclasses."""

from __future__ import annotations

import dataclasses
from datetime import datetime

import pytest

from gmail_pdf_archiver.core.models import (
    EmailHeader,
    EmailMessage,
    LabelRunResult,
    MessageOutcome,
    MessagePart,
    RenderedPdf,
    RunSummary,
)


class TestMessagePart:
    def test_size(self) -> None:
        assert MessagePart(filename="a", mime_type="x", data=b"abc").size == 3

    def test_header_lookup_case_insensitive(self) -> None:
        part = MessagePart(
            filename="a", mime_type="x", data=b"", headers=(("Content-Id", "<x>"),)
        )
        assert part.get_header("CONTENT-ID") == "<x>"
        assert part.get_header("Content-Type") == ""

    def test_frozen(self) -> None:
        part = MessagePart(filename="a", mime_type="x", data=b"")
        with pytest.raises(dataclasses.FrozenInstanceError):
            part.filename = "b"  # type: ignore[misc]


class TestEmailMessage:
    def test_splits_parts(self) -> None:
        inline = MessagePart(filename="i", mime_type="image/png", data=b"1", inline=True)
        regular = MessagePart(filename="r", mime_type="application/pdf", data=b"2")
        message = EmailMessage(message_id="m", thread_id="t", parts=(inline, regular))
        assert message.inline_images == (inline,)
        assert message.attachments == (regular,)

    def test_unread(self) -> None:
        assert EmailMessage("m", "t", label_ids=("UNREAD",)).is_unread is True
        assert EmailMessage("m", "t", label_ids=("INBOX",)).is_unread is False

    def test_header_defaults(self) -> None:
        header = EmailHeader(subject="s", sender="a", to="b", date=datetime(2024, 1, 1))
        assert header.cc == ""


class TestRenderedPdf:
    def test_filename(self) -> None:
        assert RenderedPdf(base_name="x", content=b"").filename == "x.pdf"


class TestRunCounters:
    def test_record_counts_each_status(self) -> None:
        result = LabelRunResult(label="PDF")
        for status in ("archived", "archived", "skipped_processed", "skipped_read", "simulated", "failed"):
            result.record(MessageOutcome(message_id="m", status=status))  # type: ignore[arg-type]

        assert (result.archived, result.skipped, result.simulated, result.failed) == (2, 2, 1, 1)
        assert len(result.outcomes) == 6

    def test_summary_not_fatal_by_default(self) -> None:
        assert RunSummary().fatal_error == ""

    def test_summary_totals(self) -> None:
        summary = RunSummary(
            results=[
                LabelRunResult(label="A", archived=2, failed=1),
                LabelRunResult(label="B", error="down"),
            ]
        )
        assert summary.archived == 2
        assert summary.failed == 1
        assert summary.failed_labels == ["B"]
