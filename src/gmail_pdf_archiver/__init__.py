"""Gmail PDF Archiver - Export labelled Gmail messages to PDF files in Drive."""

from gmail_pdf_archiver.core.models import (
    EmailBody,
    EmailHeader,
    EmailMessage,
    EmailThread,
    LabelRef,
    LabelRunResult,
    MessageOutcome,
    MessagePart,
    RenderedPdf,
    RunSummary,
)
from gmail_pdf_archiver.pipeline.processor import LabelProcessor, build_search_query
from gmail_pdf_archiver.pipeline.runner import ArchiveRunner

__all__ = [
    "ArchiveRunner",
    "EmailBody",
    "EmailHeader",
    "EmailMessage",
    "EmailThread",
    "LabelProcessor",
    "LabelRef",
    "LabelRunResult",
    "MessageOutcome",
    "MessagePart",
    "RenderedPdf",
    "RunSummary",
    "build_search_query",
]
