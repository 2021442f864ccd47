"""Email → PDF rendering: HTML composition plus a headless-Chromium backend."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, tzinfo

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from gmail_pdf_archiver.core.exceptions import RenderError
from gmail_pdf_archiver.core.inline_images import InlineImageResolver
from gmail_pdf_archiver.core.interfaces import RenderBackend
from gmail_pdf_archiver.core.models import EmailMessage, RenderedPdf
from gmail_pdf_archiver.core.sanitize import escape_html, sanitize_filename

logger = logging.getLogger(__name__)

NO_SUBJECT = "Sans sujet"

STYLESHEET = """
<style>
  body { font-family: 'Helvetica', sans-serif; font-size: 11pt; color: #333; line-height: 1.4; }
  .entete { background-color: #f8f9fa; padding: 15px; border-bottom: 2px solid #e9ecef; margin-bottom: 20px; }
  .entete div { margin-bottom: 5px; font-size: 0.95em; }
  strong { color: #495057; }
  img { max-width: 100%; height: auto; }
  hr { border: 0; border-top: 1px solid #ddd; margin: 20px 0; }
  pre { white-space: pre-wrap; font-family: inherit; }
</style>
"""


def localize(value: datetime, tz: tzinfo) -> datetime:
    """Convert to ``tz``; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(tz)


def build_base_name(message: EmailMessage, tz: tzinfo) -> str:
    """``<yyyy-MM-dd_HH-mm> - <subject> - <first 8 chars of ID>``, shared by the PDF and its attachments folder."""
    header = message.header
    subject = sanitize_filename((header.subject if header else "") or NO_SUBJECT)
    date = header.date if header else datetime(1970, 1, 1)
    date_text = localize(date, tz).strftime("%Y-%m-%d_%H-%M")
    return f"{date_text} - {subject} - {message.message_id[:8]}"


class PlaywrightBackend:
    """Render HTML to PDF bytes with headless Chromium."""

    def __init__(self, page_format: str = "A4", timeout_ms: int = 60000) -> None:
        self._page_format = page_format
        self._timeout_ms = timeout_ms

    def render_html_to_pdf(self, html: str) -> bytes:
        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(headless=True)
                try:
                    page = browser.new_page()
                    page.set_default_timeout(self._timeout_ms)
                    page.set_content(html, wait_until="load")
                    return page.pdf(
                        format=self._page_format,
                        print_background=True,
                        margin={"top": "15mm", "bottom": "15mm", "left": "12mm", "right": "12mm"},
                    )
                finally:
                    browser.close()
        except PlaywrightError as e:
            raise RenderError(f"Chromium PDF rendering failed: {e}") from e


class PdfRenderer:
    """Compose a styled HTML document for a message and hand it to the backend."""

    def __init__(
        self,
        backend: RenderBackend,
        tz: tzinfo = UTC,
        resolver: InlineImageResolver | None = None,
    ) -> None:
        self._backend = backend
        self._tz = tz
        self._resolver = resolver or InlineImageResolver()

    def render(self, message: EmailMessage) -> RenderedPdf:
        """Render one message to PDF.

        Raises:
            RenderError: If the backend fails. Not retried.
        """
        html = self.compose_html(message)
        try:
            content = self._backend.render_html_to_pdf(html)
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(f"Failed to render message {message.message_id}: {e}") from e

        logger.debug("Rendered %s (%d bytes)", message.message_id, len(content))
        return RenderedPdf(base_name=build_base_name(message, self._tz), content=content)

    def compose_html(self, message: EmailMessage) -> str:
        """Build the full HTML document: stylesheet, header panel, resolved body."""
        header = message.header
        subject = (header.subject if header else "") or NO_SUBJECT
        date = header.date if header else datetime(1970, 1, 1)
        date_text = localize(date, self._tz).strftime("%Y-%m-%d %H:%M")

        lines = [
            f"<div><strong>Objet :</strong> {escape_html(subject)}</div>",
            f"<div><strong>De :</strong> {escape_html(header.sender if header else '')}</div>",
            f"<div><strong>À :</strong> {escape_html(header.to if header else '')}</div>",
        ]
        if header and header.cc:
            lines.append(f"<div><strong>Cc :</strong> {escape_html(header.cc)}</div>")
        lines.append(f"<div><strong>Date :</strong> {date_text}</div>")

        return (
            "<html>\n"
            f'<head><meta charset="UTF-8">{STYLESHEET}</head>\n'
            "<body>\n"
            '<div class="entete">\n' + "\n".join(lines) + "\n</div>\n"
            f"{self._body_html(message)}\n"
            "</body>\n"
            "</html>\n"
        )

    def _body_html(self, message: EmailMessage) -> str:
        body = message.body
        if body is None:
            return ""
        if body.html:
            return self._resolver.resolve(body.html, message)
        if body.plain_text:
            return f"<pre>{escape_html(body.plain_text)}</pre>"
        return ""
