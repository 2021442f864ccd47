"""Gmail message parser: MIME tree walking, base64url decoding, header and part extraction."""

from __future__ import annotations

import base64
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

from gmail_pdf_archiver.core.exceptions import ArchiverError, ParseError
from gmail_pdf_archiver.core.models import EmailBody, EmailHeader, EmailMessage, MessagePart

logger = logging.getLogger(__name__)

# (message_id, attachment_id) -> raw bytes, for parts Gmail does not inline in format=full
AttachmentLoader = Callable[[str, str], bytes]
_BodyLoader = Callable[[dict[str, Any]], bytes | None]

BODY_MIME_TYPES = ("text/plain", "text/html")


def _disposition(part: dict[str, Any]) -> str:
    for h in part.get("headers", []):
        if h.get("name", "").lower() == "content-disposition":
            return h.get("value", "").strip().lower()
    return ""


class GmailParser:
    """Parses raw Gmail API message dicts into EmailMessage objects."""

    def parse(
        self,
        raw_message: dict[str, Any],
        attachment_loader: AttachmentLoader | None = None,
    ) -> EmailMessage:
        """Parse a raw Gmail API message dict into an EmailMessage.

        Args:
            raw_message: Message dict from the Gmail API (format=full or metadata).
            attachment_loader: Callback used to download bodies and parts that
                only carry an ``attachmentId``. Without it those are left empty.

        Returns:
            Parsed EmailMessage.

        Raises:
            ParseError: If the message structure is invalid.
            ArchiverError: Whatever the attachment loader raises, unchanged.
        """
        try:
            message_id = raw_message["id"]
            thread_id = raw_message.get("threadId", "")
            label_ids = tuple(raw_message.get("labelIds", []))
            payload = raw_message.get("payload", {})

            def load(body: dict[str, Any]) -> bytes | None:
                return self._body_bytes(message_id, body, attachment_loader)

            header = self._extract_headers(payload, raw_message.get("internalDate"))
            body = self._extract_body(payload, load)
            parts = tuple(self._collect_parts(payload, load))

            return EmailMessage(
                message_id=message_id,
                thread_id=thread_id,
                label_ids=label_ids,
                header=header,
                body=body,
                parts=parts,
            )
        except ArchiverError:
            raise
        except Exception as e:
            raise ParseError(f"Failed to parse message {raw_message.get('id', '?')}: {e}") from e

    def _extract_headers(self, payload: dict[str, Any], internal_date: str | None) -> EmailHeader:
        """Extract standard email headers from the payload."""
        headers: dict[str, str] = {}
        for h in payload.get("headers", []):
            name = h.get("name", "").lower()
            if name in ("subject", "from", "to", "date", "cc"):
                headers[name] = h.get("value", "")

        date = self._parse_date(headers.get("date", ""), internal_date)

        return EmailHeader(
            subject=headers.get("subject", ""),
            sender=headers.get("from", ""),
            to=headers.get("to", ""),
            date=date,
            cc=headers.get("cc", ""),
        )

    def _extract_body(self, payload: dict[str, Any], load: _BodyLoader) -> EmailBody:
        """Recursively walk the MIME tree to extract text/html bodies."""
        plain_text, html = self._walk_parts(payload, load)

        if plain_text is None and html is None:
            # Single-part message with a non-text mime type on the payload itself
            data = load(payload.get("body", {}))
            if data:
                decoded = data.decode("utf-8", errors="replace")
                if "html" in payload.get("mimeType", ""):
                    html = decoded
                else:
                    plain_text = decoded

        return EmailBody(plain_text=plain_text, html=html)

    def _walk_parts(
        self, part: dict[str, Any], load: _BodyLoader
    ) -> tuple[str | None, str | None]:
        """Find the first text/plain and text/html parts that are not attachments."""
        plain_text: str | None = None
        html: str | None = None
        mime_type = part.get("mimeType", "")

        if mime_type in BODY_MIME_TYPES:
            data = load(part.get("body", {}))
            if data:
                text = data.decode("utf-8", errors="replace")
                if mime_type == "text/html":
                    html = text
                else:
                    plain_text = text
        elif mime_type.startswith("multipart/"):
            for sub_part in part.get("parts", []):
                if sub_part.get("filename") or _disposition(sub_part).startswith("attachment"):
                    continue

                sub_plain, sub_html = self._walk_parts(sub_part, load)
                if sub_plain and not plain_text:
                    plain_text = sub_plain
                if sub_html and not html:
                    html = sub_html

        return plain_text, html

    def _collect_parts(self, part: dict[str, Any], load: _BodyLoader) -> list[MessagePart]:
        """Collect every leaf part that is an attachment or an inline image."""
        mime_type = part.get("mimeType", "")
        if mime_type.startswith("multipart/"):
            collected: list[MessagePart] = []
            for sub_part in part.get("parts", []):
                collected.extend(self._collect_parts(sub_part, load))
            return collected

        headers = tuple((h.get("name", ""), h.get("value", "")) for h in part.get("headers", []))
        lowered = {name.lower(): value for name, value in headers}
        filename = part.get("filename", "")
        content_id = lowered.get("content-id", "").strip()
        disposition = _disposition(part)
        body = part.get("body", {})

        if not filename and not content_id:
            if not body.get("attachmentId"):
                return []
            # Large text bodies also come back as attachmentId-only parts
            if mime_type in BODY_MIME_TYPES and not disposition.startswith("attachment"):
                return []

        return [
            MessagePart(
                filename=filename,
                mime_type=mime_type,
                data=load(body) or b"",
                headers=headers,
                inline=bool(content_id) and not disposition.startswith("attachment"),
            )
        ]

    def _body_bytes(
        self,
        message_id: str,
        body: dict[str, Any],
        attachment_loader: AttachmentLoader | None,
    ) -> bytes | None:
        if body.get("data"):
            return self._decode_bytes(body["data"])
        if body.get("attachmentId") and attachment_loader is not None:
            return attachment_loader(message_id, body["attachmentId"])
        return None

    @staticmethod
    def _decode_bytes(data: str) -> bytes:
        """Decode base64url data (RFC 4648 §5) as Gmail returns it, tolerating missing padding."""
        padded = data + "=" * (4 - len(data) % 4) if len(data) % 4 else data
        return base64.urlsafe_b64decode(padded)

    @staticmethod
    def _parse_date(date_str: str, internal_date: str | None = None) -> datetime:
        """Parse an RFC 2822 date header, falling back to Gmail's internalDate, then epoch."""
        if date_str:
            try:
                return parsedate_to_datetime(date_str)
            except Exception:
                logger.warning("Failed to parse date: %s", date_str)
        if internal_date:
            try:
                return datetime.fromtimestamp(int(internal_date) / 1000, tz=UTC)
            except (TypeError, ValueError):
                logger.warning("Failed to parse internalDate: %s", internal_date)
        return datetime(1970, 1, 1, tzinfo=UTC)
