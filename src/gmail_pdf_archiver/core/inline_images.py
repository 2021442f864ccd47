"""Rewrite ``cid:`` image references into embedded ``data:`` URIs."""

from __future__ import annotations

import base64
import logging
import re

from gmail_pdf_archiver.core.models import EmailMessage, MessagePart

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_TYPE = "image/png"

_CID_SRC = re.compile(r"""src=["']cid:([^"']+)["']""", re.IGNORECASE)


def normalize_content_id(raw: str) -> str:
    """Strip surrounding angle brackets and whitespace from a Content-ID value."""
    return raw.replace("<", "").replace(">", "").strip()


class InlineImageResolver:
    """Embed a message's inline image parts directly into its HTML body."""

    def build_index(self, parts: tuple[MessagePart, ...]) -> dict[str, MessagePart]:
        """Map normalized Content-ID → inline part. Parts without an ID are ignored."""
        index: dict[str, MessagePart] = {}
        for part in parts:
            cid = normalize_content_id(part.get_header("Content-ID"))
            if cid:
                index[cid] = part
        return index

    def resolve(self, html: str, message: EmailMessage) -> str:
        """Replace every known ``src="cid:..."`` with a base64 data URI.

        Unknown content IDs are left untouched so the PDF shows a broken image
        rather than failing the whole message.
        """
        index = self.build_index(message.inline_images)
        if not index:
            return html

        def _replace(match: re.Match[str]) -> str:
            part = index.get(match.group(1))
            if part is None:
                logger.debug("No inline part for cid:%s in %s", match.group(1), message.message_id)
                return match.group(0)
            mime_type = part.mime_type or DEFAULT_IMAGE_TYPE
            encoded = base64.b64encode(part.data).decode("ascii")
            return f'src="data:{mime_type};base64,{encoded}"'

        return _CID_SRC.sub(_replace, html)
