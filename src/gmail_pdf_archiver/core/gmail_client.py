"""Gmail API client: label get-or-create, thread search, relabeling and archiving."""

from __future__ import annotations

import base64
import logging
import time
from typing import Any

from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError

from gmail_pdf_archiver.core.exceptions import MailboxError, ParseError, RateLimitError
from gmail_pdf_archiver.core.models import EmailMessage, EmailThread, LabelRef
from gmail_pdf_archiver.core.parser import GmailParser

logger = logging.getLogger(__name__)

INBOX_LABEL_ID = "INBOX"


def _is_rate_limit_error(exc: Exception) -> bool:
    """Check whether an exception represents a Gmail API 429 rate limit."""
    if isinstance(exc, HttpError) and exc.status_code == 429:
        return True
    error_str = str(exc)
    return "429" in error_str or "rateLimitExceeded" in error_str


class GmailClient:
    """Thin wrapper around the Gmail API implementing the pipeline's mailbox operations.

    Every request is executed exactly once; failures surface as MailboxError
    (or RateLimitError) and are left to the caller's per-message or per-label
    error handling.
    """

    def __init__(
        self,
        service: Resource,
        user_id: str = "me",
        *,
        parser: GmailParser | None = None,
        max_results_per_page: int = 100,
        inter_page_delay_seconds: float = 0.2,
    ) -> None:
        self._service = service
        self._user_id = user_id
        self._parser = parser or GmailParser()
        self._max_results = max_results_per_page
        self._inter_page_delay = inter_page_delay_seconds
        self._label_cache: dict[str, LabelRef] | None = None

    def _execute(self, request: Any, context: str) -> Any:
        """Execute a single API request, translating errors.

        Raises:
            RateLimitError: On a 429 response.
            MailboxError: On any other API error.
        """
        try:
            return request.execute()
        except Exception as e:
            if _is_rate_limit_error(e):
                raise RateLimitError(f"Rate limited during {context}: {e}") from e
            raise MailboxError(f"Failed to {context}: {e}") from e

    def list_labels(self) -> list[dict[str, str]]:
        """List all Gmail labels.

        Returns:
            List of dicts with 'id' and 'name' keys.
        """
        request = self._service.users().labels().list(userId=self._user_id)
        results = self._execute(request, "list labels")
        labels = results.get("labels", [])
        return [{"id": lbl["id"], "name": lbl["name"]} for lbl in labels]

    def find_or_create_label(self, name: str) -> LabelRef:
        """Return the user label called ``name``, creating it if absent."""
        if self._label_cache is None:
            self._label_cache = {
                lbl["name"]: LabelRef(label_id=lbl["id"], name=lbl["name"])
                for lbl in self.list_labels()
            }

        existing = self._label_cache.get(name)
        if existing is not None:
            return existing

        request = (
            self._service.users()
            .labels()
            .create(
                userId=self._user_id,
                body={
                    "name": name,
                    "labelListVisibility": "labelShow",
                    "messageListVisibility": "show",
                },
            )
        )
        created = self._execute(request, f"create label {name!r}")
        label = LabelRef(label_id=created["id"], name=created.get("name", name))
        self._label_cache[name] = label
        logger.info("Created label %s (%s)", label.name, label.label_id)
        return label

    def search(self, query: str) -> list[EmailThread]:
        """Run a Gmail search and return every matching thread.

        Messages carry headers and label IDs only (``format=metadata``); bodies
        and attachments are fetched per message by ``load_message``.
        """
        return [self.get_thread(thread_id) for thread_id in self._search_thread_ids(query)]

    def _search_thread_ids(self, query: str) -> list[str]:
        thread_ids: list[str] = []
        page_token: str | None = None
        first_page = True

        while True:
            if not first_page and self._inter_page_delay > 0:
                time.sleep(self._inter_page_delay)
            first_page = False

            kwargs: dict[str, Any] = {
                "userId": self._user_id,
                "q": query,
                "maxResults": self._max_results,
            }
            if page_token:
                kwargs["pageToken"] = page_token

            request = self._service.users().threads().list(**kwargs)
            response = self._execute(request, "search threads")

            threads = response.get("threads", [])
            thread_ids.extend(t["id"] for t in threads)
            logger.debug("Search page: %d threads", len(threads))

            page_token = response.get("nextPageToken")
            if not threads or not page_token:
                return thread_ids

    def get_thread(self, thread_id: str) -> EmailThread:
        """Fetch a thread's message headers and labels.

        A message that fails to parse is kept as a bare ID so that the error
        resurfaces from ``load_message`` for that message alone.
        """
        request = (
            self._service.users()
            .threads()
            .get(userId=self._user_id, id=thread_id, format="metadata")
        )
        raw_thread = self._execute(request, f"fetch thread {thread_id}")
        messages: list[EmailMessage] = []
        for raw in raw_thread.get("messages", []):
            try:
                messages.append(self._parser.parse(raw))
            except ParseError as e:
                if not raw.get("id"):
                    logger.warning("Dropping message without ID in thread %s: %s", thread_id, e)
                    continue
                logger.warning("Unparseable metadata for message %s: %s", raw["id"], e)
                messages.append(
                    EmailMessage(
                        message_id=raw["id"],
                        thread_id=thread_id,
                        label_ids=tuple(raw.get("labelIds") or ()),
                    )
                )
        return EmailThread(thread_id=raw_thread.get("id", thread_id), messages=tuple(messages))

    def load_message(self, message: EmailMessage) -> EmailMessage:
        """Fetch the full message, downloading out-of-line bodies and attachments."""
        request = (
            self._service.users()
            .messages()
            .get(userId=self._user_id, id=message.message_id, format="full")
        )
        raw = self._execute(request, f"fetch message {message.message_id}")
        return self._parser.parse(raw, attachment_loader=self.get_attachment)

    def get_attachment(self, message_id: str, attachment_id: str) -> bytes:
        """Download the bytes of an attachment Gmail did not inline in the message."""
        request = (
            self._service.users()
            .messages()
            .attachments()
            .get(userId=self._user_id, messageId=message_id, id=attachment_id)
        )
        response = self._execute(request, f"fetch attachment of {message_id}")
        data = response.get("data", "")
        padded = data + "=" * (4 - len(data) % 4) if len(data) % 4 else data
        return base64.urlsafe_b64decode(padded)

    def add_label(self, thread: EmailThread, label: LabelRef) -> None:
        self._modify_thread(thread.thread_id, add=[label.label_id])

    def remove_label(self, thread: EmailThread, label: LabelRef) -> None:
        self._modify_thread(thread.thread_id, remove=[label.label_id])

    def archive(self, thread: EmailThread) -> None:
        """Remove the thread from the inbox (Gmail "Archive")."""
        self._modify_thread(thread.thread_id, remove=[INBOX_LABEL_ID])

    def _modify_thread(
        self,
        thread_id: str,
        *,
        add: list[str] | None = None,
        remove: list[str] | None = None,
    ) -> None:
        body: dict[str, list[str]] = {}
        if add:
            body["addLabelIds"] = add
        if remove:
            body["removeLabelIds"] = remove
        request = (
            self._service.users()
            .threads()
            .modify(userId=self._user_id, id=thread_id, body=body)
        )
        self._execute(request, f"modify thread {thread_id}")
