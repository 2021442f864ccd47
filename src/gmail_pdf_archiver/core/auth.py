"""Google OAuth for the archiver: one installed-app consent covering Gmail and Drive."""

from __future__ import annotations

import logging
from pathlib import Path

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import Resource, build

from gmail_pdf_archiver.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

GMAIL_SCOPE = "https://www.googleapis.com/auth/gmail.modify"
# drive.file only reaches files the app created; root_folder_id may name any user folder
DRIVE_SCOPE = "https://www.googleapis.com/auth/drive"
SCOPES = [GMAIL_SCOPE, DRIVE_SCOPE]

API_VERSIONS = {"gmail": "v1", "drive": "v3"}


def authenticate(credentials_path: Path, token_path: Path) -> Credentials:
    """Return credentials for Gmail and Drive.

    Tries the cached token, then a refresh, then the browser consent flow.
    A token cached under different scopes is discarded.

    Raises:
        AuthenticationError: If no credentials can be obtained.
    """
    creds = _load_cached(token_path)
    if creds is not None and creds.valid:
        return creds

    if creds is not None and creds.expired and creds.refresh_token:
        try:
            creds.refresh(Request())
        except RefreshError as e:
            logger.warning("Could not refresh cached token, asking for consent again: %s", e)
        else:
            _store(creds, token_path)
            return creds

    creds = _consent(credentials_path)
    _store(creds, token_path)
    logger.info("Authorized %s; token cached at %s", ", ".join(SCOPES), token_path)
    return creds


def build_service(api: str, creds: Credentials) -> Resource:
    """Discovery client for ``"gmail"`` or ``"drive"``."""
    return build(api, API_VERSIONS[api], credentials=creds)


def _load_cached(token_path: Path) -> Credentials | None:
    if not token_path.exists():
        return None
    try:
        creds = Credentials.from_authorized_user_file(str(token_path))
    except ValueError as e:
        logger.warning("Ignoring unreadable token cache %s: %s", token_path, e)
        return None
    if not set(SCOPES) <= set(creds.scopes or ()):
        logger.info("Cached token lacks required scopes, asking for consent again")
        return None
    return creds


def _consent(credentials_path: Path) -> Credentials:
    if not credentials_path.exists():
        raise AuthenticationError(
            f"Credentials file not found: {credentials_path}. "
            "Create an OAuth desktop client in Google Cloud Console and download its JSON."
        )
    try:
        flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), SCOPES)
        return flow.run_local_server(port=0)
    except Exception as e:
        raise AuthenticationError(f"OAuth consent failed: {e}") from e


def _store(creds: Credentials, token_path: Path) -> None:
    token_path.parent.mkdir(parents=True, exist_ok=True)
    token_path.write_text(creds.to_json())
