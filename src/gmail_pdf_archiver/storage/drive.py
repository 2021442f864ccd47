"""Google Drive v3 file store: folders and files addressed by Drive IDs."""

from __future__ import annotations

import logging
from typing import Any

from googleapiclient.discovery import Resource
from googleapiclient.http import MediaInMemoryUpload

from gmail_pdf_archiver.core.exceptions import StorageError

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


def _escape_query_value(value: str) -> str:
    """Escape a string literal for a Drive ``files.list`` query."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveFileStore:
    """FileStore backed by the Drive API. Each call is a single request."""

    def __init__(self, service: Resource) -> None:
        self._service = service

    def _execute(self, request: Any, context: str) -> Any:
        try:
            return request.execute()
        except Exception as e:
            raise StorageError(f"Drive: failed to {context}: {e}") from e

    def get_root_folder(self) -> str:
        request = self._service.files().get(fileId="root", fields="id")
        return self._execute(request, "resolve root folder")["id"]

    def get_folder(self, folder_id: str) -> str:
        request = self._service.files().get(fileId=folder_id, fields="id, mimeType")
        result = self._execute(request, f"resolve folder {folder_id}")
        if result.get("mimeType") != FOLDER_MIME_TYPE:
            raise StorageError(f"Drive item {folder_id} is not a folder")
        return result["id"]

    def find_child_by_name(self, parent_id: str, name: str) -> str | None:
        query = (
            f"'{_escape_query_value(parent_id)}' in parents "
            f"and name = '{_escape_query_value(name)}' "
            f"and mimeType = '{FOLDER_MIME_TYPE}' and trashed = false"
        )
        request = self._service.files().list(
            q=query,
            fields="files(id, name)",
            orderBy="createdTime",
            pageSize=1,
            spaces="drive",
        )
        files = self._execute(request, f"look up folder {name!r}").get("files", [])
        return files[0]["id"] if files else None

    def create_folder(self, parent_id: str, name: str) -> str:
        request = self._service.files().create(
            body={"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]},
            fields="id",
        )
        return self._execute(request, f"create folder {name!r}")["id"]

    def create_file(self, parent_id: str, name: str, content: bytes, mime_type: str) -> str:
        media = MediaInMemoryUpload(content, mimetype=mime_type, resumable=False)
        request = self._service.files().create(
            body={"name": name, "parents": [parent_id]},
            media_body=media,
            fields="id",
        )
        file_id = self._execute(request, f"upload {name!r}")["id"]
        logger.debug("Uploaded %s (%d bytes) as %s", name, len(content), file_id)
        return file_id

    def set_description(self, file_id: str, description: str) -> None:
        request = self._service.files().update(fileId=file_id, body={"description": description})
        self._execute(request, f"describe {file_id}")
