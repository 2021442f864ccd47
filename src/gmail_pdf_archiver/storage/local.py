"""Local filesystem file store: folder and file IDs are absolute paths."""

from __future__ import annotations

import logging
from pathlib import Path

from gmail_pdf_archiver.core.exceptions import StorageError

logger = logging.getLogger(__name__)

DESCRIPTION_SUFFIX = ".description"


class LocalFileStore:
    """FileStore rooted at a local directory.

    Same-named files are kept side by side as ``name (1).ext``, ``name (2).ext``
    the way Drive keeps duplicate names. Descriptions go to a sidecar
    ``<file>.description`` text file.
    """

    def __init__(self, root_dir: Path) -> None:
        self._root_dir = root_dir.resolve()
        self._root_dir.mkdir(parents=True, exist_ok=True)

    def get_root_folder(self) -> str:
        return str(self._root_dir)

    def get_folder(self, folder_id: str) -> str:
        path = Path(folder_id)
        if not path.is_absolute():
            path = self._root_dir / path
        if not path.is_dir():
            raise StorageError(f"Folder not found: {path}")
        return str(path)

    def find_child_by_name(self, parent_id: str, name: str) -> str | None:
        candidate = Path(parent_id) / name
        return str(candidate) if candidate.is_dir() else None

    def create_folder(self, parent_id: str, name: str) -> str:
        path = Path(parent_id) / name
        try:
            path.mkdir(exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create folder {path}: {e}") from e
        return str(path)

    def create_file(self, parent_id: str, name: str, content: bytes, mime_type: str) -> str:
        path = self._free_path(Path(parent_id) / name)
        try:
            path.write_bytes(content)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e
        logger.debug("Wrote %s (%d bytes, %s)", path, len(content), mime_type)
        return str(path)

    def set_description(self, file_id: str, description: str) -> None:
        sidecar = Path(file_id + DESCRIPTION_SUFFIX)
        try:
            sidecar.write_text(description, encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to describe {file_id}: {e}") from e

    @staticmethod
    def _free_path(path: Path) -> Path:
        if not path.exists():
            return path
        counter = 1
        while True:
            candidate = path.with_name(f"{path.stem} ({counter}){path.suffix}")
            if not candidate.exists():
                return candidate
            counter += 1
