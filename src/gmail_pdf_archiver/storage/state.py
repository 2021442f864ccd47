"""SQLite-backed key-value property store and processed-message tracking."""

from __future__ import annotations

import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from gmail_pdf_archiver.core.interfaces import PropertyStore

logger = logging.getLogger(__name__)

PROCESSED_KEY_PREFIX = "traite"
PROCESSED_VALUE = "1"


class SqlitePropertyStore:
    """Persistent string properties scoped to one user/process.

    Tables:
    - properties: key/value pairs (processed-message markers, trigger registry)
    - archive_runs: audit log of archival runs
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> None:
        """Open database connection and ensure schema exists."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_tables()

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> SqlitePropertyStore:
        self.connect()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._conn

    def _create_tables(self) -> None:
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS properties (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS archive_runs (
                run_id INTEGER PRIMARY KEY AUTOINCREMENT,
                label TEXT NOT NULL,
                started_at TEXT NOT NULL,
                completed_at TEXT,
                threads_found INTEGER DEFAULT 0,
                messages_archived INTEGER DEFAULT 0,
                messages_skipped INTEGER DEFAULT 0,
                messages_simulated INTEGER DEFAULT 0,
                messages_failed INTEGER DEFAULT 0,
                error_message TEXT DEFAULT ''
            );
        """)

    def get(self, key: str) -> str | None:
        row = self.conn.execute("SELECT value FROM properties WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        now = datetime.now(UTC).isoformat()
        self.conn.execute(
            """INSERT INTO properties (key, value, updated_at) VALUES (?, ?, ?)
               ON CONFLICT(key) DO UPDATE SET
                   value = excluded.value,
                   updated_at = excluded.updated_at""",
            (key, value, now),
        )
        self.conn.commit()

    def delete(self, key: str) -> bool:
        """Delete a property. Returns True if it existed."""
        cursor = self.conn.execute("DELETE FROM properties WHERE key = ?", (key,))
        self.conn.commit()
        return cursor.rowcount > 0

    def keys(self, prefix: str = "") -> list[str]:
        """List property keys starting with ``prefix``, sorted."""
        rows = self.conn.execute(
            "SELECT key FROM properties WHERE substr(key, 1, ?) = ? ORDER BY key",
            (len(prefix), prefix),
        ).fetchall()
        return [row["key"] for row in rows]

    def start_run(self, label: str) -> int:
        """Record the start of an archival run for one label. Returns the run_id."""
        now = datetime.now(UTC).isoformat()
        cursor = self.conn.execute(
            "INSERT INTO archive_runs (label, started_at) VALUES (?, ?)",
            (label, now),
        )
        self.conn.commit()
        return cursor.lastrowid or 0

    def complete_run(
        self,
        run_id: int,
        threads_found: int = 0,
        messages_archived: int = 0,
        messages_skipped: int = 0,
        messages_simulated: int = 0,
        messages_failed: int = 0,
        error_message: str = "",
    ) -> None:
        """Record the completion of an archival run."""
        now = datetime.now(UTC).isoformat()
        self.conn.execute(
            """UPDATE archive_runs SET
               completed_at = ?, threads_found = ?, messages_archived = ?,
               messages_skipped = ?, messages_simulated = ?, messages_failed = ?,
               error_message = ?
               WHERE run_id = ?""",
            (
                now,
                threads_found,
                messages_archived,
                messages_skipped,
                messages_simulated,
                messages_failed,
                error_message,
                run_id,
            ),
        )
        self.conn.commit()

    def recent_runs(self, limit: int = 10) -> list[dict]:
        rows = self.conn.execute(
            "SELECT * FROM archive_runs ORDER BY run_id DESC LIMIT ?", (limit,)
        ).fetchall()
        return [dict(row) for row in rows]


class ProcessedStateStore:
    """Tracks which message IDs have been archived, per label.

    A record is a ``traite:<label>:<message_id>`` property whose presence is
    the only signal. Records are never expired or deleted.
    """

    def __init__(self, properties: PropertyStore) -> None:
        self._properties = properties

    @staticmethod
    def key_for(label: str, message_id: str) -> str:
        return f"{PROCESSED_KEY_PREFIX}:{label}:{message_id}"

    def is_processed(self, label: str, message_id: str) -> bool:
        return bool(self._properties.get(self.key_for(label, message_id)))

    def mark_processed(self, label: str, message_id: str) -> None:
        self._properties.set(self.key_for(label, message_id), PROCESSED_VALUE)
        logger.debug("Marked %s as processed for label %s", message_id, label)
