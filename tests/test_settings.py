"""Tests for ArchiverSettings: environment loading and derived values."""

from __future__ import annotations

import os
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from gmail_pdf_archiver.config.settings import ArchiverSettings


class TestDefaults:
    def test_archival_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for key in list(os.environ):
            if key.startswith("GMAIL_PDF_"):
                monkeypatch.delenv(key)
        settings = ArchiverSettings(_env_file=None)

        assert settings.labels == ["PDF"]
        assert settings.root_folder_id is None
        assert settings.save_attachments is True
        assert settings.processed_sublabel == "Traité"
        assert settings.archive_threads is True
        assert settings.unread_only is False
        assert settings.lookback_days == 30
        assert settings.dry_run is False
        assert settings.trigger_interval_minutes == 5


class TestEnvironment:
    def test_reads_prefixed_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GMAIL_PDF_LABELS", '["PDF", "Factures"]')
        monkeypatch.setenv("GMAIL_PDF_UNREAD_ONLY", "true")
        monkeypatch.setenv("GMAIL_PDF_LOOKBACK_DAYS", "7")
        monkeypatch.setenv("GMAIL_PDF_TIMEZONE", "Europe/Paris")

        settings = ArchiverSettings(_env_file=None)

        assert settings.labels == ["PDF", "Factures"]
        assert settings.unread_only is True
        assert settings.lookback_days == 7
        assert settings.tzinfo == ZoneInfo("Europe/Paris")

    def test_negative_lookback_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ArchiverSettings(_env_file=None, lookback_days=-1)


class TestImmutability:
    def test_frozen(self, settings: ArchiverSettings) -> None:
        with pytest.raises(ValidationError):
            settings.dry_run = True  # type: ignore[misc]


class TestMarkerSublabel:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("Traité", "Traité"), ("  Done ", "Done"), ("", None), ("   ", None), (None, None)],
    )
    def test_blank_disables(self, value: str | None, expected: str | None) -> None:
        settings = ArchiverSettings(_env_file=None, processed_sublabel=value)
        assert settings.marker_sublabel == expected


class TestEnsureDirectories:
    def test_creates_local_output(self, tmp_path: Path) -> None:
        settings = ArchiverSettings(
            _env_file=None,
            storage_backend="local",
            output_dir=tmp_path / "out",
            database_path=tmp_path / "data" / "state.db",
            credentials_path=tmp_path / "creds" / "client.json",
        )
        settings.ensure_directories()
        assert (tmp_path / "out").is_dir()
        assert (tmp_path / "data").is_dir()
        assert (tmp_path / "creds").is_dir()
