"""Tests for FolderResolver: idempotent find-or-create."""

from __future__ import annotations

import pytest

from gmail_pdf_archiver.core.exceptions import StorageError
from gmail_pdf_archiver.storage.folders import FolderResolver

from conftest import FakeFileStore


class TestRoot:
    def test_default_root(self, fake_store: FakeFileStore) -> None:
        assert FolderResolver(fake_store).root(None) == "root"

    def test_configured_root(self, fake_store: FakeFileStore) -> None:
        folder = fake_store.create_folder("root", "Archives")
        assert FolderResolver(fake_store).root(folder) == folder

    def test_unknown_configured_root_raises(self, fake_store: FakeFileStore) -> None:
        with pytest.raises(StorageError):
            FolderResolver(fake_store).root("missing")


class TestGetOrCreate:
    def test_creates_when_missing(self, fake_store: FakeFileStore) -> None:
        folder = FolderResolver(fake_store).get_or_create("root", "PDF")
        assert fake_store.folders[folder] == ("root", "PDF")

    def test_idempotent(self, fake_store: FakeFileStore) -> None:
        resolver = FolderResolver(fake_store)
        first = resolver.get_or_create("root", "PDF")
        second = resolver.get_or_create("root", "PDF")
        assert first == second
        assert len([m for m in fake_store.mutations if m[0] == "create_folder"]) == 1

    def test_first_match_wins_on_existing_duplicates(self, fake_store: FakeFileStore) -> None:
        first = fake_store.create_folder("root", "PDF")
        fake_store.create_folder("root", "PDF")
        fake_store.mutations.clear()

        assert FolderResolver(fake_store).get_or_create("root", "PDF") == first
        assert fake_store.mutations == []

    def test_same_name_under_different_parents(self, fake_store: FakeFileStore) -> None:
        resolver = FolderResolver(fake_store)
        a = resolver.get_or_create("root", "A")
        b = resolver.get_or_create("root", "B")
        assert resolver.get_or_create(a, "X") != resolver.get_or_create(b, "X")
