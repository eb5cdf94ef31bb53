"""Tests for the filesystem-backed blob store."""

from __future__ import annotations

import pytest

from vidcat.storage import BlobStoreError
from vidcat.storage.local import LocalBlobStore


@pytest.fixture()
def store(tmp_path, console) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "media", public_base_url="https://media.example.com/", console=console)


def test_put_then_public_url(store) -> None:
    store.put("uploads/1-ab-clip one.mp4", b"bytes", "video/mp4")

    assert (store.root / "uploads" / "1-ab-clip one.mp4").read_bytes() == b"bytes"
    assert store.get_public_url("uploads/1-ab-clip one.mp4") == "https://media.example.com/uploads/1-ab-clip%20one.mp4"


def test_file_uri_without_public_base(tmp_path, console) -> None:
    store = LocalBlobStore(tmp_path, console=console)
    store.put("uploads/a.mp4", b"x", "video/mp4")

    assert store.get_public_url("uploads/a.mp4") == (tmp_path.resolve() / "uploads" / "a.mp4").as_uri()


def test_list_and_remove(store) -> None:
    store.put("uploads/a.mp4", b"a", "video/mp4")
    store.put("uploads/b.mp4", b"b", "video/mp4")
    store.put("other/c.txt", b"c", "text/plain")

    assert store.list_paths("uploads/") == ["uploads/a.mp4", "uploads/b.mp4"]

    store.remove("uploads/a.mp4")

    assert store.list_paths() == ["other/c.txt", "uploads/b.mp4"]


def test_remove_missing_blob_raises(store) -> None:
    with pytest.raises(BlobStoreError):
        store.remove("uploads/missing.mp4")


def test_paths_cannot_escape_root(store) -> None:
    with pytest.raises(BlobStoreError):
        store.put("../outside.mp4", b"x", "video/mp4")


def test_from_settings(settings, console) -> None:
    store = LocalBlobStore.from_settings(settings, console=console)

    assert store.root == settings.blob_root.resolve()
    assert store.list_paths() == []
