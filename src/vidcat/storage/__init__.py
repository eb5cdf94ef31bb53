"""Blob store interface for raw uploaded media."""

from __future__ import annotations

from typing import List, Protocol

from vidcat.exceptions import StorageTransportError


class BlobStoreError(StorageTransportError):
    """Raised when the blob store cannot complete a put, remove, or listing."""


class BlobStore(Protocol):
    """Object storage addressed by path, exposing public URLs for stored objects."""

    def put(self, path: str, data: bytes, content_type: str) -> None:
        """Store ``data`` under ``path``, replacing anything already there."""

    def get_public_url(self, path: str) -> str:
        """Return the public URL of a previously stored object."""

    def remove(self, path: str) -> None:
        """Delete the object at ``path``."""

    def list_paths(self, prefix: str = "") -> List[str]:
        """Return every stored path starting with ``prefix``."""


__all__ = ["BlobStore", "BlobStoreError"]
