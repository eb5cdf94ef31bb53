"""Filesystem-backed blob store serving objects from a public base URL."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import List, Optional
from urllib.parse import quote

from rich.console import Console

from vidcat.config.settings import Settings, get_settings
from vidcat.storage import BlobStoreError


class LocalBlobStore:
    """Store blobs as files beneath ``root``.

    Paths are POSIX-style keys relative to the root. When ``public_base_url`` is set,
    public URLs are ``<base>/<quoted key>`` (for a web server or CDN exposing the
    root); otherwise ``file://`` URIs are returned.
    """

    def __init__(
        self,
        root: Path,
        *,
        public_base_url: Optional[str] = None,
        console: Optional[Console] = None,
    ) -> None:
        self._root = Path(root).resolve()
        self._public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self._console = console or Console()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, *, console: Optional[Console] = None) -> "LocalBlobStore":
        settings = settings or get_settings()
        base_url = str(settings.blob_public_base_url) if settings.blob_public_base_url else None
        return cls(settings.blob_root, public_base_url=base_url, console=console)

    @property
    def root(self) -> Path:
        return self._root

    def put(self, path: str, data: bytes, content_type: str) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise BlobStoreError(f"Failed to write blob '{path}': {exc}") from exc
        self._console.log(f"[blue]Blob store:[/blue] stored {path} ({len(data)} bytes, {content_type})")

    def get_public_url(self, path: str) -> str:
        target = self._resolve(path)
        if self._public_base_url is None:
            return target.as_uri()
        return f"{self._public_base_url}/{quote(self._key(path))}"

    def remove(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.unlink()
        except FileNotFoundError as exc:
            raise BlobStoreError(f"Blob '{path}' does not exist.") from exc
        except OSError as exc:
            raise BlobStoreError(f"Failed to remove blob '{path}': {exc}") from exc
        self._console.log(f"[blue]Blob store:[/blue] removed {path}")

    def list_paths(self, prefix: str = "") -> List[str]:
        if not self._root.exists():
            return []
        try:
            keys = [
                candidate.relative_to(self._root).as_posix()
                for candidate in self._root.rglob("*")
                if candidate.is_file()
            ]
        except OSError as exc:
            raise BlobStoreError(f"Failed to list blobs under '{self._root}': {exc}") from exc
        return sorted(key for key in keys if key.startswith(prefix))

    def _key(self, path: str) -> str:
        key = PurePosixPath(path.lstrip("/"))
        if not key.parts or ".." in key.parts:
            raise BlobStoreError(f"Invalid blob path: {path!r}")
        return key.as_posix()

    def _resolve(self, path: str) -> Path:
        return self._root / self._key(path)


__all__ = ["LocalBlobStore"]
