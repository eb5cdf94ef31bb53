"""Resolve a stored video into the single URL a player should load."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from rich.console import Console

from vidcat.exceptions import StorageTransportError
from vidcat.models.video import ExternalSource, InlinePendingSource, Platform, StoredSource, VideoRecord
from vidcat.storage import BlobStore
from vidcat.utils.media import build_data_uri, guess_video_content_type


class SourceState(str, Enum):
    """Shape of a record's media source at the time it is read."""

    EXTERNAL = "external"
    UPLOADED_PATH = "uploaded_path"
    UPLOADED_INLINE = "uploaded_inline"
    MISSING = "missing"


@dataclass(frozen=True, slots=True)
class ResolvedSource:
    """A playable URL together with the state it was resolved from."""

    url: str
    state: SourceState
    content_type: Optional[str] = None

    @property
    def available(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class SourceUnavailable:
    """No playable URL exists for the record; callers render a placeholder."""

    reason: str
    state: SourceState = SourceState.MISSING

    @property
    def available(self) -> bool:
        return False


Resolution = Union[ResolvedSource, SourceUnavailable]


class SourceResolver:
    """Map each record onto a player URL, reading the blob store for uploaded files.

    Resolution is recomputed on every call; nothing is cached between reads.
    """

    def __init__(self, blob_store: BlobStore, *, console: Optional[Console] = None) -> None:
        self._blob_store = blob_store
        self._console = console or Console()

    def classify(self, record: VideoRecord) -> SourceState:
        source = record.source
        if isinstance(source, InlinePendingSource):
            return SourceState.UPLOADED_INLINE
        if isinstance(source, StoredSource) and record.platform == Platform.UPLOAD:
            return SourceState.UPLOADED_PATH
        if isinstance(source, ExternalSource) and record.platform != Platform.UPLOAD and source.url.strip():
            return SourceState.EXTERNAL
        return SourceState.MISSING

    def resolve(self, record: VideoRecord) -> Resolution:
        """Return the playable URL for ``record`` or a :class:`SourceUnavailable` value.

        Raises
        ------
        StorageTransportError
            If the blob store fails while looking up the public URL; safe to retry.
        """

        state = self.classify(record)
        source = record.source

        if state is SourceState.EXTERNAL and isinstance(source, ExternalSource):
            return ResolvedSource(url=source.url, state=state)

        if state is SourceState.UPLOADED_PATH and isinstance(source, StoredSource):
            try:
                url = self._blob_store.get_public_url(source.path)
            except StorageTransportError:
                raise
            except Exception as exc:
                raise StorageTransportError(f"Blob store lookup failed for '{source.path}': {exc}") from exc
            return ResolvedSource(url=url, state=state, content_type=guess_video_content_type(source.path))

        if state is SourceState.UPLOADED_INLINE and isinstance(source, InlinePendingSource):
            return ResolvedSource(
                url=build_data_uri(source.payload, source.filename),
                state=state,
                content_type=guess_video_content_type(source.filename),
            )

        reason = self._unavailable_reason(record)
        self._console.log(f"[yellow]Resolver:[/yellow] video {record.id} has no playable source ({reason})")
        return SourceUnavailable(reason=reason)

    @staticmethod
    def _unavailable_reason(record: VideoRecord) -> str:
        source = record.source
        if source is None:
            return "No video source available"
        if isinstance(source, StoredSource):
            return f"Stored file requires the 'upload' platform, found '{record.platform.value}'"
        if isinstance(source, ExternalSource) and record.platform == Platform.UPLOAD:
            return "External URL recorded for an uploaded video"
        return "No video source available"


__all__ = ["Resolution", "ResolvedSource", "SourceResolver", "SourceState", "SourceUnavailable"]
