"""Write path for the catalog: validate, store uploaded bytes, persist records."""

from __future__ import annotations

import base64
import time
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Union
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError
from rich.console import Console

from vidcat.config.settings import Settings, get_settings
from vidcat.db import RecordStore
from vidcat.db.repositories import RecordNotFoundError
from vidcat.exceptions import StorageTransportError, ValidationError, VideoNotFoundError
from vidcat.models.video import (
    ExternalSource,
    InlinePendingSource,
    Platform,
    StoredSource,
    UploadPayload,
    VideoDraft,
    VideoRecord,
    VideoSubmission,
    VideoUpdate,
)
from vidcat.services.resolver import Resolution, SourceResolver
from vidcat.services.validator import MetadataValidator, violations_from_pydantic
from vidcat.storage import BlobStore, BlobStoreError
from vidcat.utils.media import guess_video_content_type
from vidcat.utils.progress import ProcessingStage, ProgressUpdate
from vidcat.utils.validation import sanitize_filename

ProgressHandler = Callable[[ProgressUpdate], None]


@dataclass(frozen=True, slots=True)
class PartialDeleteFailure:
    """The record was deleted but its blob could not be removed."""

    path: str
    error: str


@dataclass(slots=True)
class DeleteOutcome:
    """Result of a delete request; ``deleted`` reflects only the record row."""

    video_id: int
    deleted: bool
    blob_path: Optional[str] = None
    blob_failure: Optional[PartialDeleteFailure] = None


class IngestionService:
    """Sequence create, update, and delete requests across the record and blob stores.

    The service never retries store calls; transport failures propagate as
    :class:`vidcat.exceptions.StorageTransportError` for the caller to retry.
    """

    def __init__(
        self,
        record_store: RecordStore,
        blob_store: BlobStore,
        *,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        validator: Optional[MetadataValidator] = None,
        resolver: Optional[SourceResolver] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._records = record_store
        self._blobs = blob_store
        self._validator = validator or MetadataValidator(
            max_upload_bytes=self._settings.max_upload_bytes,
            console=self._console,
        )
        self._resolver = resolver or SourceResolver(blob_store, console=self._console)
        self._clock = clock

    @property
    def resolver(self) -> SourceResolver:
        return self._resolver

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    def create_video(
        self,
        submission: Union[VideoSubmission, Mapping[str, object]],
        *,
        on_progress: Optional[ProgressHandler] = None,
    ) -> VideoRecord:
        """Validate and persist a new video.

        Parameters
        ----------
        submission:
            Candidate fields with either ``url`` or ``upload`` set.
        on_progress:
            Optional callback invoked with stage updates.

        Returns
        -------
        VideoRecord
            The stored record; uploaded files are referenced by blob path.

        Raises
        ------
        vidcat.exceptions.ValidationError
            If the submission is invalid. Nothing is written in that case.
        vidcat.exceptions.StorageTransportError
            If either store fails.
        """

        self._emit_progress(on_progress, ProcessingStage.VALIDATING, 0, "Validating submission")
        draft = self._validator.require_valid(submission)

        source = self._store_inline_payload(draft, on_progress)
        record = VideoRecord.from_draft(draft, source=source)

        self._emit_progress(on_progress, ProcessingStage.STORING, 80, "Saving video record")
        try:
            stored = self._records.insert(record)
        except Exception:
            self._discard_new_blob(draft, source)
            raise

        self._console.log(
            f"[green]Ingestion:[/green] created video {stored.id} "
            f"(platform={stored.platform.value}, source={_describe_source(stored)})"
        )
        self._emit_progress(on_progress, ProcessingStage.COMPLETE, 100, "Video saved", video_id=stored.id)
        return stored

    def update_video(
        self,
        video_id: int,
        changes: Union[VideoUpdate, Mapping[str, object]],
        *,
        on_progress: Optional[ProgressHandler] = None,
    ) -> VideoRecord:
        """Apply a partial update, re-validating the merged record.

        A replacement upload is written under a new path; the previous blob stays in
        the blob store until :meth:`reap_orphaned_blobs` removes it.
        """

        update = _parse_update(changes)
        existing = self.get_video(video_id)

        self._emit_progress(on_progress, ProcessingStage.VALIDATING, 0, "Validating update", video_id=video_id)
        merged = self._merge_submission(existing, update)
        source_changed = bool({"url", "upload"} & update.model_fields_set)
        kept_blob = existing.source if isinstance(existing.source, StoredSource) and not source_changed else None
        draft = self._validator.require_valid(merged, current_source=kept_blob)

        source = self._store_inline_payload(draft, on_progress)
        record = VideoRecord.from_draft(draft, source=source)

        self._emit_progress(on_progress, ProcessingStage.STORING, 80, "Saving video record", video_id=video_id)
        try:
            stored = self._records.update(video_id, record)
        except RecordNotFoundError as exc:
            self._discard_new_blob(draft, source)
            raise VideoNotFoundError(video_id) from exc
        except Exception:
            self._discard_new_blob(draft, source)
            raise

        if (
            isinstance(existing.source, StoredSource)
            and isinstance(stored.source, StoredSource)
            and existing.source.path != stored.source.path
        ):
            self._console.log(
                f"[yellow]Ingestion:[/yellow] video {video_id} replaced blob {existing.source.path}; "
                "previous blob left for orphan reaping"
            )
        self._console.log(f"[green]Ingestion:[/green] updated video {video_id} (source={_describe_source(stored)})")
        self._emit_progress(on_progress, ProcessingStage.COMPLETE, 100, "Video saved", video_id=video_id)
        return stored

    def delete_video(self, video_id: int) -> DeleteOutcome:
        """Delete a video and, best-effort, its uploaded blob.

        Blob removal failures are logged and reported on the outcome; they never
        prevent the record from being deleted.
        An unknown id raises :class:`vidcat.exceptions.VideoNotFoundError`;
        ``deleted`` is only false when the row vanished between lookup and delete.
        """

        record = self.get_video(video_id)
        outcome = DeleteOutcome(video_id=video_id, deleted=False)

        if record.platform == Platform.UPLOAD and isinstance(record.source, StoredSource):
            outcome.blob_path = record.source.path
            try:
                self._blobs.remove(record.source.path)
            except Exception as exc:  # best-effort cleanup, record deletion proceeds
                outcome.blob_failure = PartialDeleteFailure(path=record.source.path, error=str(exc))
                self._console.log(
                    f"[red]Ingestion:[/red] failed to remove blob {record.source.path} "
                    f"for video {video_id}: {exc}"
                )

        outcome.deleted = self._records.delete(video_id)
        status = "deleted" if outcome.deleted else "already gone"
        self._console.log(f"[green]Ingestion:[/green] video {video_id} {status}")
        return outcome

    def get_video(self, video_id: int) -> VideoRecord:
        try:
            return self._records.get(video_id)
        except RecordNotFoundError as exc:
            raise VideoNotFoundError(video_id) from exc

    def list_videos(self) -> List[VideoRecord]:
        return self._records.list()

    def resolve_playback(self, video_id: int) -> Resolution:
        """Fetch a record and resolve its playable URL."""

        return self._resolver.resolve(self.get_video(video_id))

    def reap_orphaned_blobs(self) -> List[str]:
        """Remove uploaded blobs that no record references and return their paths."""

        prefix = f"{self._settings.upload_prefix.strip('/')}/"
        referenced = {
            record.source.path
            for record in self._records.list()
            if isinstance(record.source, StoredSource)
        }

        removed: List[str] = []
        for path in self._blobs.list_paths(prefix):
            if path in referenced:
                continue
            try:
                self._blobs.remove(path)
            except BlobStoreError as exc:
                self._console.log(f"[red]Ingestion:[/red] could not reap blob {path}: {exc}")
                continue
            removed.append(path)

        self._console.log(f"[blue]Ingestion:[/blue] reaped {len(removed)} orphaned blob(s)")
        return removed

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    def _store_inline_payload(
        self,
        draft: VideoDraft,
        on_progress: Optional[ProgressHandler],
    ) -> Union[ExternalSource, StoredSource]:
        source = draft.source
        if isinstance(source, ExternalSource):
            return source
        if isinstance(source, StoredSource):
            return source

        data = base64.b64decode(source.payload, validate=True)
        path = self._new_blob_path(source.filename)
        content_type = guess_video_content_type(source.filename)

        self._emit_progress(on_progress, ProcessingStage.UPLOADING, 30, f"Uploading {source.filename}")
        try:
            self._blobs.put(path, data, content_type)
        except StorageTransportError:
            raise
        except Exception as exc:
            raise BlobStoreError(f"Failed to upload '{source.filename}': {exc}") from exc

        self._console.log(f"[blue]Ingestion:[/blue] uploaded {source.filename} to {path} ({len(data)} bytes)")
        return StoredSource(path=path)

    def _new_blob_path(self, filename: str) -> str:
        prefix = self._settings.upload_prefix.strip("/")
        stamp = int(self._clock() * 1000)
        return f"{prefix}/{stamp}-{uuid4().hex[:8]}-{sanitize_filename(filename)}"

    def _discard_new_blob(self, draft: VideoDraft, source: Union[ExternalSource, StoredSource, None]) -> None:
        if not isinstance(draft.source, InlinePendingSource) or not isinstance(source, StoredSource):
            return
        try:
            self._blobs.remove(source.path)
        except Exception as exc:  # original failure is re-raised by the caller
            self._console.log(f"[red]Ingestion:[/red] could not clean up blob {source.path}: {exc}")
            return
        self._console.log(f"[yellow]Ingestion:[/yellow] removed blob {source.path} after failed write")

    @staticmethod
    def _merge_submission(existing: VideoRecord, update: VideoUpdate) -> VideoSubmission:
        changes = update.model_fields_set
        url: Optional[str] = None
        upload: Optional[UploadPayload] = None
        platform = update.platform if update.platform is not None else existing.platform.value

        if "url" in changes or "upload" in changes:
            url = update.url
            upload = update.upload
            if update.platform is None:
                platform = ""
        elif isinstance(existing.source, ExternalSource):
            url = existing.source.url

        return VideoSubmission(
            title=update.title if update.title is not None else existing.title,
            description=update.description if update.description is not None else existing.description,
            transcript=update.transcript if update.transcript is not None else existing.transcript,
            thumbnail=update.thumbnail if update.thumbnail is not None else existing.thumbnail,
            platform=platform,
            url=url,
            upload=upload,
            duration=update.duration if update.duration is not None else existing.duration,
            tags=update.tags if update.tags is not None else existing.tags,
            captured_date=update.captured_date if "captured_date" in changes else existing.captured_date,
        )

    def _emit_progress(
        self,
        callback: Optional[ProgressHandler],
        stage: ProcessingStage,
        stage_progress: int,
        message: str,
        *,
        video_id: Optional[int] = None,
    ) -> None:
        if callback is None:
            return
        callback(ProgressUpdate(stage=stage, stage_progress=stage_progress, message=message, video_id=video_id))


def _parse_update(changes: Union[VideoUpdate, Mapping[str, object]]) -> VideoUpdate:
    if isinstance(changes, VideoUpdate):
        return changes
    try:
        return VideoUpdate.model_validate(dict(changes))
    except PydanticValidationError as exc:
        raise ValidationError(list(violations_from_pydantic(exc))) from exc


def _describe_source(record: VideoRecord) -> str:
    source = record.source
    if isinstance(source, ExternalSource):
        return source.url
    if isinstance(source, StoredSource):
        return f"blob:{source.path}"
    return "none"


__all__ = ["DeleteOutcome", "IngestionService", "PartialDeleteFailure"]
