"""Pydantic models describing catalog videos and their media sources."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field

from vidcat.models.base import CatalogBaseModel


class Platform(str, Enum):
    """How the media source of a video should be interpreted."""

    YOUTUBE = "youtube"
    VIMEO = "vimeo"
    MP4 = "mp4"
    UPLOAD = "upload"


class UploadPayload(CatalogBaseModel):
    """Base64 file content submitted alongside a create or update request."""

    data: str
    filename: str


class ExternalSource(CatalogBaseModel):
    """A video hosted elsewhere and played from its own URL."""

    kind: Literal["external"] = "external"
    url: str = Field(min_length=1)


class StoredSource(CatalogBaseModel):
    """A video whose bytes live in the blob store under ``path``."""

    kind: Literal["stored"] = "stored"
    path: str = Field(min_length=1)


class InlinePendingSource(CatalogBaseModel):
    """Encoded upload held in memory before it has been written to the blob store.

    Only valid between encoding and the write request; the record store never
    accepts a record carrying this source.
    """

    kind: Literal["inline_pending"] = "inline_pending"
    payload: str
    filename: str

    @classmethod
    def from_upload(cls, upload: UploadPayload) -> "InlinePendingSource":
        return cls(payload=upload.data, filename=upload.filename)


MediaSource = Annotated[
    Union[ExternalSource, StoredSource, InlinePendingSource],
    Field(discriminator="kind"),
]


class VideoSubmission(CatalogBaseModel):
    """Raw candidate submitted by an operator, before validation.

    Every field is permissive here; :class:`vidcat.services.validator.MetadataValidator`
    decides what is acceptable and reports each problem by field name.
    """

    title: str = ""
    description: str = ""
    transcript: str = ""
    thumbnail: str = ""
    platform: str = ""
    url: Optional[str] = None
    upload: Optional[UploadPayload] = None
    duration: float = 0
    tags: List[str] = Field(default_factory=list)
    captured_date: Optional[date] = None


class VideoUpdate(CatalogBaseModel):
    """Partial submission; only the fields explicitly set are applied."""

    title: Optional[str] = None
    description: Optional[str] = None
    transcript: Optional[str] = None
    thumbnail: Optional[str] = None
    platform: Optional[str] = None
    url: Optional[str] = None
    upload: Optional[UploadPayload] = None
    duration: Optional[float] = None
    tags: Optional[List[str]] = None
    captured_date: Optional[date] = None


class VideoDraft(CatalogBaseModel):
    """A validated video ready to be written, minus the store-assigned fields."""

    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    transcript: str = Field(min_length=1)
    thumbnail: str
    platform: Platform
    tags: List[str] = Field(default_factory=list)
    duration: int = Field(ge=0)
    captured_date: Optional[date] = None
    source: MediaSource


class VideoRecord(CatalogBaseModel):
    """Domain model representing a row in the ``videos`` table.

    ``source`` is ``None`` only for rows that lost their media source; such records
    resolve to a placeholder instead of a player URL.
    """

    id: Optional[int] = None
    title: str
    description: str
    transcript: str
    thumbnail: str
    platform: Platform
    tags: List[str] = Field(default_factory=list)
    duration: int = Field(ge=0)
    captured_date: Optional[date] = None
    source: Optional[MediaSource] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_draft(cls, draft: VideoDraft, *, source: Optional[MediaSource] = None) -> "VideoRecord":
        payload = draft.model_dump(exclude={"source"})
        return cls(**payload, source=source if source is not None else draft.source)


__all__ = [
    "ExternalSource",
    "InlinePendingSource",
    "MediaSource",
    "Platform",
    "StoredSource",
    "UploadPayload",
    "VideoDraft",
    "VideoRecord",
    "VideoSubmission",
    "VideoUpdate",
]
