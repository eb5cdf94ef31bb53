"""Progress tracking types shared across CLI and services."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProcessingStage(str, Enum):
    """Lifecycle stages of a create or update request."""

    VALIDATING = "validating"
    UPLOADING = "uploading"
    STORING = "storing"
    COMPLETE = "complete"


class ProgressUpdate(BaseModel):
    """Structured payload describing how far an ingestion request has progressed."""

    stage: ProcessingStage
    stage_progress: int = Field(ge=0, le=100)
    message: str
    video_id: Optional[int] = None

    model_config = ConfigDict(extra="forbid")


class UploadProgress(BaseModel):
    """Progress of the chunked base64 encoder after a chunk has been consumed."""

    fraction: float = Field(ge=0.0, le=1.0)
    bytes_encoded: int = Field(ge=0)
    total_bytes: int = Field(ge=0)
    chunk_index: int = Field(ge=0)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def percent(self) -> float:
        return self.fraction * 100.0


__all__ = ["ProcessingStage", "ProgressUpdate", "UploadProgress"]
