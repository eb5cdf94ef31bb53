"""Exception hierarchy shared by the vidcat services and adapters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence


@dataclass(frozen=True, slots=True)
class FieldViolation:
    """A single field that failed validation and the reason it failed."""

    field: str
    reason: str

    def __str__(self) -> str:
        return f"{self.field}: {self.reason}"


class CatalogError(RuntimeError):
    """Base exception for all catalog failures."""


class ValidationError(CatalogError, ValueError):
    """Raised when a submission violates one or more entity invariants."""

    def __init__(self, violations: Sequence[FieldViolation]) -> None:
        self.violations: List[FieldViolation] = list(violations)
        details = "; ".join(str(violation) for violation in self.violations)
        super().__init__(f"Invalid video data: {details}")

    @property
    def fields(self) -> List[str]:
        return [violation.field for violation in self.violations]


class VideoNotFoundError(CatalogError):
    """Raised when a video id does not exist in the record store."""

    def __init__(self, video_id: object) -> None:
        self.video_id = video_id
        super().__init__(f"Video {video_id!r} not found.")


class StorageTransportError(CatalogError):
    """Raised when the record or blob store is unreachable; callers may retry."""

    retryable = True


__all__ = [
    "CatalogError",
    "FieldViolation",
    "StorageTransportError",
    "ValidationError",
    "VideoNotFoundError",
]
