"""Browse the catalog: free-text search plus platform, duration, and tag filters."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional, Sequence

from rich.console import Console

from vidcat.config.settings import DurationCategoryConfig, Settings, get_settings
from vidcat.db import RecordStore
from vidcat.models.video import VideoRecord


class UnknownDurationCategoryError(ValueError):
    """Raised when a duration filter names a category that is not configured."""


@dataclass(slots=True)
class CatalogFilters:
    """Options that constrain which videos are listed."""

    search: Optional[str] = None
    platform: Optional[str] = None
    duration: Optional[str] = None
    tags: Sequence[str] = ()


@dataclass(slots=True)
class CatalogFacets:
    """Distinct values present in a listing, used to offer filter choices."""

    platforms: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    durations: List[str] = field(default_factory=list)


class CatalogService:
    """Read-side queries over the record store.

    Filtering runs in memory over ``RecordStore.list()``; a record created a moment
    ago may be missing from the listing and that is not an error.
    """

    def __init__(
        self,
        record_store: RecordStore,
        *,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._records = record_store

    @property
    def duration_categories(self) -> DurationCategoryConfig:
        return self._settings.duration_categories

    def list_videos(self, filters: Optional[CatalogFilters] = None) -> List[VideoRecord]:
        """Return matching videos, newest capture date first, undated last."""

        videos = self._records.list()
        matched = [video for video in videos if self.matches(video, filters or CatalogFilters())]
        self._console.log(f"[blue]Catalog:[/blue] {len(matched)} of {len(videos)} video(s) match filters")
        return sort_videos(matched)

    def matches(self, video: VideoRecord, filters: CatalogFilters) -> bool:
        if filters.search:
            term = filters.search.strip().lower()
            haystacks = [video.title, video.description, *video.tags]
            if term and not any(term in text.lower() for text in haystacks):
                return False

        if filters.platform:
            if filters.platform.strip().lower() not in video.platform.value:
                return False

        if filters.duration:
            bounds = self.duration_categories.categories.get(filters.duration.strip().lower())
            if bounds is None:
                raise UnknownDurationCategoryError(f"Unknown duration category '{filters.duration}'")
            if not bounds.contains(video.duration):
                return False

        if filters.tags:
            if not all(tag in video.tags for tag in filters.tags):
                return False

        return True

    def facets(self, videos: Optional[Iterable[VideoRecord]] = None) -> CatalogFacets:
        """Collect the platforms and tags present, preserving first-seen order."""

        source = list(videos) if videos is not None else self._records.list()
        platforms: List[str] = []
        tags: List[str] = []
        for video in source:
            if video.platform.value not in platforms:
                platforms.append(video.platform.value)
            for tag in video.tags:
                if tag not in tags:
                    tags.append(tag)
        return CatalogFacets(
            platforms=platforms,
            tags=tags,
            durations=list(self.duration_categories.categories.keys()),
        )


def sort_videos(videos: Iterable[VideoRecord]) -> List[VideoRecord]:
    """Order by ``captured_date`` descending with undated videos last, then by id."""

    def key(video: VideoRecord) -> tuple[int, int, int]:
        captured = video.captured_date or date.min
        return (
            0 if video.captured_date else 1,
            -captured.toordinal(),
            video.id if video.id is not None else 0,
        )

    return sorted(videos, key=key)


__all__ = [
    "CatalogFacets",
    "CatalogFilters",
    "CatalogService",
    "UnknownDurationCategoryError",
    "sort_videos",
]
