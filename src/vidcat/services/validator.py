"""Validation gate applied to every create and update submission."""

from __future__ import annotations

import base64
import binascii
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from rich.console import Console

from vidcat.config.settings import DEFAULT_MAX_UPLOAD_BYTES
from vidcat.exceptions import FieldViolation, ValidationError
from vidcat.models.video import (
    ExternalSource,
    InlinePendingSource,
    MediaSource,
    Platform,
    StoredSource,
    VideoDraft,
    VideoSubmission,
)
from vidcat.utils.media import strip_data_uri_prefix
from vidcat.utils.validation import detect_platform, is_image_url

MEDIA_SOURCE_FIELD = "media_source"
MISSING_MEDIA_SOURCE = "Either URL or video file must be provided"

_REQUIRED_TEXT_FIELDS = (
    ("title", "Title is required"),
    ("description", "Description is required"),
    ("transcript", "Transcript is required"),
)


@dataclass(slots=True)
class ValidationResult:
    """Outcome of validating a submission: a draft, or the list of violations."""

    draft: Optional[VideoDraft] = None
    violations: List[FieldViolation] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.draft is not None and not self.violations

    def require_valid(self) -> VideoDraft:
        """Return the draft or raise :class:`ValidationError` with every violation."""

        if self.draft is None or self.violations:
            raise ValidationError(self.violations)
        return self.draft


class MetadataValidator:
    """Check submissions against the catalog's entity rules without touching storage."""

    def __init__(
        self,
        *,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        console: Optional[Console] = None,
    ) -> None:
        self._max_upload_bytes = max_upload_bytes
        self._console = console or Console()

    def validate(
        self,
        candidate: Union[VideoSubmission, Mapping[str, object]],
        *,
        current_source: Optional[StoredSource] = None,
    ) -> ValidationResult:
        """Validate a submission and collect every violation.

        When both a URL and an upload payload are supplied the URL wins and the
        upload is ignored. ``current_source`` is the blob an update keeps when it
        supplies neither.
        """

        if isinstance(candidate, VideoSubmission):
            submission = candidate
        else:
            try:
                submission = VideoSubmission.model_validate(dict(candidate))
            except PydanticValidationError as exc:
                return ValidationResult(violations=list(violations_from_pydantic(exc)))

        violations: List[FieldViolation] = []

        for field_name, message in _REQUIRED_TEXT_FIELDS:
            if not getattr(submission, field_name).strip():
                violations.append(FieldViolation(field_name, message))

        if not is_image_url(submission.thumbnail):
            violations.append(FieldViolation("thumbnail", "Must be a valid image URL (JPG, PNG, or WebP)"))

        source = self._select_source(submission, current_source, violations)
        platform = self._check_platform(submission, source, violations)

        if not math.isfinite(submission.duration) or submission.duration < 0:
            violations.append(FieldViolation("duration", "Duration must be a finite, non-negative number of seconds"))

        if violations or source is None or platform is None:
            return ValidationResult(violations=violations)

        draft = VideoDraft(
            title=submission.title.strip(),
            description=submission.description.strip(),
            transcript=submission.transcript.replace("\r\n", "\n"),
            thumbnail=submission.thumbnail.strip(),
            platform=platform,
            tags=normalize_tags(submission.tags),
            duration=int(submission.duration),
            captured_date=submission.captured_date,
            source=source,
        )
        return ValidationResult(draft=draft)

    def require_valid(
        self,
        candidate: Union[VideoSubmission, Mapping[str, object]],
        *,
        current_source: Optional[StoredSource] = None,
    ) -> VideoDraft:
        return self.validate(candidate, current_source=current_source).require_valid()

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    def _select_source(
        self,
        submission: VideoSubmission,
        current_source: Optional[StoredSource],
        violations: List[FieldViolation],
    ) -> Optional[MediaSource]:
        url = (submission.url or "").strip()
        upload = submission.upload

        if url:
            if upload is not None:
                self._console.log(
                    "[yellow]Validator:[/yellow] both URL and upload supplied; "
                    f"using URL and ignoring upload '{upload.filename}'"
                )
            if detect_platform(url) is None:
                violations.append(FieldViolation("url", "Must be a valid YouTube, Vimeo, or MP4 URL"))
                return None
            return ExternalSource(url=url)

        if upload is not None:
            return self._check_upload(upload.data, upload.filename, violations)

        if current_source is not None:
            return current_source

        violations.append(FieldViolation(MEDIA_SOURCE_FIELD, MISSING_MEDIA_SOURCE))
        return None

    def _check_upload(
        self,
        data: str,
        filename: str,
        violations: List[FieldViolation],
    ) -> Optional[InlinePendingSource]:
        payload = strip_data_uri_prefix(data)
        if not filename.strip():
            violations.append(FieldViolation("upload", "Uploaded file must have a filename"))
            return None
        try:
            decoded_size = len(base64.b64decode(payload, validate=True))
        except (binascii.Error, ValueError):
            violations.append(FieldViolation("upload", "Uploaded file is not valid base64 data"))
            return None
        if decoded_size > self._max_upload_bytes:
            violations.append(
                FieldViolation("upload", f"Uploaded file exceeds the {self._max_upload_bytes} byte limit")
            )
            return None
        return InlinePendingSource(payload=payload, filename=filename.strip())

    def _check_platform(
        self,
        submission: VideoSubmission,
        source: Optional[MediaSource],
        violations: List[FieldViolation],
    ) -> Optional[Platform]:
        raw_platform = submission.platform.strip().lower()

        if source is None:
            return None

        if isinstance(source, (InlinePendingSource, StoredSource)):
            if raw_platform and raw_platform != Platform.UPLOAD.value:
                violations.append(FieldViolation("platform", "Uploaded files must use the 'upload' platform"))
                return None
            return Platform.UPLOAD

        detected = detect_platform(source.url)
        if not raw_platform:
            return detected
        try:
            platform = Platform(raw_platform)
        except ValueError:
            violations.append(FieldViolation("platform", f"Unknown platform '{submission.platform}'"))
            return None
        if platform != detected:
            violations.append(
                FieldViolation(
                    "platform",
                    f"URL is a {detected.value if detected else 'unknown'} link, not {platform.value}",
                )
            )
            return None
        return platform


def normalize_tags(tags: Iterable[str]) -> List[str]:
    """Strip tags and drop empties and case-insensitive duplicates, keeping first-seen order."""

    merged: List[str] = []
    seen = set()

    for tag in tags:
        cleaned = tag.strip()
        if not cleaned:
            continue
        lower = cleaned.lower()
        if lower in seen:
            continue
        merged.append(cleaned)
        seen.add(lower)
    return merged


def violations_from_pydantic(exc: PydanticValidationError) -> Iterable[FieldViolation]:
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "submission"
        yield FieldViolation(location, error.get("msg", "Invalid value"))


__all__ = [
    "MEDIA_SOURCE_FIELD",
    "MISSING_MEDIA_SOURCE",
    "MetadataValidator",
    "ValidationResult",
    "normalize_tags",
    "violations_from_pydantic",
]
