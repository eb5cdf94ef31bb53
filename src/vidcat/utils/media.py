"""MIME type helpers for uploaded video files."""

from __future__ import annotations

from pathlib import PurePosixPath

DEFAULT_VIDEO_CONTENT_TYPE = "video/webm"

VIDEO_CONTENT_TYPES = {
    ".mp4": "video/mp4",
    ".m4v": "video/x-m4v",
    ".mov": "video/quicktime",
    ".webm": "video/webm",
    ".ogv": "video/ogg",
    ".ogg": "video/ogg",
    ".mkv": "video/x-matroska",
}


def guess_video_content_type(filename: str) -> str:
    """Return the content type for a video filename, falling back to a generic container."""

    suffix = PurePosixPath(filename.strip().lower()).suffix
    return VIDEO_CONTENT_TYPES.get(suffix, DEFAULT_VIDEO_CONTENT_TYPE)


def strip_data_uri_prefix(payload: str) -> str:
    """Drop any ``data:...;base64,`` header and surrounding whitespace from a payload."""

    marker = "base64,"
    index = payload.find(marker)
    if index != -1:
        payload = payload[index + len(marker):]
    return payload.strip()


def build_data_uri(payload: str, filename: str) -> str:
    """Construct a ``data:`` URI suitable for previewing an inline upload."""

    return f"data:{guess_video_content_type(filename)};base64,{strip_data_uri_prefix(payload)}"


__all__ = [
    "DEFAULT_VIDEO_CONTENT_TYPE",
    "VIDEO_CONTENT_TYPES",
    "build_data_uri",
    "guess_video_content_type",
    "strip_data_uri_prefix",
]
