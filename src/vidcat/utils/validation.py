"""Validation helpers for player URLs, thumbnails, and upload filenames."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import parse_qs, urlparse

from vidcat.models.video import Platform

_IMAGE_URL_PATTERN = re.compile(r"\.(jpg|jpeg|png|webp)(\?.*)?$", re.IGNORECASE)
_DIRECT_VIDEO_PATTERN = re.compile(r"\.(mp4|m4v|mov|webm|og[gv])$", re.IGNORECASE)
_YOUTUBE_ID_PATTERN = re.compile(r"^[0-9A-Za-z_-]+$")
_YOUTUBE_PATH_PATTERN = re.compile(r"^/(?:embed|v|shorts|live)/([0-9A-Za-z_-]+)/?$")
_VIMEO_PATH_PATTERN = re.compile(r"^/(?:video/|channels/[\w-]+/|groups/[\w-]+/videos/)?(\d+)(?:/[\w-]+)?/?$")
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

_YOUTUBE_HOSTS = {"youtube.com", "m.youtube.com", "music.youtube.com", "youtube-nocookie.com"}
_VIMEO_HOSTS = {"vimeo.com", "player.vimeo.com"}


def _host(url: str) -> Optional[str]:
    parsed = urlparse(url.strip())
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        return None
    host = parsed.hostname or ""
    if host.startswith("www."):
        host = host[4:]
    return host


def is_youtube_url(url: str) -> bool:
    """Return ``True`` for YouTube watch, short-link, embed, shorts, and live URLs."""

    host = _host(url)
    if host is None:
        return False

    parsed = urlparse(url.strip())
    if host == "youtu.be":
        return bool(_YOUTUBE_ID_PATTERN.fullmatch(parsed.path.strip("/")))

    if host in _YOUTUBE_HOSTS:
        if parsed.path.rstrip("/") == "/watch":
            candidates = parse_qs(parsed.query).get("v", [])
            return bool(candidates) and bool(_YOUTUBE_ID_PATTERN.fullmatch(candidates[0]))
        return bool(_YOUTUBE_PATH_PATTERN.match(parsed.path))
    return False


def is_vimeo_url(url: str) -> bool:
    """Return ``True`` for numeric Vimeo video pages and player embeds."""

    host = _host(url)
    if host not in _VIMEO_HOSTS:
        return False
    return bool(_VIMEO_PATH_PATTERN.match(urlparse(url.strip()).path))


def is_direct_video_url(url: str) -> bool:
    """Return ``True`` when the URL points straight at a browser-playable video file."""

    if _host(url) is None:
        return False
    path = urlparse(url.strip()).path
    return bool(_DIRECT_VIDEO_PATTERN.search(path))


def detect_platform(url: str) -> Optional[Platform]:
    """Map a player URL onto the platform that can play it, or ``None`` if unrecognised.

    ``Platform.MP4`` stands for any directly playable file link, so ``.mov``,
    ``.webm``, ``.m4v``, ``.ogg`` and ``.ogv`` URLs map to it as well as ``.mp4``.
    """

    if is_youtube_url(url):
        return Platform.YOUTUBE
    if is_vimeo_url(url):
        return Platform.VIMEO
    if is_direct_video_url(url):
        return Platform.MP4
    return None


def is_image_url(url: str) -> bool:
    """Check a thumbnail URI against the accepted image extensions."""

    return bool(_IMAGE_URL_PATTERN.search(url.strip()))


def sanitize_filename(filename: str, *, default: str = "video") -> str:
    """Reduce an uploaded filename to a safe single path segment."""

    basename = filename.replace("\\", "/").rsplit("/", 1)[-1]
    cleaned = _UNSAFE_FILENAME_CHARS.sub("-", basename).strip(".-")
    return cleaned or default


__all__ = [
    "detect_platform",
    "is_direct_video_url",
    "is_image_url",
    "is_vimeo_url",
    "is_youtube_url",
    "sanitize_filename",
]
