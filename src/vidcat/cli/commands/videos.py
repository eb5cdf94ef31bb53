"""CLI commands for adding, updating, deleting, listing, and playing catalog videos."""

from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn, TimeRemainingColumn
from rich.table import Table

from vidcat.config.settings import get_settings
from vidcat.db.connection import get_connection
from vidcat.db.migrate import run_migrations
from vidcat.db.repositories import RepositoryError
from vidcat.db.video_repository import VideoRepository
from vidcat.exceptions import FieldViolation, StorageTransportError, ValidationError, VideoNotFoundError
from vidcat.models.video import ExternalSource, StoredSource, UploadPayload, VideoRecord
from vidcat.services.catalog import CatalogFilters, CatalogService, UnknownDurationCategoryError
from vidcat.services.encoder import ChunkedUploadEncoder, EncodingError
from vidcat.services.ingestion import IngestionService
from vidcat.services.resolver import ResolvedSource, Resolution
from vidcat.storage.local import LocalBlobStore


class ExitCode:
    """Mapping of meaningful CLI exit codes."""

    SUCCESS = 0
    INVALID_INPUT = 1
    NOT_FOUND = 2
    STORAGE_ERROR = 5


@dataclass(slots=True)
class CatalogServices:
    """Services the commands operate on."""

    ingestion: IngestionService
    catalog: CatalogService
    encoder: ChunkedUploadEncoder


ServiceFactory = Callable[[], CatalogServices]

PLACEHOLDER_TEXT = "Video unavailable"


def build_default_services(console: Console) -> CatalogServices:
    """Wire the Postgres record store and the local blob store from settings."""

    settings = get_settings()
    record_store = VideoRepository(get_connection)
    blob_store = LocalBlobStore.from_settings(settings, console=console)
    return CatalogServices(
        ingestion=IngestionService(record_store, blob_store, settings=settings, console=console),
        catalog=CatalogService(record_store, settings=settings, console=console),
        encoder=ChunkedUploadEncoder(chunk_size=settings.upload_chunk_size),
    )


def register(app: typer.Typer, console: Console, *, service_factory: Optional[ServiceFactory] = None) -> None:
    """Register catalog commands on ``app``."""

    @lru_cache(maxsize=1)
    def get_services() -> CatalogServices:
        if service_factory is not None:
            return service_factory()
        return build_default_services(console)

    def encode_upload(path: Path, quiet: bool) -> UploadPayload:
        encoder = get_services().encoder
        if quiet:
            return encoder.encode_path(path).to_payload()

        progress = Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            TimeRemainingColumn(),
            console=console,
            transient=True,
        )
        with progress as running_progress:
            task = running_progress.add_task(f"Encoding {path.name}", total=100)
            encoded = encoder.encode_path(
                path,
                on_progress=lambda update: running_progress.update(task, completed=update.percent),
            )
        return encoded.to_payload()

    @app.command("init-db")
    def init_db() -> None:
        """Apply pending database migrations."""

        with _exit_on_error(console):
            report = run_migrations(console=console)

        if report.applied:
            console.print(f"[green]Applied {len(report.applied)} migration(s).[/green]")
        else:
            console.print("[green]Database schema is up to date.[/green]")

    @app.command("add")
    def add(  # pylint: disable=too-many-arguments
        title: str = typer.Option(..., "--title", help="Video title"),
        description: str = typer.Option(..., "--description", help="Video description"),
        thumbnail: str = typer.Option(..., "--thumbnail", help="Thumbnail image URL (jpg, png, webp)"),
        url: Optional[str] = typer.Option(None, "--url", help="YouTube, Vimeo, or direct MP4 URL"),
        file: Optional[Path] = typer.Option(None, "--file", "-f", exists=True, dir_okay=False, help="Video file to upload"),
        transcript: Optional[str] = typer.Option(None, "--transcript", help="Transcript text"),
        transcript_file: Optional[Path] = typer.Option(
            None, "--transcript-file", exists=True, dir_okay=False, help="Read the transcript from a file"
        ),
        platform: Optional[str] = typer.Option(None, "--platform", help="youtube, vimeo, mp4, or upload"),
        duration: int = typer.Option(0, "--duration", help="Duration in seconds"),
        tags: Optional[str] = typer.Option(None, "--tags", help="Comma-separated tags"),
        captured_date: Optional[str] = typer.Option(None, "--captured-date", help="Capture date (YYYY-MM-DD)"),
        quiet: bool = typer.Option(False, "--quiet", "-q", help="Print the stored record as JSON only"),
    ) -> None:
        """Register a new video from a URL or an uploaded file."""

        with _exit_on_error(console):
            submission: Dict[str, object] = {
                "title": title,
                "description": description,
                "thumbnail": thumbnail,
                "transcript": _read_transcript(transcript, transcript_file) or "",
                "platform": platform or "",
                "duration": duration,
                "tags": _parse_tags(tags),
                "captured_date": _parse_date(captured_date),
                "url": url,
            }
            if file is not None:
                submission["upload"] = encode_upload(file, quiet)

            services = get_services()
            record = services.ingestion.create_video(submission)
            resolution = services.ingestion.resolver.resolve(record)

        _print_record(console, record, resolution, quiet=quiet)

    @app.command("update")
    def update(  # pylint: disable=too-many-arguments
        video_id: int = typer.Argument(..., help="Id of the video to update"),
        title: Optional[str] = typer.Option(None, "--title"),
        description: Optional[str] = typer.Option(None, "--description"),
        thumbnail: Optional[str] = typer.Option(None, "--thumbnail"),
        url: Optional[str] = typer.Option(None, "--url", help="Replace the media source with a URL"),
        file: Optional[Path] = typer.Option(
            None, "--file", "-f", exists=True, dir_okay=False, help="Replace the media source with a file"
        ),
        transcript: Optional[str] = typer.Option(None, "--transcript"),
        transcript_file: Optional[Path] = typer.Option(None, "--transcript-file", exists=True, dir_okay=False),
        platform: Optional[str] = typer.Option(None, "--platform"),
        duration: Optional[int] = typer.Option(None, "--duration"),
        tags: Optional[str] = typer.Option(None, "--tags", help="Replace tags (comma-separated)"),
        captured_date: Optional[str] = typer.Option(None, "--captured-date"),
        quiet: bool = typer.Option(False, "--quiet", "-q"),
    ) -> None:
        """Change any subset of a video's fields."""

        with _exit_on_error(console):
            changes: Dict[str, object] = {}
            for key, value in (
                ("title", title),
                ("description", description),
                ("thumbnail", thumbnail),
                ("platform", platform),
                ("duration", duration),
                ("transcript", _read_transcript(transcript, transcript_file)),
                ("captured_date", _parse_date(captured_date)),
            ):
                if value is not None:
                    changes[key] = value
            if tags is not None:
                changes["tags"] = _parse_tags(tags)
            if url is not None:
                changes["url"] = url
                changes["upload"] = None
            elif file is not None:
                changes["upload"] = encode_upload(file, quiet)
                changes["url"] = None

            services = get_services()
            record = services.ingestion.update_video(video_id, changes)
            resolution = services.ingestion.resolver.resolve(record)

        _print_record(console, record, resolution, quiet=quiet)

    @app.command("delete")
    def delete(video_id: int = typer.Argument(..., help="Id of the video to delete")) -> None:
        """Delete a video and its uploaded file."""

        with _exit_on_error(console):
            outcome = get_services().ingestion.delete_video(video_id)

        if not outcome.deleted:
            console.print(f"[yellow]Video {video_id} was already removed.[/yellow]")
            raise typer.Exit(code=ExitCode.NOT_FOUND)
        console.print(f"[green]Deleted video {video_id}.[/green]")
        if outcome.blob_failure is not None:
            console.print(f"[yellow]Stored file {outcome.blob_failure.path} could not be removed.[/yellow]")

    @app.command("show")
    def show(
        video_id: int = typer.Argument(..., help="Id of the video to show"),
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    ) -> None:
        """Show a video's metadata, transcript, and playable URL."""

        with _exit_on_error(console):
            ingestion = get_services().ingestion
            record = ingestion.get_video(video_id)
            resolution = ingestion.resolver.resolve(record)

        if json_output:
            typer.echo(json.dumps(_record_payload(record, resolution), ensure_ascii=False, indent=2))
            return

        _print_record(console, record, resolution, quiet=False)
        console.print(Panel.fit(record.transcript, title="Transcript", border_style="blue"))

    @app.command("list")
    def list_videos(
        search: Optional[str] = typer.Option(None, "--search", help="Match title, description, or tags"),
        platform: Optional[str] = typer.Option(None, "--platform", help="Filter by platform"),
        duration: Optional[str] = typer.Option(None, "--duration", help="short, medium, or long"),
        tag: Optional[List[str]] = typer.Option(None, "--tag", help="Require a tag (repeatable)"),
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    ) -> None:
        """List catalog videos matching the filters."""

        filters = CatalogFilters(search=search, platform=platform, duration=duration, tags=tuple(tag or ()))
        with _exit_on_error(console):
            videos = get_services().catalog.list_videos(filters)

        if json_output:
            typer.echo(json.dumps([_record_payload(video) for video in videos], ensure_ascii=False, indent=2))
            return

        if not videos:
            console.print("[yellow]No videos match the filters.[/yellow]")
            return

        table = Table(title="Videos")
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Title", style="bold")
        table.add_column("Platform")
        table.add_column("Duration", justify="right")
        table.add_column("Tags")
        table.add_column("Captured")
        for video in videos:
            table.add_row(
                str(video.id),
                video.title,
                video.platform.value,
                _format_duration(video.duration),
                ", ".join(video.tags),
                video.captured_date.isoformat() if video.captured_date else "",
            )
        console.print(table)

    @app.command("reap-orphans")
    def reap_orphans() -> None:
        """Delete uploaded files that no video references."""

        with _exit_on_error(console):
            removed = get_services().ingestion.reap_orphaned_blobs()

        for path in removed:
            console.print(f"Removed {path}")
        console.print(f"[green]{len(removed)} orphaned file(s) removed.[/green]")


@contextmanager
def _exit_on_error(console: Console) -> Iterator[None]:
    try:
        yield
    except ValidationError as exc:
        console.print("[red]Invalid video data:[/red]")
        for violation in exc.violations:
            console.print(f"  - {violation.field}: {violation.reason}")
        raise typer.Exit(code=ExitCode.INVALID_INPUT) from exc
    except (EncodingError, UnknownDurationCategoryError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=ExitCode.INVALID_INPUT) from exc
    except VideoNotFoundError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=ExitCode.NOT_FOUND) from exc
    except StorageTransportError as exc:
        console.print(f"[red]Storage error:[/red] {exc} (safe to retry)")
        raise typer.Exit(code=ExitCode.STORAGE_ERROR) from exc
    except RepositoryError as exc:
        console.print(f"[red]Database error:[/red] {exc}")
        raise typer.Exit(code=ExitCode.STORAGE_ERROR) from exc


def _parse_tags(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def _parse_date(raw: Optional[str]) -> Optional[date]:
    if raw is None:
        return None
    try:
        return date.fromisoformat(raw.strip())
    except ValueError as exc:
        raise ValidationError([FieldViolation("captured_date", f"'{raw}' is not a YYYY-MM-DD date")]) from exc


def _read_transcript(text: Optional[str], path: Optional[Path]) -> Optional[str]:
    if path is not None:
        return path.read_text(encoding="utf-8")
    return text


def _format_duration(seconds: int) -> str:
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def _record_payload(record: VideoRecord, resolution: Optional[Resolution] = None) -> Dict[str, object]:
    payload = record.model_dump(mode="json")
    if resolution is not None:
        payload["playback_url"] = resolution.url if isinstance(resolution, ResolvedSource) else None
        payload["playback_state"] = resolution.state.value
    return payload


def _print_record(console: Console, record: VideoRecord, resolution: Resolution, *, quiet: bool) -> None:
    if quiet:
        typer.echo(json.dumps(_record_payload(record, resolution), ensure_ascii=False, indent=2))
        return

    console.print(Panel.fit(f"[bold]{record.title}[/bold]", border_style="green"))
    console.print(f"Database Video ID: {record.id}")
    console.print(f"Platform: {record.platform.value}")
    console.print(f"Duration: {_format_duration(record.duration)}")
    console.print(f"Tags: {', '.join(record.tags) or 'n/a'}")
    if isinstance(record.source, ExternalSource):
        console.print(f"Source URL: {record.source.url}")
    elif isinstance(record.source, StoredSource):
        console.print(f"Stored file: {record.source.path}")
    if isinstance(resolution, ResolvedSource):
        console.print(f"Playback URL: {resolution.url}")
    else:
        console.print(f"[yellow]{PLACEHOLDER_TEXT}[/yellow] ({resolution.reason})")


__all__ = ["CatalogServices", "ExitCode", "ServiceFactory", "build_default_services", "register"]
