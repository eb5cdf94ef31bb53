"""Tests for the Typer CLI using in-memory stores."""

from __future__ import annotations

import base64
import json

import pytest
from typer.testing import CliRunner

from vidcat.cli.commands import videos as videos_commands
from vidcat.cli.commands.videos import CatalogServices, ExitCode
from vidcat.cli.main import create_app
from vidcat.db.migrate import MigrationError, MigrationReport
from vidcat.models.video import StoredSource
from vidcat.services.catalog import CatalogService
from vidcat.services.encoder import ChunkedUploadEncoder

runner = CliRunner()

BASE_ARGS = [
    "--title",
    "T",
    "--description",
    "D",
    "--transcript",
    "X",
    "--thumbnail",
    "http://x/a.png",
]


@pytest.fixture()
def app(ingestion, record_store, settings, console):
    services = CatalogServices(
        ingestion=ingestion,
        catalog=CatalogService(record_store, settings=settings, console=console),
        encoder=ChunkedUploadEncoder(chunk_size=4),
    )
    return create_app(console=console, service_factory=lambda: services)


def test_add_url_video(app) -> None:
    result = runner.invoke(
        app, ["add", *BASE_ARGS, "--url", "https://youtube.com/watch?v=abc", "--tags", "ai, ml", "--quiet"]
    )

    assert result.exit_code == ExitCode.SUCCESS, result.output
    payload = json.loads(result.output)
    assert payload["id"] == 1
    assert payload["platform"] == "youtube"
    assert payload["tags"] == ["ai", "ml"]
    assert payload["playback_url"] == "https://youtube.com/watch?v=abc"
    assert payload["playback_state"] == "external"


def test_add_file_upload(app, blob_store, record_store, tmp_path) -> None:
    video = tmp_path / "demo.mp4"
    video.write_bytes(b"0123456789")

    result = runner.invoke(app, ["add", *BASE_ARGS, "--file", str(video), "--duration", "5", "--quiet"])

    assert result.exit_code == ExitCode.SUCCESS, result.output
    payload = json.loads(result.output)
    assert payload["platform"] == "upload"
    assert payload["source"]["kind"] == "stored"
    stored_path = record_store.rows[1].source.path
    assert blob_store.objects[stored_path][0] == b"0123456789"
    assert payload["playback_url"].endswith(stored_path)


def test_add_without_source_reports_violation(app, console) -> None:
    result = runner.invoke(app, ["add", *BASE_ARGS])

    assert result.exit_code == ExitCode.INVALID_INPUT
    assert "media_source" in console.file.getvalue()


def test_add_with_bad_date(app) -> None:
    result = runner.invoke(
        app, ["add", *BASE_ARGS, "--url", "https://youtube.com/watch?v=abc", "--captured-date", "yesterday"]
    )

    assert result.exit_code == ExitCode.INVALID_INPUT


def test_update_and_show(app) -> None:
    runner.invoke(app, ["add", *BASE_ARGS, "--url", "https://youtube.com/watch?v=abc"])

    updated = runner.invoke(app, ["update", "1", "--title", "Renamed", "--quiet"])
    shown = runner.invoke(app, ["show", "1", "--json"])

    assert updated.exit_code == ExitCode.SUCCESS, updated.output
    assert json.loads(shown.output)["title"] == "Renamed"


def test_update_replaces_upload_with_url(app, record_store, tmp_path) -> None:
    video = tmp_path / "demo.webm"
    video.write_bytes(b"abc")
    runner.invoke(app, ["add", *BASE_ARGS, "--file", str(video), "--quiet"])

    result = runner.invoke(app, ["update", "1", "--url", "https://vimeo.com/123", "--platform", "vimeo", "--quiet"])

    assert result.exit_code == ExitCode.SUCCESS, result.output
    assert json.loads(result.output)["platform"] == "vimeo"


def test_update_switching_source_infers_platform(app, record_store, tmp_path) -> None:
    video = tmp_path / "demo.webm"
    video.write_bytes(b"abc")
    runner.invoke(app, ["add", *BASE_ARGS, "--file", str(video), "--quiet"])

    to_url = runner.invoke(app, ["update", "1", "--url", "https://vimeo.com/123", "--quiet"])
    back_to_file = runner.invoke(app, ["update", "1", "--file", str(video), "--quiet"])

    assert to_url.exit_code == ExitCode.SUCCESS, to_url.output
    assert json.loads(to_url.output)["platform"] == "vimeo"
    assert back_to_file.exit_code == ExitCode.SUCCESS, back_to_file.output
    assert json.loads(back_to_file.output)["platform"] == "upload"
    assert isinstance(record_store.rows[1].source, StoredSource)


def test_update_with_invalid_duration_is_rejected(app) -> None:
    runner.invoke(app, ["add", *BASE_ARGS, "--url", "https://youtube.com/watch?v=abc"])

    result = runner.invoke(app, ["update", "1", "--duration", "-3"])

    assert result.exit_code == ExitCode.INVALID_INPUT


def test_show_missing_video(app) -> None:
    result = runner.invoke(app, ["show", "42"])

    assert result.exit_code == ExitCode.NOT_FOUND


def test_show_renders_placeholder_for_missing_source(app, record_store, console) -> None:
    runner.invoke(app, ["add", *BASE_ARGS, "--url", "https://youtube.com/watch?v=abc"])
    record_store.rows[1] = record_store.rows[1].model_copy(update={"source": None})

    result = runner.invoke(app, ["show", "1"])

    assert result.exit_code == ExitCode.SUCCESS
    assert "Video unavailable" in console.file.getvalue()


def test_list_with_filters(app) -> None:
    runner.invoke(app, ["add", *BASE_ARGS, "--url", "https://youtube.com/watch?v=abc", "--tags", "ai"])
    runner.invoke(app, ["add", *BASE_ARGS, "--url", "https://vimeo.com/1", "--duration", "1200"])

    result = runner.invoke(app, ["list", "--duration", "long", "--json"])

    assert result.exit_code == ExitCode.SUCCESS, result.output
    assert [video["platform"] for video in json.loads(result.output)] == ["vimeo"]


def test_delete_with_blob_failure_still_succeeds(app, blob_store, record_store, tmp_path) -> None:
    video = tmp_path / "demo.mp4"
    video.write_bytes(b"abc")
    runner.invoke(app, ["add", *BASE_ARGS, "--file", str(video)])
    blob_store.fail_remove = True

    result = runner.invoke(app, ["delete", "1"])

    assert result.exit_code == ExitCode.SUCCESS
    assert record_store.rows == {}


def test_storage_errors_exit_with_storage_code(app, record_store) -> None:
    from vidcat.db.repositories import RepositoryTransportError

    record_store.fail_with = RepositoryTransportError("connection refused")

    result = runner.invoke(app, ["list"])

    assert result.exit_code == ExitCode.STORAGE_ERROR


def test_reap_orphans(app, blob_store, record_store, tmp_path) -> None:
    video = tmp_path / "demo.mp4"
    video.write_bytes(b"abc")
    runner.invoke(app, ["add", *BASE_ARGS, "--file", str(video)])
    kept = record_store.rows[1].source
    blob_store.objects["uploads/stale.mp4"] = (base64.b64decode("AAAA"), "video/mp4")

    result = runner.invoke(app, ["reap-orphans"])

    assert result.exit_code == ExitCode.SUCCESS
    assert isinstance(kept, StoredSource)
    assert list(blob_store.objects) == [kept.path]


def test_init_db_reports_applied_migrations(app, monkeypatch) -> None:
    monkeypatch.setattr(videos_commands, "run_migrations", lambda console: MigrationReport(applied=["001.sql"]))

    result = runner.invoke(app, ["init-db"])

    assert result.exit_code == ExitCode.SUCCESS


def test_init_db_migration_error_is_a_storage_error(app, monkeypatch) -> None:
    def fail(console) -> MigrationReport:
        raise MigrationError("Migration 001.sql was modified after it was applied")

    monkeypatch.setattr(videos_commands, "run_migrations", fail)

    result = runner.invoke(app, ["init-db"])

    assert result.exit_code == ExitCode.STORAGE_ERROR
