"""Apply the SQL files under ``db/migrations`` once each, tracked in a ledger table."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

import psycopg2
from psycopg2.extensions import connection as PsycopgConnection
from rich.console import Console
from rich.table import Table

from vidcat.config.settings import Settings
from vidcat.db.connection import open_connection
from vidcat.db.repositories import RepositoryError, RepositoryTransportError

MIGRATIONS_ROOT = Path(__file__).resolve().parent / "migrations"
LEDGER_TABLE = "schema_migrations"

_CREATE_LEDGER = f"""
CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
    name TEXT PRIMARY KEY,
    checksum TEXT NOT NULL,
    applied_at TIMESTAMPTZ NOT NULL DEFAULT now()
)
"""
_SELECT_LEDGER = f"SELECT name, checksum FROM {LEDGER_TABLE}"
_RECORD_MIGRATION = f"INSERT INTO {LEDGER_TABLE} (name, checksum) VALUES (%s, %s)"


class MigrationError(RepositoryError):
    """Raised when a migration fails or an applied file was edited afterwards."""


@dataclass(frozen=True, slots=True)
class Migration:
    name: str
    sql: str

    @property
    def checksum(self) -> str:
        return hashlib.sha256(self.sql.encode("utf-8")).hexdigest()

    @classmethod
    def from_path(cls, path: Path) -> "Migration":
        return cls(name=path.name, sql=path.read_text(encoding="utf-8"))


@dataclass(slots=True)
class MigrationReport:
    """Names of migrations applied by this run and of those already in the ledger."""

    applied: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


def load_migrations(directory: Path = MIGRATIONS_ROOT) -> List[Migration]:
    return [Migration.from_path(path) for path in sorted(directory.glob("*.sql"))]


def run_migrations(
    console: Console | None = None,
    settings: Optional[Settings] = None,
    *,
    connect: Optional[Callable[[], PsycopgConnection]] = None,
    directory: Path = MIGRATIONS_ROOT,
) -> MigrationReport:
    """Apply pending migrations in name order, each in its own transaction.

    Parameters
    ----------
    console:
        Where progress and the summary table are printed.
    settings:
        Used to open a standalone connection when ``connect`` is not given.
    connect:
        Factory returning an open connection; it is closed when the run ends.
    directory:
        Folder holding the ``*.sql`` files.

    Raises
    ------
    MigrationError
        If a file fails to apply or an applied file's checksum no longer matches.
    RepositoryTransportError
        If the database connection is lost.
    """

    console = console or Console()
    migrations = load_migrations(directory)
    report = MigrationReport()

    if not migrations:
        console.print("[yellow]No migrations found.[/yellow]")
        return report

    connection = connect() if connect is not None else open_connection(settings)

    table = Table(title="Database Migrations")
    table.add_column("Migration", style="cyan")
    table.add_column("Status", style="green")

    try:
        applied = _read_ledger(connection)
        for migration in migrations:
            recorded = applied.get(migration.name)
            if recorded is not None:
                if recorded != migration.checksum:
                    raise MigrationError(
                        f"Migration {migration.name} was modified after it was applied"
                    )
                report.skipped.append(migration.name)
                table.add_row(migration.name, "[dim]already applied[/dim]")
                continue

            with connection.cursor() as db_cursor:
                db_cursor.execute(migration.sql)
                db_cursor.execute(_RECORD_MIGRATION, (migration.name, migration.checksum))
            connection.commit()
            report.applied.append(migration.name)
            table.add_row(migration.name, "applied")
    except MigrationError as exc:
        _rollback(connection)
        console.print(f"[red]Migration failed:[/red] {exc}")
        raise
    except (psycopg2.OperationalError, psycopg2.InterfaceError) as exc:
        _rollback(connection)
        console.print(f"[red]Migration failed:[/red] {exc}")
        raise RepositoryTransportError(f"Lost database connection during migrations: {exc}") from exc
    except psycopg2.Error as exc:
        _rollback(connection)
        console.print(f"[red]Migration failed:[/red] {exc}")
        raise MigrationError(str(exc).strip()) from exc
    finally:
        connection.close()

    console.print(table)
    console.log(
        f"[green]Migrations:[/green] {len(report.applied)} applied, {len(report.skipped)} already applied"
    )
    return report


def _read_ledger(connection: PsycopgConnection) -> Dict[str, str]:
    with connection.cursor() as db_cursor:
        db_cursor.execute(_CREATE_LEDGER)
        db_cursor.execute(_SELECT_LEDGER)
        rows = db_cursor.fetchall()
    connection.commit()
    return {name: checksum for name, checksum in rows}


def _rollback(connection: PsycopgConnection) -> None:
    if not connection.closed:
        connection.rollback()


def main() -> None:
    """Entry point for running migrations via `python -m vidcat.db.migrate`."""

    run_migrations()


if __name__ == "__main__":  # pragma: no cover
    main()
