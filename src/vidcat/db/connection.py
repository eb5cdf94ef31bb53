"""Pooled psycopg2 connections for the catalog database."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import psycopg2
from psycopg2.extensions import connection as PsycopgConnection
from psycopg2.pool import PoolError, SimpleConnectionPool

from vidcat.config.settings import Settings, get_settings
from vidcat.db.repositories import RepositoryTransportError

APPLICATION_NAME = "vidcat"


def connection_options(settings: Settings) -> Dict[str, Any]:
    """Keyword arguments shared by pooled and standalone connections."""

    return {
        "dsn": str(settings.database_url),
        "connect_timeout": settings.database_connect_timeout,
        "application_name": APPLICATION_NAME,
    }


class DatabasePool:
    """Pool of catalog connections sized from settings."""

    def __init__(self, settings: Settings) -> None:
        try:
            self._pool = SimpleConnectionPool(
                settings.database_min_connections,
                settings.database_max_connections,
                **connection_options(settings),
            )
        except psycopg2.OperationalError as exc:
            raise RepositoryTransportError(f"Could not open database pool: {exc}") from exc

    @contextmanager
    def connection(self) -> Iterator[PsycopgConnection]:
        """Yield a connection that commits on success and rolls back on error.

        A connection the server closed is discarded instead of returned to the pool.
        """

        try:
            conn = self._pool.getconn()
        except PoolError as exc:
            raise RepositoryTransportError(f"Database pool unavailable: {exc}") from exc

        try:
            yield conn
            conn.commit()
        except Exception:
            if not conn.closed:
                conn.rollback()
            raise
        finally:
            self._pool.putconn(conn, close=bool(conn.closed))

    def close(self) -> None:
        self._pool.closeall()


_pool: Optional[DatabasePool] = None


def get_pool() -> DatabasePool:
    """Return the process-wide pool, opening it on first use."""

    global _pool
    if _pool is None:
        _pool = DatabasePool(get_settings())
    return _pool


@contextmanager
def get_connection() -> Iterator[PsycopgConnection]:
    """Provide a pooled database connection as a context manager."""

    with get_pool().connection() as conn:
        yield conn


def close_pool() -> None:
    """Close the shared pool, if one was opened."""

    global _pool
    if _pool is not None:
        _pool.close()
        _pool = None


def open_connection(settings: Optional[Settings] = None) -> PsycopgConnection:
    """Open a standalone connection outside the pool, e.g. for migrations."""

    try:
        return psycopg2.connect(**connection_options(settings or get_settings()))
    except psycopg2.OperationalError as exc:
        raise RepositoryTransportError(f"Could not connect to the database: {exc}") from exc


__all__ = [
    "APPLICATION_NAME",
    "DatabasePool",
    "close_pool",
    "connection_options",
    "get_connection",
    "get_pool",
    "open_connection",
]
