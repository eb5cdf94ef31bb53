"""Database utilities, connection helpers, and the record store interface."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, List, Protocol

from psycopg2.extensions import connection as PsycopgConnection

if TYPE_CHECKING:  # pragma: no cover
    from vidcat.models.video import VideoRecord


class ConnectionFactory(Protocol):
    """Callable protocol that yields a managed psycopg2 connection."""

    def __call__(self) -> AbstractContextManager[PsycopgConnection]:
        """Return a context manager that produces a live database connection."""


class RecordStore(Protocol):
    """Row store holding canonical :class:`VideoRecord` rows.

    ``get`` and ``update`` raise :class:`vidcat.db.repositories.RecordNotFoundError` for
    unknown ids; transport failures raise :class:`vidcat.exceptions.StorageTransportError`.
    """

    def insert(self, record: "VideoRecord") -> "VideoRecord":
        """Persist a new record and return it with its assigned id."""

    def update(self, record_id: int, record: "VideoRecord") -> "VideoRecord":
        """Overwrite the mutable columns of an existing record."""

    def delete(self, record_id: int) -> bool:
        """Remove a record, returning ``True`` if a row was deleted."""

    def get(self, record_id: int) -> "VideoRecord":
        """Return a single record by id."""

    def list(self) -> List["VideoRecord"]:
        """Return every stored record."""


__all__ = ["ConnectionFactory", "RecordStore"]
