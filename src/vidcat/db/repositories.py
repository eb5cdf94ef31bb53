"""Generic repository abstractions for Postgres-backed persistence."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import ClassVar, Dict, Generic, Iterable, Mapping, Optional, Sequence, Tuple, Type, TypeVar

import psycopg2
from psycopg2.extensions import connection as PsycopgConnection
from psycopg2.extras import RealDictCursor
from psycopg2.pool import PoolError

from vidcat.db import ConnectionFactory
from vidcat.exceptions import CatalogError, StorageTransportError
from vidcat.models.base import CatalogBaseModel

ModelT = TypeVar("ModelT", bound=CatalogBaseModel)

_TRANSPORT_ERRORS = (psycopg2.OperationalError, psycopg2.InterfaceError, PoolError)


class RepositoryError(CatalogError):
    """Base exception raised for repository layer failures."""


class RecordNotFoundError(RepositoryError):
    """Raised when a requested record cannot be located."""


class RepositoryTransportError(StorageTransportError, RepositoryError):
    """Raised when the database cannot be reached or drops the connection."""


class BaseRepository(Generic[ModelT]):
    """Reusable building block for table-specific repositories."""

    table_name: ClassVar[str]
    model_type: ClassVar[Type[ModelT]]
    insert_fields: ClassVar[Sequence[str]]
    update_fields: ClassVar[Sequence[str]]
    order_by: ClassVar[str] = "id"
    auto_timestamp_field: ClassVar[Optional[str]] = None

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        self._connection_factory = connection_factory

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def insert(self, model: ModelT) -> ModelT:
        """Persist a new record to the backing table."""

        payload = self._serialize(model, fields=self.insert_fields, include_none=False)
        columns, placeholders = self._build_insert_clause(payload)
        query = f"INSERT INTO {self.table_name} ({columns}) VALUES ({placeholders}) RETURNING *"
        row = self._fetch_one(query, payload)
        return self._from_row(row)

    def update_by_id(self, record_id: object, model: ModelT, *, include_none: bool = False) -> ModelT:
        """Update the mutable columns of the record identified by ``record_id``."""

        payload = self._serialize(model, fields=self.update_fields, include_none=include_none)
        if not payload:
            raise RepositoryError("No fields provided for update.")
        payload["id"] = record_id

        set_clause = self._build_update_clause(payload.keys())
        query = f"UPDATE {self.table_name} SET {set_clause} WHERE id = %(id)s RETURNING *"
        row = self._fetch_one(query, payload)
        return self._from_row(row)

    def get_by_id(self, record_id: object) -> ModelT:
        """Return a single record by its primary key."""

        query = f"SELECT * FROM {self.table_name} WHERE id = %(id)s"
        row = self._fetch_one(query, {"id": record_id})
        return self._from_row(row)

    def fetch_all(
        self,
        where_clause: Optional[str] = None,
        params: Optional[Mapping[str, object]] = None,
    ) -> list[ModelT]:
        """Return all records, optionally filtered by a predicate."""

        base_query = f"SELECT * FROM {self.table_name}"
        if where_clause:
            base_query = f"{base_query} WHERE {where_clause}"
        base_query = f"{base_query} ORDER BY {self.order_by}"
        rows = self._fetch_many(base_query, params or {})
        return [self._from_row(row) for row in rows]

    def delete_by_id(self, record_id: object) -> bool:
        """Delete a record identified by its primary key, reporting whether a row went away."""

        query = f"DELETE FROM {self.table_name} WHERE id = %(id)s RETURNING id"
        rows = self._fetch_many(query, {"id": record_id})
        return bool(rows)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _to_row(self, model: ModelT) -> Dict[str, object]:
        """Hook for subclasses whose columns differ from the model fields."""

        return model.model_dump(mode="json")

    def _from_row(self, row: Mapping[str, object]) -> ModelT:
        """Hook for subclasses whose columns differ from the model fields."""

        return self.model_type.model_validate(row)

    def _serialize(
        self,
        model: ModelT,
        *,
        fields: Iterable[str],
        include_none: bool,
    ) -> Dict[str, object]:
        raw_values = self._to_row(model)
        payload: Dict[str, object] = {}

        for field in fields:
            if field not in raw_values:
                continue
            value = raw_values[field]
            if value is None and not include_none:
                continue
            payload[field] = value

        return payload

    def _build_insert_clause(self, payload: Mapping[str, object]) -> Tuple[str, str]:
        columns = ", ".join(payload.keys())
        placeholders = ", ".join(f"%({field})s" for field in payload.keys())
        return columns, placeholders

    def _build_update_clause(self, payload_keys: Iterable[str]) -> str:
        assignments = []
        for field in payload_keys:
            if field == "id":
                continue
            assignments.append(f"{field} = %({field})s")
        if self.auto_timestamp_field:
            assignments.append(f"{self.auto_timestamp_field} = NOW()")
        if not assignments:
            raise RepositoryError("No columns available for update.")
        return ", ".join(assignments)

    def _fetch_one(self, query: str, params: Mapping[str, object]) -> Mapping[str, object]:
        try:
            with self._connection() as connection:
                with connection.cursor(cursor_factory=RealDictCursor) as cursor:
                    cursor.execute(query, params)
                    row = cursor.fetchone()
                    if row is None:
                        raise RecordNotFoundError(f"No records returned for query: {query!r}")
                    return dict(row)
        except _TRANSPORT_ERRORS as exc:
            raise RepositoryTransportError(f"Database unavailable: {exc}") from exc
        except psycopg2.Error as exc:
            raise RepositoryError(f"Query failed on {self.table_name}: {exc}") from exc

    def _fetch_many(self, query: str, params: Mapping[str, object]) -> list[Mapping[str, object]]:
        try:
            with self._connection() as connection:
                with connection.cursor(cursor_factory=RealDictCursor) as cursor:
                    cursor.execute(query, params)
                    rows = cursor.fetchall()
                    return [dict(row) for row in rows]
        except _TRANSPORT_ERRORS as exc:
            raise RepositoryTransportError(f"Database unavailable: {exc}") from exc
        except psycopg2.Error as exc:
            raise RepositoryError(f"Query failed on {self.table_name}: {exc}") from exc

    def _connection(self) -> AbstractContextManager[PsycopgConnection]:
        return self._connection_factory()


__all__ = [
    "BaseRepository",
    "RecordNotFoundError",
    "RepositoryError",
    "RepositoryTransportError",
]
