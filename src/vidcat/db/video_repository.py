"""Repository for interacting with the ``videos`` table."""

from __future__ import annotations

from typing import Dict, List, Mapping

from vidcat.db import ConnectionFactory
from vidcat.db.repositories import BaseRepository, RepositoryError
from vidcat.models.video import ExternalSource, InlinePendingSource, StoredSource, VideoRecord

_COLUMNS = (
    "title",
    "description",
    "transcript",
    "thumbnail",
    "platform",
    "tags",
    "duration",
    "captured_date",
    "external_url",
    "blob_path",
)


class VideoRepository(BaseRepository[VideoRecord]):
    """Data access object mapping :class:`VideoRecord` onto ``videos`` rows.

    The media source is split across the ``external_url`` and ``blob_path`` columns;
    inline payloads are refused so raw upload bytes never reach the table.
    """

    table_name = "videos"
    model_type = VideoRecord
    insert_fields = _COLUMNS
    update_fields = _COLUMNS
    order_by = "id"
    auto_timestamp_field = "updated_at"

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        super().__init__(connection_factory)

    def get(self, record_id: int) -> VideoRecord:
        return self.get_by_id(record_id)

    def update(self, record_id: int, record: VideoRecord) -> VideoRecord:
        return self.update_by_id(record_id, record, include_none=True)

    def delete(self, record_id: int) -> bool:
        return self.delete_by_id(record_id)

    def list(self) -> List[VideoRecord]:
        return self.fetch_all()

    def _to_row(self, model: VideoRecord) -> Dict[str, object]:
        source = model.source
        if isinstance(source, InlinePendingSource):
            raise RepositoryError("Inline upload payloads must be written to the blob store before persisting.")

        row = model.model_dump(mode="json", exclude={"source", "id", "created_at", "updated_at"})
        row["external_url"] = source.url if isinstance(source, ExternalSource) else None
        row["blob_path"] = source.path if isinstance(source, StoredSource) else None
        return row

    def _from_row(self, row: Mapping[str, object]) -> VideoRecord:
        values = {key: value for key, value in row.items() if key not in {"external_url", "blob_path"}}
        external_url = row.get("external_url")
        blob_path = row.get("blob_path")
        if external_url:
            values["source"] = ExternalSource(url=str(external_url))
        elif blob_path:
            values["source"] = StoredSource(path=str(blob_path))
        else:
            values["source"] = None
        values["tags"] = list(values.get("tags") or [])
        return VideoRecord.model_validate(values)


__all__ = ["VideoRepository"]
