"""Service layer for the video catalog."""

from vidcat.services.catalog import CatalogFilters, CatalogService
from vidcat.services.encoder import ChunkedUploadEncoder, EncodedUpload
from vidcat.services.ingestion import DeleteOutcome, IngestionService, PartialDeleteFailure
from vidcat.services.resolver import ResolvedSource, SourceResolver, SourceState, SourceUnavailable
from vidcat.services.validator import MetadataValidator, ValidationResult

__all__ = [
    "CatalogFilters",
    "CatalogService",
    "ChunkedUploadEncoder",
    "DeleteOutcome",
    "EncodedUpload",
    "IngestionService",
    "MetadataValidator",
    "PartialDeleteFailure",
    "ResolvedSource",
    "SourceResolver",
    "SourceState",
    "SourceUnavailable",
    "ValidationResult",
]
