"""Application settings loaded from environment variables and config files."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, HttpUrl, NonNegativeInt, PositiveInt
from pydantic.networks import PostgresDsn
from pydantic_settings import BaseSettings, SettingsConfigDict

from vidcat.config import CONFIG_ROOT

DEFAULT_CHUNK_SIZE = 2 * 1024 * 1024
DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024


class DurationBounds(BaseModel):
    """Exclusive lower / inclusive upper bound for a duration category, in seconds."""

    min: Optional[NonNegativeInt] = None
    max: Optional[NonNegativeInt] = None

    model_config = ConfigDict(extra="forbid")

    def contains(self, seconds: int) -> bool:
        if self.min is not None and seconds <= self.min:
            return False
        if self.max is not None and seconds > self.max:
            return False
        return True


class DurationCategoryConfig(BaseModel):
    """Named duration buckets used when filtering the catalog."""

    categories: Dict[str, DurationBounds] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


def _load_duration_categories(path: Path) -> DurationCategoryConfig:
    if not path.exists():
        return DurationCategoryConfig()

    raw_data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}

    categories: Dict[str, DurationBounds] = {}
    for name, bounds in raw_data.get("categories", {}).items():
        categories[name] = DurationBounds(**(bounds or {}))
    return DurationCategoryConfig(categories=categories)


class Settings(BaseSettings):
    """Primary application settings for the vidcat CLI and services."""

    database_url: PostgresDsn = Field(alias="DATABASE_URL")
    database_min_connections: PositiveInt = Field(default=1, alias="DATABASE_MIN_CONNECTIONS")
    database_max_connections: PositiveInt = Field(default=5, alias="DATABASE_MAX_CONNECTIONS")
    database_connect_timeout: PositiveInt = Field(default=5, alias="DATABASE_CONNECT_TIMEOUT")

    blob_root: Path = Field(default=Path("media"), alias="BLOB_ROOT")
    blob_public_base_url: Optional[HttpUrl] = Field(default=None, alias="BLOB_PUBLIC_BASE_URL")
    upload_prefix: str = Field(default="uploads", min_length=1, alias="UPLOAD_PREFIX")
    upload_chunk_size: PositiveInt = Field(default=DEFAULT_CHUNK_SIZE, alias="UPLOAD_CHUNK_SIZE")
    max_upload_bytes: PositiveInt = Field(default=DEFAULT_MAX_UPLOAD_BYTES, alias="MAX_UPLOAD_BYTES")

    duration_categories: DurationCategoryConfig = Field(
        default_factory=lambda: _load_duration_categories(CONFIG_ROOT / "duration_categories.yaml")
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached instance of the application settings."""

    return Settings()


__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_MAX_UPLOAD_BYTES",
    "DurationBounds",
    "DurationCategoryConfig",
    "Settings",
    "get_settings",
]
