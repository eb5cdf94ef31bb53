"""Shared base model definitions for catalog domain objects."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class CatalogBaseModel(BaseModel):
    """Base model configured for catalog-wide defaults."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


__all__ = ["CatalogBaseModel"]
