"""Catalog entries owned by the catalog-management side of the platform.

The ingestion pipeline only reads these rows to resolve an identifier to a
title; it never mutates them.
"""

from sqlmodel import Field

from db.models.base import TimestampMixin


class CatalogEntry(TimestampMixin, table=True):
    """A movie known to the platform, keyed by its external catalog id."""

    __tablename__ = "catalog_entry"

    id: int | None = Field(default=None, primary_key=True)
    external_id: int = Field(unique=True, index=True)  # e.g. TMDB id
    alt_id: str | None = Field(default=None, index=True)  # e.g. IMDb id
    title: str
    year: int | None = Field(default=None)
