"""File cache entry model.

Provides ``FileCacheEntryBase``, a non-table base class.  Subclass with
``table=True`` and a custom ``__tablename__`` to use a different table
name per cache.
"""

from __future__ import annotations

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class FileCacheEntryBase(SQLModel):
    """Base fields for a cached file or folder. Subclass with ``table=True`` for a concrete table."""

    id: int | None = Field(default=None, primary_key=True)
    storage_id: int = Field(index=True)
    path: str = Field(index=True)
    parent_id: int | None = Field(default=None, index=True)
    name: str = Field(default="")
    mimetype: str = Field(default="application/octet-stream")
    mime_part: str = Field(default="application", index=True)
    size: int = Field(default=-1)
    mtime: int = Field(default=0)
    storage_mtime: int = Field(default=0)
    etag: str = Field(default="")
    permissions: int = Field(default=0)
    checksum: str = Field(default="")


class FileCacheEntry(FileCacheEntryBase, table=True):
    """Default cache table — ``filecache_entries``."""

    __tablename__ = "filecache_entries"
    __table_args__ = (UniqueConstraint("storage_id", "path", name="uq_filecache_storage_path"),)
