"""Cache entry types: CacheEntry, ScanStatus, MoveInfo."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import NamedTuple

FOLDER_MIMETYPE = "httpd/unix-directory"
"""Mimetype stored for every folder entry."""


class ScanStatus(IntEnum):
    """How much the cache knows about a path."""

    NOT_FOUND = 0
    PARTIAL = 1
    """Only part of the metadata is known; the entry is not stored yet."""
    SHALLOW = 2
    """Stored, but the folder size has not been calculated."""
    COMPLETE = 3


@dataclass
class CacheEntry:
    """Metadata for one cached file or folder.

    ``path`` is storage-internal: no leading slash, ``""`` for the root.
    """

    id: int
    storage_id: int
    path: str
    name: str
    mimetype: str
    mime_part: str
    size: int
    mtime: int
    storage_mtime: int
    etag: str = ""
    permissions: int = 0
    checksum: str = ""
    parent_id: int | None = None

    @property
    def is_directory(self) -> bool:
        return self.mimetype == FOLDER_MIMETYPE

    @property
    def status(self) -> ScanStatus:
        if self.size == -1:
            return ScanStatus.SHALLOW
        return ScanStatus.COMPLETE


class MoveInfo(NamedTuple):
    """Storage id and internal path a cache reports for a cross-cache move."""

    storage_id: int
    path: str
