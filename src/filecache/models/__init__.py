"""Database models for the file cache."""

from filecache.models.entries import FileCacheEntry, FileCacheEntryBase

__all__ = [
    "FileCacheEntry",
    "FileCacheEntryBase",
]
