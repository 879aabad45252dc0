"""filecache: path-indexed file metadata caches.

A SQL-backed metadata cache plus ``CacheJail``, a decorator that confines
any cache to one subtree and presents it as its own root.
"""

__version__ = "0.1.0"

from filecache.cache import (
    FOLDER_MIMETYPE,
    CacheEntry,
    CacheError,
    CacheJail,
    DatabaseCache,
    DuplicateEntryError,
    EntryNotFoundError,
    FileCache,
    MoveInfo,
    ScanStatus,
    SearchOrder,
    SearchQuery,
    SortDirection,
    StorageError,
    SupportsFolderSize,
    SupportsMoveInfo,
)
from filecache.cache.search import (
    and_,
    eq,
    gt,
    gte,
    in_,
    like,
    lt,
    lte,
    ne,
    not_,
    or_,
)
from filecache.models import FileCacheEntry, FileCacheEntryBase

__all__ = [
    "FOLDER_MIMETYPE",
    "CacheEntry",
    "CacheError",
    "CacheJail",
    "DatabaseCache",
    "DuplicateEntryError",
    "EntryNotFoundError",
    "FileCache",
    "FileCacheEntry",
    "FileCacheEntryBase",
    "MoveInfo",
    "ScanStatus",
    "SearchOrder",
    "SearchQuery",
    "SortDirection",
    "StorageError",
    "SupportsFolderSize",
    "SupportsMoveInfo",
    "__version__",
    "and_",
    "eq",
    "gt",
    "gte",
    "in_",
    "like",
    "lt",
    "lte",
    "ne",
    "not_",
    "or_",
]
