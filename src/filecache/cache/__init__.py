"""Cache layer — metadata caches, the jail decorator, capabilities."""

from filecache.cache.database_cache import DatabaseCache
from filecache.cache.exceptions import (
    CacheError,
    DuplicateEntryError,
    EntryNotFoundError,
    StorageError,
)
from filecache.cache.jail import CacheJail
from filecache.cache.protocol import FileCache, SupportsFolderSize, SupportsMoveInfo
from filecache.cache.search import (
    Comparison,
    ComparisonOp,
    FilterExpression,
    LogicalGroup,
    LogicalOp,
    SearchOrder,
    SearchQuery,
    SortDirection,
)
from filecache.cache.types import FOLDER_MIMETYPE, CacheEntry, MoveInfo, ScanStatus

__all__ = [
    "FOLDER_MIMETYPE",
    "CacheEntry",
    "CacheError",
    "CacheJail",
    "Comparison",
    "ComparisonOp",
    "DatabaseCache",
    "DuplicateEntryError",
    "EntryNotFoundError",
    "FileCache",
    "FilterExpression",
    "LogicalGroup",
    "LogicalOp",
    "MoveInfo",
    "ScanStatus",
    "SearchOrder",
    "SearchQuery",
    "SortDirection",
    "StorageError",
    "SupportsFolderSize",
    "SupportsMoveInfo",
]
