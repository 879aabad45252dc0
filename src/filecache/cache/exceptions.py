"""Custom exception hierarchy for the filecache layer."""


class CacheError(Exception):
    """Base exception for all filecache errors."""


class StorageError(CacheError):
    """Raised on storage backend failures (DB connection, constraint violations, etc.)."""


class DuplicateEntryError(StorageError):
    """Raised when an entry already exists at the requested path."""


class EntryNotFoundError(CacheError):
    """Raised when an operation needs an entry that is not in the cache."""
