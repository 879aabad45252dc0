"""CacheJail — restrict a file cache to one subtree.

Wraps any ``FileCache`` and presents the subtree under ``root`` as if it
were the whole storage.  Paths going in are prefixed with the root;
entries coming out are filtered to the subtree and have the prefix
stripped again.  Numeric ids are never rewritten.

Jails compose: the inner cache can be another jail or any other
decorator implementing the same protocols.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from .protocol import SupportsFolderSize
from .types import MoveInfo

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .protocol import FileCache
    from .search import SearchQuery
    from .types import CacheEntry, ScanStatus

logger = logging.getLogger(__name__)


class CacheJail:
    """A view of *cache* restricted to the subtree at *root*.

    An empty *root* is pass-through mode: every path maps to itself and
    nothing is filtered.

    Implements ``FileCache``, ``SupportsFolderSize`` (forwarded only when
    the inner cache has it) and ``SupportsMoveInfo``.
    """

    def __init__(self, cache: FileCache, root: str) -> None:
        self._cache = cache
        self._root = root.strip("/")

    @property
    def cache(self) -> FileCache:
        """The wrapped cache."""
        return self._cache

    @property
    def root(self) -> str:
        """Source path of the jail root, ``""`` in pass-through mode."""
        return self._root

    # ------------------------------------------------------------------
    # Path translation
    # ------------------------------------------------------------------

    def get_source_path(self, path: str) -> str:
        """Convert a jailed path to a path in the wrapped cache.

        ``""`` maps to the root itself.  Never fails.
        """
        if path == "":
            return self._root
        if self._root == "":
            return path.lstrip("/")
        return self._root + "/" + path.lstrip("/")

    def get_jailed_path(self, path: str) -> str | None:
        """Convert a path in the wrapped cache to a jailed path.

        Returns ``None`` when *path* is outside the jail.
        """
        if self._root == "":
            return path
        if path == self._root:
            return ""
        prefix = self._root + "/"
        if path.startswith(prefix):
            return path[len(prefix) :]
        return None

    # ------------------------------------------------------------------
    # Entry filtering / formatting
    # ------------------------------------------------------------------

    def is_inside(self, entry: CacheEntry | None) -> bool:
        """True if *entry* (with a source path) lies within the jail."""
        if entry is None:
            return False
        if self._root == "":
            return True
        return entry.path == self._root or entry.path.startswith(self._root + "/")

    def format_entry(self, entry: CacheEntry) -> CacheEntry:
        """Return a copy of *entry* with its path made jail-relative.

        Raises ``ValueError`` for an entry outside the jail.
        """
        jailed = self.get_jailed_path(entry.path)
        if jailed is None:
            raise ValueError(f"Entry {entry.path!r} is outside jail {self._root!r}")
        return replace(entry, path=jailed)

    def format_result_set(self, entries: Iterable[CacheEntry]) -> list[CacheEntry]:
        """Drop entries outside the jail and re-path the rest, keeping order."""
        entries = list(entries)
        inside = [e for e in entries if self.is_inside(e)]
        if len(inside) != len(entries):
            logger.debug(
                "Filtered %d entries outside jail %r",
                len(entries) - len(inside),
                self._root,
            )
        return [self.format_entry(e) for e in inside]

    def _format_single(self, entry: CacheEntry | None) -> CacheEntry | None:
        if entry is None or not self.is_inside(entry):
            return None
        return self.format_entry(entry)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, file: str | int) -> CacheEntry | None:
        """Get an entry by jailed path or by numeric id.

        An id that resolves outside the jail is reported as not found.
        """
        if isinstance(file, str):
            file = self.get_source_path(file)
        return self._format_single(self._cache.get(file))

    def get_id(self, path: str) -> int | None:
        return self._cache.get_id(self.get_source_path(path))

    def get_parent_id(self, path: str) -> int | None:
        return self._cache.get_parent_id(self.get_source_path(path))

    def in_cache(self, path: str) -> bool:
        return self._cache.in_cache(self.get_source_path(path))

    def get_status(self, path: str) -> ScanStatus:
        return self._cache.get_status(self.get_source_path(path))

    def get_path_by_id(self, file_id: int) -> str | None:
        """Jailed path of *file_id*, or ``None`` if unknown or outside the jail."""
        path = self._cache.get_path_by_id(file_id)
        if path is None:
            return None
        return self.get_jailed_path(path)

    def get_folder_contents(self, path: str) -> list[CacheEntry]:
        return self.format_result_set(self._cache.get_folder_contents(self.get_source_path(path)))

    def get_folder_contents_by_id(self, file_id: int) -> list[CacheEntry]:
        return self.format_result_set(self._cache.get_folder_contents_by_id(file_id))

    def get_all(self) -> list[int]:
        """Not supported on a jail; always empty."""
        return []

    def get_incomplete(self) -> str | None:
        """Not supported on a jail; never reports an incomplete folder."""
        return None

    def get_numeric_storage_id(self) -> int:
        return self._cache.get_numeric_storage_id()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def insert(self, path: str, data: Mapping[str, Any]) -> int | None:
        return self._cache.insert(self.get_source_path(path), data)

    def put(self, path: str, data: Mapping[str, Any]) -> int | None:
        file_id = self.get_id(path)
        if file_id is not None:
            self.update(file_id, data)
            return file_id
        return self.insert(path, data)

    def update(self, file_id: int, data: Mapping[str, Any]) -> None:
        self._cache.update(file_id, data)

    def remove(self, path: str) -> None:
        self._cache.remove(self.get_source_path(path))

    def move(self, source: str, target: str) -> None:
        # Targets outside the jail are the inner cache's concern.
        self._cache.move(self.get_source_path(source), self.get_source_path(target))

    def move_from_cache(self, source_cache: FileCache, source_path: str, target_path: str) -> None:
        """Move an entry from *source_cache* to *target_path* inside the jail.

        *source_path* is in *source_cache*'s own path space.
        """
        if source_cache is self:
            self.move(source_path, target_path)
            return
        self._cache.move_from_cache(source_cache, source_path, self.get_source_path(target_path))

    def get_move_info(self, path: str) -> MoveInfo:
        return MoveInfo(self.get_numeric_storage_id(), self.get_source_path(path))

    def clear(self) -> None:
        """Remove the whole jailed subtree, root included."""
        self._cache.remove(self._root)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(self, pattern: str) -> list[CacheEntry]:
        return self.format_result_set(self._cache.search(pattern))

    def search_by_mime(self, mimetype: str) -> list[CacheEntry]:
        return self.format_result_set(self._cache.search_by_mime(mimetype))

    def search_query(self, query: SearchQuery) -> list[CacheEntry]:
        """Run *query* against the inner cache and paginate within the jail.

        The inner search runs unpaginated: entries outside the jail must
        not count towards the caller's offset or limit.
        """
        unbounded = replace(query, limit=None, offset=0)
        results = self.format_result_set(self._cache.search_query(unbounded))
        if query.limit is None:
            return results[query.offset :]
        return results[query.offset : query.offset + query.limit]

    # ------------------------------------------------------------------
    # Capability: SupportsFolderSize
    # ------------------------------------------------------------------

    def correct_folder_size(
        self,
        path: str,
        data: CacheEntry | None = None,
        is_background_scan: bool = False,
    ) -> None:
        """Forward to the inner cache if it can compute folder sizes; no-op otherwise."""
        if isinstance(self._cache, SupportsFolderSize):
            self._cache.correct_folder_size(self.get_source_path(path), data, is_background_scan)

    def calculate_folder_size(self, path: str, entry: CacheEntry | None = None) -> int:
        """Forward to the inner cache if it can compute folder sizes; ``0`` otherwise."""
        if isinstance(self._cache, SupportsFolderSize):
            return self._cache.calculate_folder_size(self.get_source_path(path), entry)
        return 0
