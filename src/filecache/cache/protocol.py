"""FileCache protocol — runtime-checkable interfaces.

Split into a core protocol and opt-in capability protocols so that
decorators and lightweight caches can implement just the core without
being forced to provide folder-size bookkeeping or direct row moves.

All paths at these interfaces are storage-internal: no leading slash,
``""`` is the storage root.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .search import SearchQuery
    from .types import CacheEntry, MoveInfo, ScanStatus


@runtime_checkable
class FileCache(Protocol):
    """Core interface every metadata cache must implement.

    Lookups signal "not found" with ``None``; failures raise.
    """

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, file: str | int) -> CacheEntry | None: ...

    def get_id(self, path: str) -> int | None: ...

    def get_parent_id(self, path: str) -> int | None: ...

    def in_cache(self, path: str) -> bool: ...

    def get_status(self, path: str) -> ScanStatus: ...

    def get_path_by_id(self, file_id: int) -> str | None: ...

    def get_folder_contents(self, path: str) -> list[CacheEntry]: ...

    def get_folder_contents_by_id(self, file_id: int) -> list[CacheEntry]: ...

    def get_all(self) -> list[int]: ...

    def get_incomplete(self) -> str | None: ...

    def get_numeric_storage_id(self) -> int: ...

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def insert(self, path: str, data: Mapping[str, Any]) -> int | None: ...

    def put(self, path: str, data: Mapping[str, Any]) -> int | None: ...

    def update(self, file_id: int, data: Mapping[str, Any]) -> None: ...

    def remove(self, path: str) -> None: ...

    def move(self, source: str, target: str) -> None: ...

    def move_from_cache(self, source_cache: FileCache, source_path: str, target_path: str) -> None: ...

    def clear(self) -> None: ...

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(self, pattern: str) -> list[CacheEntry]: ...

    def search_by_mime(self, mimetype: str) -> list[CacheEntry]: ...

    def search_query(self, query: SearchQuery) -> list[CacheEntry]: ...


@runtime_checkable
class SupportsFolderSize(Protocol):
    """Opt-in: folder size calculation and propagation to parents.

    Decorators forward this capability by implementing it themselves and
    delegating only when their own inner cache satisfies it.
    """

    def correct_folder_size(
        self,
        path: str,
        data: CacheEntry | None = None,
        is_background_scan: bool = False,
    ) -> None: ...

    def calculate_folder_size(self, path: str, entry: CacheEntry | None = None) -> int: ...


@runtime_checkable
class SupportsMoveInfo(Protocol):
    """Opt-in: report the storage id and internal path used for a cross-cache move."""

    def get_move_info(self, path: str) -> MoveInfo: ...
