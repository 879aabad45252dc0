"""Shared fixtures for filecache tests."""

from __future__ import annotations

import fnmatch
from typing import TYPE_CHECKING, Any

import pytest
from sqlmodel import Session, SQLModel, create_engine

from filecache.cache.database_cache import DatabaseCache
from filecache.cache.types import FOLDER_MIMETYPE, CacheEntry, ScanStatus
from filecache.cache.utils import base_name, mime_part_of

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from sqlalchemy import Engine

    from filecache.cache.protocol import FileCache
    from filecache.cache.search import SearchQuery


FOLDER = {"size": -1, "mtime": 100, "mimetype": FOLDER_MIMETYPE}


def file_data(size: int = 10, mimetype: str = "text/plain", mtime: int = 100) -> dict[str, Any]:
    return {"size": size, "mtime": mtime, "mimetype": mimetype, "etag": f"etag-{size}"}


@pytest.fixture
def engine() -> Engine:
    """In-memory SQLite engine with all tables created."""
    eng = create_engine("sqlite://", echo=False)
    SQLModel.metadata.create_all(eng)
    return eng


@pytest.fixture
def session(engine: Engine) -> Iterator[Session]:
    """SQLModel session bound to the in-memory engine, rolled back after each test."""
    with Session(engine) as s:
        s.begin()
        yield s
        s.rollback()


@pytest.fixture
def cache(engine: Engine) -> DatabaseCache:
    """Empty DatabaseCache on storage 1."""
    return DatabaseCache(engine, storage_id=1)


@pytest.fixture
def photo_cache(cache: DatabaseCache) -> DatabaseCache:
    """DatabaseCache holding a small photos/docs tree.

    photos/            (folder)
    photos/2023/       (folder)
    photos/2023/a.jpg  (10 bytes)
    photos/2023x/      (folder, sibling sharing the jail prefix)
    photos/2023x/x.jpg (5 bytes)
    photos/2024/       (folder)
    photos/2024/b.jpg  (20 bytes)
    docs/              (folder)
    docs/c.txt         (7 bytes)
    """
    cache.insert("photos", FOLDER)
    cache.insert("photos/2023", FOLDER)
    cache.insert("photos/2023/a.jpg", file_data(10, "image/jpeg"))
    cache.insert("photos/2023x", FOLDER)
    cache.insert("photos/2023x/x.jpg", file_data(5, "image/jpeg"))
    cache.insert("photos/2024", FOLDER)
    cache.insert("photos/2024/b.jpg", file_data(20, "image/jpeg"))
    cache.insert("docs", FOLDER)
    cache.insert("docs/c.txt", file_data(7))
    return cache


# ---------------------------------------------------------------------------
# ListCache: in-memory FileCache without optional capabilities
# ---------------------------------------------------------------------------


def make_entry(
    file_id: int,
    path: str,
    mimetype: str = "text/plain",
    size: int = 1,
    parent_id: int | None = None,
) -> CacheEntry:
    return CacheEntry(
        id=file_id,
        storage_id=7,
        path=path,
        name=base_name(path),
        mimetype=mimetype,
        mime_part=mime_part_of(mimetype),
        size=size,
        mtime=100,
        storage_mtime=100,
        parent_id=parent_id,
    )


class ListCache:
    """A FileCache over a plain list that records every call.

    Implements only the core protocol: no folder sizes, no move info.
    Results come back in list order.
    """

    def __init__(self, entries: list[CacheEntry] | None = None, storage_id: int = 7) -> None:
        self.entries: list[CacheEntry] = list(entries or [])
        self.storage_id = storage_id
        self.calls: list[tuple[Any, ...]] = []

    def _find(self, path: str) -> CacheEntry | None:
        return next((e for e in self.entries if e.path == path), None)

    def get(self, file: str | int) -> CacheEntry | None:
        self.calls.append(("get", file))
        if isinstance(file, str):
            return self._find(file)
        return next((e for e in self.entries if e.id == file), None)

    def get_id(self, path: str) -> int | None:
        self.calls.append(("get_id", path))
        entry = self._find(path)
        return entry.id if entry else None

    def get_parent_id(self, path: str) -> int | None:
        self.calls.append(("get_parent_id", path))
        entry = self._find(path)
        return entry.parent_id if entry else None

    def in_cache(self, path: str) -> bool:
        self.calls.append(("in_cache", path))
        return self._find(path) is not None

    def get_status(self, path: str) -> ScanStatus:
        self.calls.append(("get_status", path))
        entry = self._find(path)
        return entry.status if entry else ScanStatus.NOT_FOUND

    def get_path_by_id(self, file_id: int) -> str | None:
        self.calls.append(("get_path_by_id", file_id))
        return next((e.path for e in self.entries if e.id == file_id), None)

    def get_folder_contents(self, path: str) -> list[CacheEntry]:
        self.calls.append(("get_folder_contents", path))
        entry = self._find(path)
        return [e for e in self.entries if entry and e.parent_id == entry.id]

    def get_folder_contents_by_id(self, file_id: int) -> list[CacheEntry]:
        self.calls.append(("get_folder_contents_by_id", file_id))
        return [e for e in self.entries if e.parent_id == file_id]

    def get_all(self) -> list[int]:
        self.calls.append(("get_all",))
        return [e.id for e in self.entries]

    def get_incomplete(self) -> str | None:
        self.calls.append(("get_incomplete",))
        return "elsewhere/unscanned"

    def get_numeric_storage_id(self) -> int:
        return self.storage_id

    def insert(self, path: str, data: Mapping[str, Any]) -> int | None:
        self.calls.append(("insert", path, dict(data)))
        file_id = max((e.id for e in self.entries), default=0) + 1
        self.entries.append(make_entry(file_id, path, data.get("mimetype", "text/plain")))
        return file_id

    def put(self, path: str, data: Mapping[str, Any]) -> int | None:
        self.calls.append(("put", path, dict(data)))
        return self.insert(path, data)

    def update(self, file_id: int, data: Mapping[str, Any]) -> None:
        self.calls.append(("update", file_id, dict(data)))

    def remove(self, path: str) -> None:
        self.calls.append(("remove", path))
        self.entries = [
            e for e in self.entries if e.path != path and not e.path.startswith(path + "/")
        ]

    def move(self, source: str, target: str) -> None:
        self.calls.append(("move", source, target))

    def move_from_cache(self, source_cache: FileCache, source_path: str, target_path: str) -> None:
        self.calls.append(("move_from_cache", source_cache, source_path, target_path))

    def clear(self) -> None:
        self.calls.append(("clear",))

    def search(self, pattern: str) -> list[CacheEntry]:
        self.calls.append(("search", pattern))
        return [e for e in self.entries if fnmatch.fnmatch(e.name, pattern)]

    def search_by_mime(self, mimetype: str) -> list[CacheEntry]:
        self.calls.append(("search_by_mime", mimetype))
        if "/" in mimetype:
            return [e for e in self.entries if e.mimetype == mimetype]
        return [e for e in self.entries if e.mime_part == mimetype]

    def search_query(self, query: SearchQuery) -> list[CacheEntry]:
        self.calls.append(("search_query", query))
        results = list(self.entries)[query.offset :]
        if query.limit is not None:
            results = results[: query.limit]
        return results
