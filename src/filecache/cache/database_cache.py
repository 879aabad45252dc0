"""DatabaseCache — SQL-backed file metadata cache for one storage."""

from __future__ import annotations

import logging
import posixpath
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, or_
from sqlalchemy import delete as sa_delete
from sqlalchemy import update as sa_update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .exceptions import DuplicateEntryError, EntryNotFoundError
from .jail import CacheJail
from .protocol import SupportsMoveInfo
from .search import compile_order, compile_sql
from .types import FOLDER_MIMETYPE, CacheEntry, MoveInfo, ScanStatus
from .utils import base_name, glob_to_sql_like, mime_part_of, normalize_path, parent_path

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from sqlalchemy import Engine

    from filecache.models.entries import FileCacheEntryBase

    from .protocol import FileCache
    from .search import SearchQuery

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: tuple[str, ...] = ("size", "mtime", "mimetype")
"""Fields an insert needs before the entry is written; otherwise it stays partial."""

WRITABLE_FIELDS: frozenset[str] = frozenset(
    {"size", "mtime", "storage_mtime", "mimetype", "etag", "permissions", "checksum"}
)


class DatabaseCache:
    """Database-backed metadata cache scoped to a single numeric storage id.

    Every operation opens its own session, commits on success and rolls
    back on failure.  Works with any SQLAlchemy dialect the entry model
    can be created on (SQLite, PostgreSQL, ...).

    Implements ``FileCache``, ``SupportsFolderSize`` and
    ``SupportsMoveInfo``.
    """

    def __init__(
        self,
        engine: Engine,
        storage_id: int,
        *,
        entry_model: type[FileCacheEntryBase] | None = None,
        schema: str | None = None,
    ) -> None:
        from filecache.models.entries import FileCacheEntry

        self.schema = schema
        if schema:
            engine = engine.execution_options(schema_translate_map={None: schema})
        self._engine = engine
        self._storage_id = storage_id
        self._entry_model: type[FileCacheEntryBase] = entry_model or FileCacheEntry
        # Inserts missing a required field, keyed by path
        self._partial: dict[str, dict[str, Any]] = {}

    @property
    def engine(self) -> Engine:
        """Engine used for every session, with the schema translation applied."""
        return self._engine

    @property
    def entry_model(self) -> type[FileCacheEntryBase]:
        return self._entry_model

    def get_numeric_storage_id(self) -> int:
        return self._storage_id

    # ------------------------------------------------------------------
    # Session / row helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = Session(self._engine, expire_on_commit=False)
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _select_row(self, session: Session, path: str) -> FileCacheEntryBase | None:
        model = self._entry_model
        return session.exec(
            select(model).where(
                model.storage_id == self._storage_id,
                model.path == path,
            )
        ).first()

    def _select_row_by_id(self, session: Session, file_id: int) -> FileCacheEntryBase | None:
        model = self._entry_model
        return session.exec(
            select(model).where(
                model.storage_id == self._storage_id,
                model.id == file_id,
            )
        ).first()

    def _subtree_clause(self, storage_id: int, path: str) -> Any:
        """WHERE clause matching *path* and everything below it."""
        model = self._entry_model
        if path == "":
            return model.storage_id == storage_id
        return and_(
            model.storage_id == storage_id,
            or_(
                model.path == path,
                model.path.startswith(path + "/", autoescape=True),  # type: ignore[union-attr]
            ),
        )

    @staticmethod
    def _to_entry(row: FileCacheEntryBase) -> CacheEntry:
        """Convert a table row to a ``CacheEntry``."""
        assert row.id is not None
        return CacheEntry(
            id=row.id,
            storage_id=row.storage_id,
            path=row.path,
            name=row.name,
            mimetype=row.mimetype,
            mime_part=row.mime_part,
            size=row.size,
            mtime=row.mtime,
            storage_mtime=row.storage_mtime,
            etag=row.etag,
            permissions=row.permissions,
            checksum=row.checksum,
            parent_id=row.parent_id,
        )

    @staticmethod
    def _normalize_data(data: Mapping[str, Any]) -> dict[str, Any]:
        """Keep writable fields and derive ``mime_part`` from ``mimetype``."""
        values = {k: v for k, v in data.items() if k in WRITABLE_FIELDS}
        ignored = set(data) - WRITABLE_FIELDS
        if ignored:
            logger.debug("Ignoring non-writable cache fields: %s", sorted(ignored))
        if "mimetype" in values:
            values["mime_part"] = mime_part_of(values["mimetype"])
        return values

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, file: str | int) -> CacheEntry | None:
        """Get an entry by internal path or by numeric id."""
        with self._session() as session:
            if isinstance(file, str):
                row = self._select_row(session, normalize_path(file))
            else:
                row = self._select_row_by_id(session, file)
            return self._to_entry(row) if row is not None else None

    def get_id(self, path: str) -> int | None:
        model = self._entry_model
        with self._session() as session:
            return session.exec(
                select(model.id).where(
                    model.storage_id == self._storage_id,
                    model.path == normalize_path(path),
                )
            ).first()

    def get_parent_id(self, path: str) -> int | None:
        """Id of the parent folder; ``None`` for the root or an uncached parent."""
        path = normalize_path(path)
        if path == "":
            return None
        return self.get_id(parent_path(path))

    def in_cache(self, path: str) -> bool:
        return self.get_id(path) is not None

    def get_status(self, path: str) -> ScanStatus:
        path = normalize_path(path)
        entry = self.get(path)
        if entry is not None:
            return entry.status
        if path in self._partial:
            return ScanStatus.PARTIAL
        return ScanStatus.NOT_FOUND

    def get_path_by_id(self, file_id: int) -> str | None:
        model = self._entry_model
        with self._session() as session:
            return session.exec(
                select(model.path).where(
                    model.storage_id == self._storage_id,
                    model.id == file_id,
                )
            ).first()

    def get_folder_contents(self, path: str) -> list[CacheEntry]:
        """Direct children of the folder at *path*, ordered by name."""
        file_id = self.get_id(path)
        if file_id is None:
            return []
        return self.get_folder_contents_by_id(file_id)

    def get_folder_contents_by_id(self, file_id: int) -> list[CacheEntry]:
        model = self._entry_model
        with self._session() as session:
            rows = session.exec(
                select(model)
                .where(
                    model.storage_id == self._storage_id,
                    model.parent_id == file_id,
                )
                .order_by(model.name)
            ).all()
            return [self._to_entry(r) for r in rows]

    def get_all(self) -> list[int]:
        """Ids of every entry on this storage, ascending."""
        model = self._entry_model
        with self._session() as session:
            ids = session.exec(
                select(model.id).where(model.storage_id == self._storage_id).order_by(model.id)
            ).all()
            return [i for i in ids if i is not None]

    def get_incomplete(self) -> str | None:
        """Path of the unscanned folder with the highest id.

        The highest id is most likely the folder a background scan
        stopped in.
        """
        model = self._entry_model
        with self._session() as session:
            return session.exec(
                select(model.path)
                .where(
                    model.storage_id == self._storage_id,
                    model.mimetype == FOLDER_MIMETYPE,
                    model.size == -1,
                )
                .order_by(model.id.desc())  # type: ignore[union-attr]
                .limit(1)
            ).first()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def insert(self, path: str, data: Mapping[str, Any]) -> int | None:
        """Insert a new entry and return its id.

        If ``size``, ``mtime`` or ``mimetype`` are still unknown, the data
        is buffered as a partial entry and ``None`` is returned; a later
        insert for the same path merges with it.
        """
        path = normalize_path(path)
        values = {**self._partial.pop(path, {}), **self._normalize_data(data)}
        missing = [f for f in REQUIRED_FIELDS if f not in values]
        if missing:
            self._partial[path] = values
            logger.debug("Buffered partial cache entry %r (missing %s)", path, missing)
            return None
        values.setdefault("storage_mtime", values["mtime"])

        with self._session() as session:
            parent_id = None
            if path != "":
                parent = self._select_row(session, parent_path(path))
                parent_id = parent.id if parent is not None else None
            row = self._entry_model(
                storage_id=self._storage_id,
                path=path,
                name=base_name(path),
                parent_id=parent_id,
                **values,
            )
            session.add(row)
            try:
                session.flush()
            except IntegrityError as exc:
                logger.warning("Rejected cache insert for %r on storage %d", path, self._storage_id)
                raise DuplicateEntryError(f"Entry already exists: {path!r}") from exc
            return row.id

    def put(self, path: str, data: Mapping[str, Any]) -> int | None:
        """Update the entry at *path* if cached, insert it otherwise."""
        file_id = self.get_id(path)
        if file_id is not None:
            self.update(file_id, data)
            return file_id
        return self.insert(path, data)

    def update(self, file_id: int, data: Mapping[str, Any]) -> None:
        values = self._normalize_data(data)
        if not values:
            return
        model = self._entry_model
        with self._session() as session:
            session.execute(
                sa_update(model)
                .where(
                    model.storage_id == self._storage_id,
                    model.id == file_id,
                )
                .values(**values)
            )

    def remove(self, path: str) -> None:
        """Remove the entry at *path* and everything below it."""
        path = normalize_path(path)
        for pending in [p for p in self._partial if p == path or p.startswith(path + "/")]:
            del self._partial[pending]
        with self._session() as session:
            session.execute(
                sa_delete(self._entry_model).where(self._subtree_clause(self._storage_id, path))
            )

    def clear(self) -> None:
        """Remove every entry of this storage."""
        self._partial.clear()
        with self._session() as session:
            session.execute(
                sa_delete(self._entry_model).where(
                    self._entry_model.storage_id == self._storage_id,
                )
            )

    def move(self, source: str, target: str) -> None:
        self.move_from_cache(self, source, target)

    def move_from_cache(self, source_cache: FileCache, source_path: str, target_path: str) -> None:
        """Move a subtree from *source_cache* to *target_path* in this cache.

        When *source_cache* (or the cache behind its jails) stores its rows
        in this cache's table, the rows are rewritten in place.  Any other
        cache is copied entry by entry and then removed from the source.
        """
        target_path = normalize_path(target_path)
        if isinstance(source_cache, SupportsMoveInfo) and self._shares_table(source_cache):
            storage_id, internal_path = source_cache.get_move_info(source_path)
            self._move_rows(storage_id, normalize_path(internal_path), target_path)
            return

        entry = source_cache.get(source_path)
        if entry is None:
            raise EntryNotFoundError(f"Source not in cache: {source_path!r}")
        self._copy_subtree(source_cache, entry, target_path)
        source_cache.remove(source_path)

    def _shares_table(self, source_cache: FileCache) -> bool:
        """True if *source_cache*, seen through any jails, lives in this cache's table."""
        while isinstance(source_cache, CacheJail):
            source_cache = source_cache.cache
        return (
            isinstance(source_cache, DatabaseCache)
            and source_cache.entry_model is self._entry_model
            and source_cache.schema == self.schema
            and source_cache.engine.pool is self._engine.pool
        )

    def _move_rows(self, storage_id: int, source_path: str, target_path: str) -> None:
        if source_path == "" or target_path == "":
            raise ValueError("Cannot move to or from the storage root")
        if storage_id == self._storage_id and (
            target_path == source_path or target_path.startswith(source_path + "/")
        ):
            raise ValueError(f"Cannot move {source_path!r} into itself: {target_path!r}")
        model = self._entry_model
        with self._session() as session:
            root = session.exec(
                select(model).where(
                    model.storage_id == storage_id,
                    model.path == source_path,
                )
            ).first()
            if root is None:
                raise EntryNotFoundError(f"Source not in cache: {source_path!r}")
            if self._select_row(session, target_path) is not None:
                raise DuplicateEntryError(f"Entry already exists: {target_path!r}")

            target_parent = self._select_row(session, parent_path(target_path))
            descendants = session.exec(
                select(model).where(
                    model.storage_id == storage_id,
                    model.path.startswith(source_path + "/", autoescape=True),  # type: ignore[union-attr]
                )
            ).all()

            root.path = target_path
            root.name = base_name(target_path)
            root.parent_id = target_parent.id if target_parent is not None else None
            root.storage_id = self._storage_id
            session.add(root)
            for row in descendants:
                row.path = target_path + row.path[len(source_path) :]
                row.storage_id = self._storage_id
                session.add(row)
            try:
                session.flush()
            except IntegrityError as exc:
                raise DuplicateEntryError(f"Move target collides: {target_path!r}") from exc

        logger.debug(
            "Moved %d cache entries %d:%r -> %d:%r",
            len(descendants) + 1,
            storage_id,
            source_path,
            self._storage_id,
            target_path,
        )

    def _copy_subtree(self, source_cache: FileCache, entry: CacheEntry, target_path: str) -> None:
        self.put(
            target_path,
            {
                "size": entry.size,
                "mtime": entry.mtime,
                "storage_mtime": entry.storage_mtime,
                "mimetype": entry.mimetype,
                "etag": entry.etag,
                "permissions": entry.permissions,
                "checksum": entry.checksum,
            },
        )
        if entry.is_directory:
            for child in source_cache.get_folder_contents_by_id(entry.id):
                self._copy_subtree(source_cache, child, posixpath.join(target_path, child.name))

    def get_move_info(self, path: str) -> MoveInfo:
        return MoveInfo(self._storage_id, normalize_path(path))

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(self, pattern: str) -> list[CacheEntry]:
        """Case-insensitive name search; ``*`` and ``?`` are wildcards."""
        model = self._entry_model
        with self._session() as session:
            rows = session.exec(
                select(model)
                .where(
                    model.storage_id == self._storage_id,
                    model.name.ilike(glob_to_sql_like(pattern), escape="\\"),  # type: ignore[union-attr]
                )
                .order_by(model.id)
            ).all()
            return [self._to_entry(r) for r in rows]

    def search_by_mime(self, mimetype: str) -> list[CacheEntry]:
        """Search by full mimetype (``image/png``) or by mime part (``image``)."""
        model = self._entry_model
        column = model.mimetype if "/" in mimetype else model.mime_part
        with self._session() as session:
            rows = session.exec(
                select(model)
                .where(
                    model.storage_id == self._storage_id,
                    column == mimetype,
                )
                .order_by(model.id)
            ).all()
            return [self._to_entry(r) for r in rows]

    def search_query(self, query: SearchQuery) -> list[CacheEntry]:
        model = self._entry_model
        stmt = select(model).where(model.storage_id == self._storage_id)
        if query.operation is not None:
            stmt = stmt.where(compile_sql(query.operation, model))
        stmt = stmt.order_by(*compile_order(query.order, model))
        if query.offset:
            stmt = stmt.offset(query.offset)
        if query.limit is not None:
            stmt = stmt.limit(query.limit)
        with self._session() as session:
            return [self._to_entry(r) for r in session.exec(stmt).all()]

    # ------------------------------------------------------------------
    # Capability: SupportsFolderSize
    # ------------------------------------------------------------------

    def calculate_folder_size(self, path: str, entry: CacheEntry | None = None) -> int:
        """Sum the sizes of a folder's direct children and store the result.

        The size is ``-1`` while any child is still unscanned.  Files and
        uncached paths report ``0``.
        """
        if entry is None:
            entry = self.get(path)
        if entry is None or not entry.is_directory:
            return 0

        model = self._entry_model
        with self._session() as session:
            sizes = session.exec(
                select(model.size).where(
                    model.storage_id == self._storage_id,
                    model.parent_id == entry.id,
                )
            ).all()
            total = -1 if any(s < 0 for s in sizes) else sum(sizes)
            if total != entry.size:
                session.execute(sa_update(model).where(model.id == entry.id).values(size=total))
        return total

    def correct_folder_size(
        self,
        path: str,
        data: CacheEntry | None = None,
        is_background_scan: bool = False,
    ) -> None:
        """Recalculate the folder at *path* and every parent up to the root.

        During a background scan, propagation stops at a parent that is
        itself unscanned or still has unscanned children.
        """
        path = normalize_path(path)
        self.calculate_folder_size(path, data)
        while path != "":
            path = parent_path(path)
            if not is_background_scan:
                self.calculate_folder_size(path)
                continue
            parent = self.get(path)
            if parent is None or parent.size == -1 or self._incomplete_children_count(parent.id):
                return
            self.calculate_folder_size(path, parent)

    def _incomplete_children_count(self, file_id: int) -> int:
        model = self._entry_model
        with self._session() as session:
            ids = session.exec(
                select(model.id).where(
                    model.storage_id == self._storage_id,
                    model.parent_id == file_id,
                    model.size == -1,
                )
            ).all()
            return len(ids)
