"""Search query AST: filter expressions, ordering, pagination, SQL compiler."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_ as sa_and
from sqlalchemy import not_ as sa_not
from sqlalchemy import or_ as sa_or

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement

    from filecache.models.entries import FileCacheEntryBase

# ------------------------------------------------------------------
# Enums
# ------------------------------------------------------------------


class ComparisonOp(Enum):
    """Comparison operators for entry fields."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    LIKE = "like"
    IN = "in"


class LogicalOp(Enum):
    """Logical combinators for grouping filter expressions."""

    AND = "and"
    OR = "or"
    NOT = "not"


class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"


SEARCHABLE_FIELDS: frozenset[str] = frozenset(
    {
        "id",
        "path",
        "name",
        "mimetype",
        "mime_part",
        "size",
        "mtime",
        "storage_mtime",
        "etag",
        "permissions",
        "checksum",
        "parent_id",
    }
)

# ------------------------------------------------------------------
# AST nodes
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Comparison:
    """A single field comparison (e.g. ``size > 1024``).

    Attributes:
        field: Entry field name, one of ``SEARCHABLE_FIELDS``.
        op: Comparison operator.
        value: Value to compare against.  For ``IN``, a sequence.
            For ``LIKE``, a SQL LIKE pattern.
    """

    field: str
    op: ComparisonOp
    value: Any


@dataclass(frozen=True, slots=True)
class LogicalGroup:
    """A logical combination of filter expressions.

    ``NOT`` takes exactly one child expression.
    """

    op: LogicalOp
    expressions: tuple[FilterExpression, ...]


FilterExpression = Comparison | LogicalGroup


@dataclass(frozen=True, slots=True)
class SearchOrder:
    field: str
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True, slots=True)
class SearchQuery:
    """A structured cache search.

    Attributes:
        operation: Filter expression, or ``None`` to match every entry.
        limit: Maximum number of results, ``None`` for unbounded.
        offset: Number of matching results to skip.
        order: Sort keys, applied in sequence.  Empty means id ascending.
        user: Id of the user the search runs for.
    """

    operation: FilterExpression | None = None
    limit: int | None = None
    offset: int = 0
    order: tuple[SearchOrder, ...] = ()
    user: str | None = None


# ------------------------------------------------------------------
# Builder helpers
# ------------------------------------------------------------------


def eq(field: str, value: Any) -> Comparison:
    """``field == value``."""
    return Comparison(field=field, op=ComparisonOp.EQ, value=value)


def ne(field: str, value: Any) -> Comparison:
    """``field != value``."""
    return Comparison(field=field, op=ComparisonOp.NE, value=value)


def gt(field: str, value: Any) -> Comparison:
    """``field > value``."""
    return Comparison(field=field, op=ComparisonOp.GT, value=value)


def gte(field: str, value: Any) -> Comparison:
    """``field >= value``."""
    return Comparison(field=field, op=ComparisonOp.GTE, value=value)


def lt(field: str, value: Any) -> Comparison:
    """``field < value``."""
    return Comparison(field=field, op=ComparisonOp.LT, value=value)


def lte(field: str, value: Any) -> Comparison:
    """``field <= value``."""
    return Comparison(field=field, op=ComparisonOp.LTE, value=value)


def like(field: str, pattern: str) -> Comparison:
    """``field LIKE pattern``."""
    return Comparison(field=field, op=ComparisonOp.LIKE, value=pattern)


def in_(field: str, values: list[Any]) -> Comparison:
    """``field IN values``."""
    return Comparison(field=field, op=ComparisonOp.IN, value=tuple(values))


def and_(*exprs: FilterExpression) -> LogicalGroup:
    """Combine expressions with AND."""
    return LogicalGroup(op=LogicalOp.AND, expressions=exprs)


def or_(*exprs: FilterExpression) -> LogicalGroup:
    """Combine expressions with OR."""
    return LogicalGroup(op=LogicalOp.OR, expressions=exprs)


def not_(expr: FilterExpression) -> LogicalGroup:
    """Negate an expression."""
    return LogicalGroup(op=LogicalOp.NOT, expressions=(expr,))


# ------------------------------------------------------------------
# SQL compiler
# ------------------------------------------------------------------


def _column(model: type[FileCacheEntryBase], name: str) -> Any:
    if name not in SEARCHABLE_FIELDS:
        msg = f"Unknown search field: {name!r}"
        raise ValueError(msg)
    return getattr(model, name)


def compile_sql(expr: FilterExpression, model: type[FileCacheEntryBase]) -> ColumnElement[bool]:
    """Compile a ``FilterExpression`` to a SQLAlchemy WHERE clause on *model*.

    Examples::

        compile_sql(gt("size", 1024), FileCacheEntry)
        # filecache_entries.size > :size_1

        compile_sql(and_(eq("mime_part", "image"), lt("mtime", 100)), FileCacheEntry)
        # filecache_entries.mime_part = :mime_part_1 AND filecache_entries.mtime < :mtime_1
    """
    if isinstance(expr, Comparison):
        col = _column(model, expr.field)
        if expr.op == ComparisonOp.EQ:
            return col == expr.value
        if expr.op == ComparisonOp.NE:
            return col != expr.value
        if expr.op == ComparisonOp.GT:
            return col > expr.value
        if expr.op == ComparisonOp.GTE:
            return col >= expr.value
        if expr.op == ComparisonOp.LT:
            return col < expr.value
        if expr.op == ComparisonOp.LTE:
            return col <= expr.value
        if expr.op == ComparisonOp.LIKE:
            return col.like(expr.value)
        if expr.op == ComparisonOp.IN:
            return col.in_(list(expr.value))
        msg = f"Unsupported comparison operator: {expr.op!r}"
        raise ValueError(msg)

    children = [compile_sql(child, model) for child in expr.expressions]
    if expr.op == LogicalOp.NOT:
        if len(children) != 1:
            msg = f"NOT takes exactly one expression, got {len(children)}"
            raise ValueError(msg)
        return sa_not(children[0])
    if not children:
        msg = f"{expr.op.value.upper()} needs at least one expression"
        raise ValueError(msg)
    if expr.op == LogicalOp.AND:
        return sa_and(*children)
    return sa_or(*children)


def compile_order(order: tuple[SearchOrder, ...], model: type[FileCacheEntryBase]) -> list[Any]:
    """Compile sort keys to SQLAlchemy ORDER BY clauses; id ascending when empty."""
    if not order:
        return [model.id.asc()]  # type: ignore[union-attr]
    clauses = []
    for key in order:
        col = _column(model, key.field)
        clauses.append(col.desc() if key.direction == SortDirection.DESC else col.asc())
    return clauses
