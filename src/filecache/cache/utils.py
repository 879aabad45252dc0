"""Path utilities for storage-internal cache paths."""

from __future__ import annotations

import posixpath
import re
import unicodedata

# =============================================================================
# Path Utilities
# =============================================================================


def normalize_path(path: str) -> str:
    """Normalize a storage-internal cache path.

    - Applies NFC unicode normalization
    - Removes double slashes
    - Removes leading and trailing slashes (the root is ``""``)

    Examples:
        normalize_path("/foo//bar.txt") -> "foo/bar.txt"
        normalize_path("foo/") -> "foo"
        normalize_path("/") -> ""
    """
    path = unicodedata.normalize("NFC", path)
    path = re.sub(r"/{2,}", "/", path)
    return path.strip("/")


def parent_path(path: str) -> str:
    """Return the parent of *path*, ``""`` for top-level entries.

    Examples:
        parent_path("foo/bar.txt") -> "foo"
        parent_path("foo.txt") -> ""
    """
    parent = posixpath.dirname(normalize_path(path))
    return "" if parent in (".", "/") else parent


def base_name(path: str) -> str:
    """Return the last segment of *path*, ``""`` for the root."""
    return posixpath.basename(normalize_path(path))


def mime_part_of(mimetype: str) -> str:
    """Return the major part of a mimetype (``"image/jpeg"`` -> ``"image"``)."""
    return mimetype.split("/", 1)[0]


def glob_to_sql_like(pattern: str) -> str:
    """Convert a ``*``/``?`` glob pattern to a SQL LIKE pattern.

    Literal ``%``, ``_`` and ``\\`` are escaped with ``\\``; use
    ``escape="\\\\"`` on the LIKE clause.
    """
    out: list[str] = []
    for ch in pattern:
        if ch in ("\\", "%", "_"):
            out.append("\\" + ch)
        elif ch == "*":
            out.append("%")
        elif ch == "?":
            out.append("_")
        else:
            out.append(ch)
    return "".join(out)
