"""Tests for cache/utils.py — path helpers and glob conversion."""

from __future__ import annotations

import pytest

from filecache.cache.utils import (
    base_name,
    glob_to_sql_like,
    mime_part_of,
    normalize_path,
    parent_path,
)


class TestNormalizePath:
    @pytest.mark.parametrize(
        ("input_path", "expected"),
        [
            pytest.param("", "", id="empty"),
            pytest.param("/", "", id="slash"),
            pytest.param("foo.txt", "foo.txt", id="plain"),
            pytest.param("/foo//bar.txt", "foo/bar.txt", id="double-slashes"),
            pytest.param("foo/", "foo", id="trailing-slash"),
            pytest.param("café", "café", id="nfc"),
        ],
    )
    def test_normalize(self, input_path: str, expected: str):
        assert normalize_path(input_path) == expected


class TestParentPath:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            pytest.param("foo/bar.txt", "foo", id="nested"),
            pytest.param("foo.txt", "", id="top-level"),
            pytest.param("a/b/c", "a/b", id="deep"),
            pytest.param("", "", id="root"),
        ],
    )
    def test_parent(self, path: str, expected: str):
        assert parent_path(path) == expected


def test_base_name():
    assert base_name("foo/bar.txt") == "bar.txt"
    assert base_name("") == ""


def test_mime_part_of():
    assert mime_part_of("image/jpeg") == "image"
    assert mime_part_of("httpd/unix-directory") == "httpd"


class TestGlobToSqlLike:
    @pytest.mark.parametrize(
        ("pattern", "expected"),
        [
            pytest.param("*.jpg", "%.jpg", id="star"),
            pytest.param("?.txt", "_.txt", id="question"),
            pytest.param("a_b%", "a\\_b\\%", id="escapes-like-wildcards"),
            pytest.param("back\\slash", "back\\\\slash", id="escapes-backslash"),
            pytest.param("plain", "plain", id="no-wildcards"),
        ],
    )
    def test_convert(self, pattern: str, expected: str):
        assert glob_to_sql_like(pattern) == expected
