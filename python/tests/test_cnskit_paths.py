"""Tests for the path helpers and wildcard matcher."""

from __future__ import annotations

import itertools

from cnskit.paths import (
    child_names,
    has_wildcard,
    is_valid_key,
    matches,
    normalise_key,
    parent_path,
    pattern_root,
    select,
    split_path,
)


def test_split_and_normalise_tolerate_leading_separator():
    assert split_path("/a/b") == ["a", "b"]
    assert split_path("") == []
    assert normalise_key("/a/b/") == "a/b"


def test_matches_requires_equal_arity():
    assert matches("a/b/name", "a/*/name")
    assert not matches("a/b/c/name", "a/*/name")
    assert not matches("a/name", "a/*/name")


def test_wildcard_is_whole_segment_only():
    assert not matches("a/node/name", "a/n*/name")
    assert matches("a/n*/name", "a/n*/name")


def test_matches_agrees_with_segment_rule():
    paths = ["a", "b", "a/b", "a/c", "b/b", "a/b/c", "x/b/c"]
    patterns = ["*", "a", "*/b", "a/*", "*/*", "*/b/*", "a/b/c", "*/*/*"]
    for path, pattern in itertools.product(paths, patterns):
        p, t = path.split("/"), pattern.split("/")
        expected = len(p) == len(t) and all(s == "*" or s == q for q, s in zip(p, t))
        assert matches(path, pattern) is expected, (path, pattern)


def test_select_orders_results_by_path():
    source = {"a/b/name": "X", "a/c/name": "Y", "a/a/name": "Z"}
    result = select(source, "a/*/name")
    assert list(result) == ["a/a/name", "a/b/name", "a/c/name"]
    assert result["a/a/name"] == "Z"


def test_select_accepts_snapshot_objects():
    class Source:
        def snapshot(self):
            return {"k/1": "one", "k/2": "two", "j/1": "other"}

    assert select(Source(), "k/*") == {"k/1": "one", "k/2": "two"}


def test_pattern_root_stops_at_first_wildcard():
    assert pattern_root("net/nodes/*/name") == "net/nodes"
    assert pattern_root("*/name") == ""
    assert pattern_root("a/b") == "a"


def test_helpers():
    assert has_wildcard("a/*/c")
    assert not has_wildcard("a/b*")
    assert not is_valid_key("a/*/c")
    assert not is_valid_key("a//c")
    assert is_valid_key("a/b")
    assert parent_path("a/b/c") == "a/b"
    assert child_names(["a/b/x", "a/b/y/z", "a/c", "ab/d"], "a/b") == ["x", "y"]
    assert child_names(["a/b", "c"], "") == ["a", "c"]
