"""Renderer output for each format."""

from __future__ import annotations

import json

import pytest

from cnskit.errors import FormatError
from cnskit.render import ELLIPSIS, XML_HEADER, RenderOptions, justify, render, render_columns
from cnskit.tree import build_tree

NODES = build_tree({"x/a": "1", "x/b/c": "2"}, "x")


def test_tree_scenario_glyphs_and_justification():
    text = render(NODES, root="x", options=RenderOptions(format="tree", width=80))
    lines = text.split("\n")
    assert lines[0] == "x"
    assert lines[1].startswith("├── a    ")
    assert lines[1].endswith("1")
    assert len(lines[1]) == 80
    assert lines[2] == "└── b"
    assert lines[3].startswith("    └── c    ")
    assert lines[3].endswith("2")
    assert len(lines) == 4


def test_tree_continuation_uses_vertical_bar_for_open_ancestors():
    nodes = build_tree({"r/a/x": "1", "r/b": "2"}, "r")
    lines = render(nodes, root="r", options=RenderOptions(format="tree", width=20)).split("\n")
    assert lines[1] == "├── a"
    assert lines[2].startswith("│   └── x")
    assert lines[3].startswith("└── b")


def test_tree_glyph_width_follows_indent():
    lines = render(NODES, root="x", options=RenderOptions(format="tree", indent=4, width=40)).split("\n")
    assert lines[2] == "└──── b"
    assert lines[3].startswith("      └──── c")


def test_justify_truncates_with_ellipsis():
    assert justify("├── a", "", 10) == "├── a"
    assert justify("├── a", "1", 12) == "├── a      1"
    line = justify("├── a", "abcdefghij", 12)
    assert len(line) == 12
    assert line.endswith(ELLIPSIS)
    assert line == "├── a    ab" + ELLIPSIS


def test_text_format_nests_branches():
    text = render(NODES, root="x", fmt="text")
    assert text == "a=1\nb:\n  c=2"


def test_text_format_shows_dual_nodes_both_ways():
    nodes = build_tree({"n/id": "v", "n/id/name": "N"}, "n")
    assert render(nodes, root="n", fmt="text") == "id=v\nid:\n  name=N"


def test_table_summarises_children():
    text = render(NODES, root="x", fmt="table")
    assert "| a | 1 |" in text
    assert "| b | c |" in text
    assert text.startswith("+")


def test_table_wraps_long_values_to_width():
    nodes = build_tree({"t/key": "word " * 30}, "t")
    text = render(nodes, root="t", options=RenderOptions(format="table", width=40))
    assert all(len(line) <= 40 for line in text.split("\n"))


def test_json_document_wraps_under_root():
    text = render(NODES, root="x", options=RenderOptions(format="json", indent=2))
    assert json.loads(text) == {"x": {"a": "1", "b": {"c": "2"}}}
    assert '\n  "x"' in text


def test_indent_is_clamped():
    assert RenderOptions(indent=20).indent_width == 8
    assert RenderOptions(indent=-3).indent_width == 0


def test_xml_stub():
    text = render(NODES, root="x", fmt="xml")
    assert text.startswith(XML_HEADER)
    assert "<a>1</a>" in text
    assert "<c>2</c>" in text


def test_empty_result_renders_nothing():
    for fmt in ("text", "tree", "table", "json", "xml"):
        assert render([], root="x", fmt=fmt) == ""


def test_scalar_values():
    assert render("  hello\nworld ", root="v", fmt="tree") == "hello world"
    assert json.loads(render("1", root="v", fmt="json")) == {"v": "1"}


def test_unknown_format_raises():
    with pytest.raises(FormatError):
        render(NODES, root="x", fmt="yaml")


def test_render_columns():
    assert render_columns(["a", "bb", "ccc"], 14) == "a      bb\nccc"
    assert render_columns([], 80) == ""
