"""Render rebuilt trees (or single values) as text, trees, tables or documents."""

from __future__ import annotations

import json
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from tabulate import tabulate

from .errors import FormatError
from .tree import TreeNode, tree_to_document

FORMATS: Tuple[str, ...] = ("text", "tree", "table", "json", "xml")

DEFAULT_INDENT = 2
DEFAULT_WIDTH = 80
MAX_INDENT = 8
ELLIPSIS = "…"
XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>'

Renderable = Union[Sequence[TreeNode], str, None]


@dataclass
class RenderOptions:
    format: str = "tree"
    indent: int = DEFAULT_INDENT
    width: int = DEFAULT_WIDTH

    @property
    def indent_width(self) -> int:
        return min(max(int(self.indent), 0), MAX_INDENT)

    @property
    def columns(self) -> int:
        return max(int(self.width or DEFAULT_WIDTH), 1)


def sanitize(value: Optional[str]) -> str:
    if value is None:
        return ""
    return str(value).replace("\r", " ").replace("\n", " ").strip()


def render(
    data: Renderable,
    *,
    root: str = "data",
    options: Optional[RenderOptions] = None,
    fmt: Optional[str] = None,
) -> str:
    """Format *data* (a node list or a scalar) in the requested format.

    An empty node list renders as an empty string, with no header or braces.
    """
    options = options or RenderOptions()
    name = str(fmt or options.format or "").lower()
    handlers = _FORMATTERS.get(name)
    if handlers is None:
        raise FormatError(name or "(none)")
    if data is None:
        return ""
    render_nodes, render_scalar = handlers
    if isinstance(data, str):
        return render_scalar(root, data, options)
    nodes = list(data)
    if not nodes:
        return ""
    return render_nodes(root, nodes, options)


# ----------------------------------------------------------------------
# text
# ----------------------------------------------------------------------
def _text_nodes(root: str, nodes: List[TreeNode], options: RenderOptions) -> str:
    lines: List[str] = []
    _text_lines(nodes, 0, options.indent_width, lines)
    return "\n".join(lines)


def _text_lines(nodes: Sequence[TreeNode], level: int, pad: int, lines: List[str]) -> None:
    lead = " " * (pad * level)
    for node in nodes:
        if node.has_value:
            lines.append(f"{lead}{node.name}={sanitize(node.value)}")
        if node.children:
            lines.append(f"{lead}{node.name}:")
            _text_lines(node.children, level + 1, pad, lines)


def _text_scalar(root: str, value: str, options: RenderOptions) -> str:
    return sanitize(value)


# ----------------------------------------------------------------------
# tree
# ----------------------------------------------------------------------
def _tree_nodes(root: str, nodes: List[TreeNode], options: RenderOptions) -> str:
    lines = [root]
    _tree_lines(nodes, [], options, lines)
    return "\n".join(lines)


def _tree_lines(nodes: Sequence[TreeNode], ancestors: List[bool], options: RenderOptions, lines: List[str]) -> None:
    pad = options.indent_width
    gap = " " * pad + " "
    for index, node in enumerate(nodes):
        last = index == len(nodes) - 1
        label = "".join((" " if parent_last else "│") + gap for parent_last in ancestors)
        label += ("└" if last else "├") + "─" * pad + " " + node.name
        lines.append(justify(label, sanitize(node.value), options.columns))
        if node.children:
            _tree_lines(node.children, ancestors + [last], options, lines)


def justify(label: str, value: str, width: int) -> str:
    """Right-justify *value* against *width*, truncating with an ellipsis."""
    if not value:
        return label
    name = label + "    "
    span = width - len(name) - len(value)
    if span >= 0:
        return name + " " * span + value
    return (name + value)[: max(width - 1, 0)] + ELLIPSIS


def _tree_scalar(root: str, value: str, options: RenderOptions) -> str:
    return sanitize(value)


# ----------------------------------------------------------------------
# table
# ----------------------------------------------------------------------
def _table_nodes(root: str, nodes: List[TreeNode], options: RenderOptions) -> str:
    return _table([(node.name, _summary(node)) for node in nodes], options)


def _summary(node: TreeNode) -> str:
    value = sanitize(node.value)
    if not node.children:
        return value
    names = ", ".join(child.name for child in node.children)
    return f"{value} ({names})" if value else names


def _table(rows: List[Tuple[str, str]], options: RenderOptions) -> str:
    col1 = max(len(name) for name, _ in rows)
    col2 = max(max(len(value) for _, value in rows), 1)
    col2 = min(col2, options.columns - (col1 + 7))
    if col1 < 1 or col2 < 1:
        return ""
    return tabulate(rows, tablefmt="grid", maxcolwidths=[None, col2], disable_numparse=True)


def _table_scalar(root: str, value: str, options: RenderOptions) -> str:
    return _table([(root, sanitize(value))], options)


# ----------------------------------------------------------------------
# json document
# ----------------------------------------------------------------------
def _json_nodes(root: str, nodes: List[TreeNode], options: RenderOptions) -> str:
    return _json_dump({root: tree_to_document(nodes)}, options)


def _json_scalar(root: str, value: str, options: RenderOptions) -> str:
    return _json_dump({root: value}, options)


def _json_dump(data: Dict[str, object], options: RenderOptions) -> str:
    indent = options.indent_width
    return json.dumps(data, indent=indent or None, ensure_ascii=False)


# ----------------------------------------------------------------------
# xml (stub)
# ----------------------------------------------------------------------
_TAG_INVALID = re.compile(r"[^\w.-]")


def _xml_tag(name: str) -> str:
    tag = _TAG_INVALID.sub("_", name) or "_"
    if not (tag[0].isalpha() or tag[0] == "_"):
        tag = "_" + tag
    return tag


def _xml_nodes(root: str, nodes: List[TreeNode], options: RenderOptions) -> str:
    element = ET.Element(_xml_tag(root))
    _xml_children(element, nodes)
    return _xml_text(element, options)


def _xml_children(parent: ET.Element, nodes: Sequence[TreeNode]) -> None:
    for node in nodes:
        child = ET.SubElement(parent, _xml_tag(node.name))
        if node.has_value:
            child.text = node.value
        _xml_children(child, node.children)


def _xml_scalar(root: str, value: str, options: RenderOptions) -> str:
    element = ET.Element(_xml_tag(root))
    element.text = value
    return _xml_text(element, options)


def _xml_text(element: ET.Element, options: RenderOptions) -> str:
    pad = options.indent_width
    if pad:
        ET.indent(element, space=" " * pad)
    body = ET.tostring(element, encoding="unicode")
    return XML_HEADER + ("\n" if pad else "") + body


_FORMATTERS: Dict[str, Tuple[Callable[..., str], Callable[..., str]]] = {
    "text": (_text_nodes, _text_scalar),
    "tree": (_tree_nodes, _tree_scalar),
    "table": (_table_nodes, _table_scalar),
    "json": (_json_nodes, _json_scalar),
    "xml": (_xml_nodes, _xml_scalar),
}


def render_columns(names: Sequence[str], width: int = DEFAULT_WIDTH) -> str:
    """Lay out *names* in padded columns fitting *width* (used by ``ls``)."""
    if not names:
        return ""
    cell = max(len(name) for name in names) + 4
    per_row = max(width, 1) // cell
    if per_row == 0:
        return "\n".join(names)
    rows = []
    for start in range(0, len(names), per_row):
        rows.append("".join(name.ljust(cell) for name in names[start : start + per_row]).rstrip())
    return "\n".join(rows)


__all__ = [
    "FORMATS",
    "RenderOptions",
    "render",
    "render_columns",
    "justify",
    "sanitize",
]
