"""Rebuild nested trees from flat slash-delimited entries."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import ArgumentError, FormatError
from .paths import (
    has_wildcard,
    is_under,
    join_path,
    last_segment,
    normalise_key,
    parent_path,
    pattern_root,
    select,
    split_path,
)

ROOT_LABEL = "/"

# Key holding a node's own value when the node also has children.
OWN_VALUE_KEY = ""


@dataclass(frozen=True)
class TreeNode:
    """One path segment of a rebuilt tree.

    ``value`` is ``None`` for pure branches.  A node may carry a value and
    children at the same time (``.../name`` next to deeper keys under the
    same id is normal in the namespace).
    """

    name: str
    value: Optional[str] = None
    children: Tuple["TreeNode", ...] = field(default_factory=tuple)

    @property
    def has_value(self) -> bool:
        return self.value is not None

    @property
    def is_leaf(self) -> bool:
        return not self.children


def build_tree(entries: Mapping[str, str], root_prefix: str = "") -> List[TreeNode]:
    """Group *entries* below *root_prefix* into nodes, one level per segment."""
    depth = len(split_path(root_prefix))
    draft: Dict[str, Any] = {}
    for path in sorted(entries):
        if not is_under(path, root_prefix):
            continue
        level = draft
        segments = split_path(path)[depth:]
        for index, segment in enumerate(segments):
            slot = level.setdefault(segment, {"value": None, "children": {}})
            if index == len(segments) - 1:
                slot["value"] = str(entries[path])
            level = slot["children"]
    return _freeze(draft)


def _freeze(draft: Dict[str, Any]) -> List[TreeNode]:
    return [
        TreeNode(name=name, value=draft[name]["value"], children=tuple(_freeze(draft[name]["children"])))
        for name in sorted(draft)
    ]


def tree_to_document(nodes: List[TreeNode]) -> Dict[str, Any]:
    """Nested mapping form of *nodes* (the body of the JSON document)."""
    body: Dict[str, Any] = {}
    for node in nodes:
        if node.is_leaf:
            body[node.name] = node.value if node.value is not None else ""
            continue
        inner: Dict[str, Any] = {}
        if node.has_value:
            inner[OWN_VALUE_KEY] = node.value
        inner.update(tree_to_document(list(node.children)))
        body[node.name] = inner
    return body


def flatten_document(body: Any, prefix: str = "") -> Dict[str, str]:
    entries: Dict[str, str] = {}
    if isinstance(body, Mapping):
        for name, value in body.items():
            if name == OWN_VALUE_KEY:
                entries[prefix] = _scalar(value)
                continue
            entries.update(flatten_document(value, join_path(split_path(prefix) + [str(name)])))
        return entries
    entries[prefix] = _scalar(body)
    return entries


def document_to_entries(text: str, root_prefix: str = "") -> Dict[str, str]:
    """Parse a rendered JSON document back into flat entries below *root_prefix*."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise FormatError(f"not a json document: {exc}") from exc
    if not isinstance(data, dict) or len(data) != 1:
        raise FormatError("document must have exactly one root key")
    (body,) = data.values()
    entries = flatten_document(body, root_prefix)
    return {path: entries[path] for path in sorted(entries)}


def view_of(entries: Mapping[str, str], path: str) -> Tuple[Any, str, str]:
    """Shape the entries addressed by *path* for rendering.

    Returns ``(data, label, root_prefix)`` where *data* is a node list or a
    scalar string.  A wildcard path is a pattern query rooted at its literal
    prefix; a plain path renders its value, its children, or both.
    """
    key = normalise_key(path)
    if has_wildcard(key):
        root = pattern_root(key)
        return build_tree(select(entries, key), root), last_segment(root) or ROOT_LABEL, root
    if not key:
        return build_tree(entries), ROOT_LABEL, ""
    own = entries.get(key)
    below = {k: v for k, v in entries.items() if is_under(k, key)}
    if own is None and not below:
        raise ArgumentError(f"no such path '/{key}'")
    if not below:
        return str(own), last_segment(key), parent_path(key)
    if own is None:
        return build_tree(below, key), last_segment(key), key
    parent = parent_path(key)
    below[key] = own
    return build_tree(below, parent), last_segment(parent) or ROOT_LABEL, parent


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if value is None else str(value)


__all__ = [
    "TreeNode",
    "OWN_VALUE_KEY",
    "build_tree",
    "tree_to_document",
    "flatten_document",
    "document_to_entries",
    "view_of",
]
