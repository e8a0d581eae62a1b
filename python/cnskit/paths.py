"""Slash-path helpers and the wildcard pattern matcher.

Keys in the store are flat strings such as ``cns/network/nodes/n1/name``.
A pattern has the same shape but any segment may be the wildcard ``*``,
which matches exactly one non-empty segment.  There is no recursive or
partial-segment wildcard: ``a/*/name`` never matches ``a/b/c/name`` and
``n*`` is a literal segment.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Sequence

SEPARATOR = "/"
WILDCARD = "*"


def split_path(path: str) -> List[str]:
    """Split *path* into segments, tolerating one leading separator."""
    text = str(path or "")
    if text.startswith(SEPARATOR):
        text = text[1:]
    if not text:
        return []
    return text.split(SEPARATOR)


def join_path(segments: Sequence[str]) -> str:
    return SEPARATOR.join(segments)


def normalise_key(path: str) -> str:
    """Return the canonical store key for *path* (no leading/trailing separator)."""
    return join_path(split_path(str(path or "").rstrip(SEPARATOR)))


def is_valid_key(path: str) -> bool:
    segments = split_path(path)
    if not segments:
        return False
    return all(segment and segment != WILDCARD for segment in segments)


def has_wildcard(path: str) -> bool:
    return WILDCARD in split_path(path)


def parent_path(path: str) -> str:
    return join_path(split_path(path)[:-1])


def last_segment(path: str) -> str:
    segments = split_path(path)
    return segments[-1] if segments else ""


def is_under(path: str, prefix: str) -> bool:
    """True when *path* lies strictly below *prefix*."""
    if not prefix:
        return bool(path)
    return path.startswith(prefix + SEPARATOR)


def matches(path: str, pattern: str) -> bool:
    """Segment-wise wildcard match; arities must be equal."""
    candidate = split_path(path)
    template = split_path(pattern)
    if len(candidate) != len(template):
        return False
    for segment, expected in zip(candidate, template):
        if expected == WILDCARD:
            if not segment:
                return False
            continue
        if segment != expected:
            return False
    return True


def select(source: Any, pattern: str) -> Dict[str, str]:
    """Return the entries of *source* matching *pattern*, ordered by path.

    *source* is either a plain mapping or an object with a ``snapshot()``
    method (such as :class:`cnskit.mirror.NamespaceMirror`).
    """
    entries: Mapping[str, str]
    if isinstance(source, Mapping):
        entries = source
    else:
        entries = source.snapshot()
    found = {path: value for path, value in entries.items() if matches(path, pattern)}
    return {path: found[path] for path in sorted(found)}


def pattern_root(pattern: str) -> str:
    """Literal prefix of *pattern* used as the root of a rendered selection.

    Stops at the first wildcard and always leaves at least one segment below
    the root so that a literal pattern renders as a named leaf.
    """
    segments = split_path(pattern)
    literal: List[str] = []
    for segment in segments[:-1]:
        if segment == WILDCARD:
            break
        literal.append(segment)
    return join_path(literal)


def child_names(entries: Iterable[str], prefix: str) -> List[str]:
    """Unique next-level segment names found below *prefix*."""
    depth = len(split_path(prefix))
    names: Dict[str, None] = {}
    for path in entries:
        if not is_under(path, prefix):
            continue
        names[split_path(path)[depth]] = None
    return sorted(names)


__all__ = [
    "SEPARATOR",
    "WILDCARD",
    "split_path",
    "join_path",
    "normalise_key",
    "is_valid_key",
    "has_wildcard",
    "parent_path",
    "last_segment",
    "is_under",
    "matches",
    "select",
    "pattern_root",
    "child_names",
]
