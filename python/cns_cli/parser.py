"""Statement parsing helpers for the CNS console."""

from __future__ import annotations

import re
import shlex
from typing import Callable, Iterator, List, Tuple

from cnskit.errors import ArgumentError

COMMENT = "//"
SEPARATOR = ";"
QUOTE = '"'

_VARIABLE = re.compile(r"\$(?:\{([^}]+)\}|([A-Za-z0-9_]+))")
_NEEDS_QUOTES = re.compile(r"[\s;]|//")


def _scan(text: str) -> Iterator[Tuple[int, str, bool]]:
    """Yield ``(index, char, quoted)`` for every character of *text*."""
    quoted = False
    for index, char in enumerate(text):
        if char == QUOTE:
            quoted = not quoted
            yield index, char, True
            continue
        yield index, char, quoted


def strip_comment(line: str) -> str:
    """Drop a ``//`` comment that starts outside double quotes."""
    for index, char, quoted in _scan(line):
        if not quoted and line.startswith(COMMENT, index):
            return line[:index].strip()
    return line.strip()


def split_statements(line: str) -> List[str]:
    """Split on ``;`` outside double quotes; empty statements are dropped."""
    statements: List[str] = []
    start = 0
    for index, char, quoted in _scan(line):
        if char == SEPARATOR and not quoted:
            statements.append(line[start:index])
            start = index + 1
    statements.append(line[start:])
    return [statement.strip() for statement in statements if statement.strip()]


def tokenize(statement: str) -> List[str]:
    """Whitespace-separated tokens; double quotes group (and are removed)."""
    lexer = shlex.shlex(statement, posix=True)
    lexer.whitespace_split = True
    lexer.quotes = QUOTE
    lexer.escape = ""
    lexer.commenters = ""
    try:
        return list(lexer)
    except ValueError as exc:
        raise ArgumentError(f"unterminated quote in '{statement}'") from exc


def parse_line(line: str) -> List[List[str]]:
    """Tokenized statements of *line* (variables left unexpanded)."""
    return [tokenize(statement) for statement in split_statements(strip_comment(line.strip()))]


def expand_variables(token: str, lookup: Callable[[str], str]) -> str:
    """Replace ``$name`` and ``${path}`` references using *lookup*."""
    return _VARIABLE.sub(lambda match: lookup(match.group(1) or match.group(2)), token)


def quote_token(token: str) -> str:
    if token == "" or _NEEDS_QUOTES.search(token):
        return f"{QUOTE}{token}{QUOTE}"
    return token


def join_tokens(tokens: List[str]) -> str:
    return " ".join(quote_token(token) for token in tokens)


__all__ = [
    "strip_comment",
    "split_statements",
    "tokenize",
    "parse_line",
    "expand_variables",
    "quote_token",
    "join_tokens",
]
