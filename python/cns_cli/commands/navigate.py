"""Namespace navigation: pwd, cd and ls."""

from __future__ import annotations

from typing import List

from cnskit.errors import ArgumentError
from cnskit.paths import child_names, last_segment, normalise_key
from cnskit.render import render_columns

from .base import Command
from ..context import ConsoleContext
from ..output import emit


def _exists(entries, key: str) -> bool:
    return not key or key in entries or bool(child_names(entries, key))


class PwdCommand(Command):
    def __init__(self) -> None:
        super().__init__("pwd", "Print the current namespace path")

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        emit(ctx, ctx.session.path)
        return 0


class CdCommand(Command):
    def __init__(self) -> None:
        super().__init__("cd", "Change the current namespace path", usage="cd [path]", max_args=1)

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        session = ctx.session
        target = session.resolve_path(argv[0] if argv else "~")
        if session.connected and not _exists(session.entries(), normalise_key(target)):
            raise ArgumentError(f"no such path '{target}'")
        session.path = target
        return 0


class LsCommand(Command):
    def __init__(self) -> None:
        super().__init__("ls", "List child names", aliases=("list",), usage="ls [path]", max_args=1)

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        session = ctx.session
        target = session.resolve_path(argv[0] if argv else None)
        key = normalise_key(target)
        entries = session.entries()
        session.stats.reads += 1
        if not _exists(entries, key):
            raise ArgumentError(f"no such path '{target}'")
        names = child_names(entries, key)
        if not names:
            names = [last_segment(key)]
        emit(ctx, render_columns(names, session.render_options().columns))
        return 0
