"""Get command: render a value, a subtree or a pattern query."""

from __future__ import annotations

from typing import List

from .base import Command
from ..context import ConsoleContext
from ..output import emit_rendered


class GetCommand(Command):
    def __init__(self) -> None:
        super().__init__("get", "Display a value, subtree or pattern", usage="get [path]", max_args=1)

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        data, label, _root = ctx.session.query(argv[0] if argv else None)
        emit_rendered(ctx, data, label)
        return 0
