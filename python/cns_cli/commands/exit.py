"""Exit command."""

from __future__ import annotations

from typing import List

from cnskit.errors import ArgumentError, CommandError

from .base import Command
from ..context import ConsoleContext


class ExitCommand(Command):
    def __init__(self) -> None:
        super().__init__("exit", "Quit the interpreter", aliases=("quit", "q", "e"), usage="exit [code]", max_args=1)

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        if ctx.remote:
            raise CommandError("exit is not available remotely")
        try:
            code = int(argv[0]) if argv else 0
        except ValueError:
            raise ArgumentError(argv[0]) from None
        ctx.session.disconnect()
        raise SystemExit(code)
