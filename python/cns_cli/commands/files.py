"""History and script commands: history, save and load."""

from __future__ import annotations

from typing import List

from cnskit.errors import ArgumentError

from .base import Command
from ..context import ConsoleContext
from ..output import emit
from ..script import write_script


class HistoryCommand(Command):
    def __init__(self) -> None:
        super().__init__("history", "Display or clear the command history", usage="history [clear]", max_args=1)

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        if argv:
            if argv[0].lower() != "clear":
                raise ArgumentError(argv[0])
            ctx.history.clear()
            return 0
        for index, entry in ctx.history.numbered():
            emit(ctx, f"{index:>5}  {entry}")
        return 0


class SaveCommand(Command):
    def __init__(self) -> None:
        super().__init__("save", "Save history to a script file", usage="save file", max_args=1)

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        self.require(argv, 1, "file")
        write_script(argv[0], ctx.history.snapshot())
        return 0


class LoadCommand(Command):
    def __init__(self) -> None:
        super().__init__("load", "Load and execute a script file", usage="load file", max_args=1)

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        self.require(argv, 1, "file")
        if ctx.interpreter is None:
            return 1
        ctx.interpreter.run_script(argv[0])
        return 0
