"""Console utilities: cls, cat and echo."""

from __future__ import annotations

from typing import List

from .base import Command
from ..context import ConsoleContext
from ..output import clear_screen, emit
from ..script import read_text


class ClsCommand(Command):
    def __init__(self) -> None:
        super().__init__("cls", "Clear the screen")

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        clear_screen(ctx)
        return 0


class CatCommand(Command):
    def __init__(self) -> None:
        super().__init__("cat", "Write a file to the output", usage="cat file", max_args=1)

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        self.require(argv, 1, "file")
        emit(ctx, read_text(argv[0]).rstrip("\n"))
        return 0


class EchoCommand(Command):
    def __init__(self) -> None:
        super().__init__("echo", "Write to the output (-n: no newline)", usage="echo [-n] text", max_args=None)

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        newline = True
        if argv and argv[0] == "-n":
            newline = False
            argv = argv[1:]
        ctx.write(" ".join(argv), end="\n" if newline else "")
        return 0
