"""Remote writes: set, delete and purge."""

from __future__ import annotations

from typing import List

from .base import Command
from ..context import ConsoleContext


class SetCommand(Command):
    def __init__(self) -> None:
        super().__init__("set", "Write a value", aliases=("put",), usage="set path value", max_args=2)

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        self.require(argv, 1, "path")
        self.require(argv, 2, "value")
        ctx.session.put(argv[0], argv[1])
        return 0


class DeleteCommand(Command):
    def __init__(self) -> None:
        super().__init__("delete", "Delete a value", aliases=("del", "rm"), usage="delete path", max_args=1)

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        self.require(argv, 1, "path")
        ctx.session.delete(argv[0])
        return 0


class PurgeCommand(Command):
    def __init__(self) -> None:
        super().__init__("purge", "Delete a path and everything below it", usage="purge path", max_args=1)

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        self.require(argv, 1, "path")
        ctx.session.purge(argv[0])
        return 0
