"""Help command."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from cnskit.errors import CommandError

from .base import Command
from ..context import ConsoleContext

if TYPE_CHECKING:  # pragma: no cover
    from . import CommandRegistry

QUIT_NOTE = "\nPress Ctrl+C twice to quit the interpreter"


class HelpCommand(Command):
    def __init__(self) -> None:
        super().__init__("help", "Output help information", aliases=("h", "?"), usage="help [command]", max_args=1)
        self.registry: Optional["CommandRegistry"] = None

    def bind(self, registry: "CommandRegistry") -> None:
        self.registry = registry

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        if self.registry is None:
            return 1
        if argv:
            command = self.registry.get(argv[0])
            if command is None:
                raise CommandError(argv[0])
            ctx.write(command.format_help())
            return 0
        ctx.write("\n".join(command.format_help() for command in self.registry.list_commands()))
        if not ctx.remote:
            ctx.write(QUIT_NOTE)
        return 0
