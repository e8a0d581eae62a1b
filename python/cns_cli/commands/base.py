"""Command base classes for the CNS console."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from cnskit.errors import MissingArgumentError

from ..context import ConsoleContext


@dataclass
class Command:
    """Abstract command description.

    ``max_args`` bounds the positional arguments (``None`` accepts any
    number).  Commands with ``expand`` disabled receive their arguments
    without ``$name`` substitution.
    """

    name: str
    description: str
    aliases: Sequence[str] = field(default_factory=tuple)
    usage: str = ""
    max_args: Optional[int] = 0
    expand: bool = True

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        raise NotImplementedError("Command must implement run()")

    def format_help(self) -> str:
        names = ", ".join(list(self.aliases) + [self.usage or self.name])
        return f"  {names:<28}{self.description}"

    @staticmethod
    def require(argv: List[str], count: int, what: str) -> None:
        if len(argv) < count:
            raise MissingArgumentError(what)
