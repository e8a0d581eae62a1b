"""Connect and disconnect commands."""

from __future__ import annotations

from typing import List

from .base import Command
from ..context import ConsoleContext
from ..output import emit


class ConnectCommand(Command):
    def __init__(self) -> None:
        super().__init__("connect", "Connect to the namespace store")

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        session = ctx.session
        mirror = session.connect()
        emit(ctx, f"Connected to /{mirror.prefix} ({mirror.size()} entries)")
        return 0


class DisconnectCommand(Command):
    def __init__(self) -> None:
        super().__init__("disconnect", "Disconnect from the namespace store")

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        ctx.session.disconnect()
        return 0
