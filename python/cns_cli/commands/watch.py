"""Change-driven commands: on, top and wait."""

from __future__ import annotations

import time
from typing import List, Optional

from cnskit.errors import ArgumentError, CnsError, CommandError

from .base import Command
from ..context import ConsoleContext
from ..output import clear_screen, emit
from ..parser import join_tokens

POLL_INTERVAL = 0.05


def _drain(ctx: ConsoleContext) -> None:
    if ctx.interpreter is not None:
        ctx.interpreter.drain_triggers()


class OnCommand(Command):
    """Run a command whenever a value at or below a path changes.

    Inside the command ``$data`` is the new value (empty for deletes).
    """

    def __init__(self) -> None:
        super().__init__(
            "on",
            "List, add or remove change triggers",
            usage="on [path [command]]",
            max_args=None,
            expand=False,
        )

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        if not argv:
            for target in sorted(ctx.triggers):
                emit(ctx, f"/{target}    {ctx.triggers[target]}")
            return 0
        if len(argv) == 1:
            if not ctx.remove_trigger(argv[0]):
                raise ArgumentError(f"no trigger on '{argv[0]}'")
            return 0
        ctx.add_trigger(argv[0], join_tokens(argv[1:]))
        return 0


class WaitCommand(Command):
    def __init__(self) -> None:
        super().__init__("wait", "Pause for a number of milliseconds", usage="wait [ms]", max_args=1)

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        try:
            millis = float(argv[0]) if argv else 1000.0
        except ValueError:
            raise ArgumentError(argv[0]) from None
        deadline = time.monotonic() + max(millis, 0.0) / 1000.0
        try:
            while not ctx.interrupt.is_set():
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                if ctx.interrupt.wait(min(remaining, POLL_INTERVAL)):
                    break
                _drain(ctx)
        except KeyboardInterrupt:
            pass
        finally:
            ctx.interrupt.clear()
        return 0


class TopCommand(Command):
    """Re-render a path every time the mirror changes, until interrupted.

    Each frame starts with the store connection and the session counters,
    and is cut to the terminal height (the ``rows`` option).
    """

    def __init__(self) -> None:
        super().__init__("top", "Live display of a path until interrupted", usage="top [path]", max_args=1)

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        if ctx.remote:
            raise CommandError("top is not available remotely")
        path = argv[0] if argv else None
        ctx.changed.clear()
        self._draw(ctx, path)
        try:
            while not ctx.interrupt.is_set():
                if not ctx.changed.wait(POLL_INTERVAL):
                    continue
                ctx.changed.clear()
                _drain(ctx)
                self._draw(ctx, path)
        except KeyboardInterrupt:
            pass
        finally:
            ctx.interrupt.clear()
        return 0

    @staticmethod
    def frame(ctx: ConsoleContext, path: Optional[str]) -> List[str]:
        session = ctx.session
        stats = session.stats
        store = session.store
        kind = store.kind if store is not None else session.config.get("CNS_STORE")
        lines = [
            f"Node: {kind} store at {session.home}, connection {stats.status}.",
            f"Status: {stats.reads} reads, {stats.writes} writes, {stats.updates} updates, {stats.errors} errors.",
            "",
        ]
        if not session.connected:
            lines.append("OFFLINE")
            return lines
        try:
            data, label, _root = session.query(path)
            body = session.render(data, label)
        except CnsError as exc:
            lines.append(f"error: {exc}")
            return lines
        lines.extend(body.split("\n") if body else ["NO DATA"])
        return lines[: max(session.rows() - 1, 4)]

    def _draw(self, ctx: ConsoleContext, path: Optional[str]) -> None:
        clear_screen(ctx)
        emit(ctx, "\n".join(self.frame(ctx, path)))
