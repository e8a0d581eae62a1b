"""Command interpreter: line → statements → dispatch."""

from __future__ import annotations

import logging
from typing import List, Optional

from cnskit.errors import ArgumentError, CnsError, CommandError

from .commands import Command, CommandRegistry, build_registry
from .context import ConsoleContext
from .output import emit_error
from .parser import expand_variables, split_statements, strip_comment, tokenize
from .script import read_script

LOGGER = logging.getLogger("cns_cli.interpreter")


class Interpreter:
    """Executes console statements against one :class:`ConsoleContext`.

    Statements run strictly one after another.  Change triggers queued by
    the watch thread run only between lines (or while ``wait``/``top``
    block), never concurrently with a statement.
    """

    def __init__(self, ctx: ConsoleContext, registry: Optional[CommandRegistry] = None) -> None:
        self.ctx = ctx
        self.registry = registry or build_registry()
        self._draining = False
        ctx.interpreter = self

    def resolve(self, name: str) -> Command:
        command = self.registry.get(name)
        if command is None:
            raise CommandError(name)
        return command

    def execute_line(self, line: str) -> int:
        """Run every statement of *line*; the first failure aborts the rest."""
        rc = 0
        for statement in split_statements(strip_comment(line.strip())):
            rc = self.execute_statement(statement)
        return rc

    def execute_statement(self, statement: str) -> int:
        tokens = tokenize(statement)
        if not tokens:
            return 0
        command = self.resolve(tokens[0])
        args: List[str] = tokens[1:]
        if command.expand:
            args = [expand_variables(arg, self.ctx.session.lookup_variable) for arg in args]
        if command.max_args is not None and len(args) > command.max_args:
            raise ArgumentError(f"{command.name} takes at most {command.max_args} argument(s)")
        LOGGER.debug("run %s %s", command.name, args)
        return command.run(self.ctx, args)

    def run_script(self, path: str) -> int:
        """Execute a script file, aborting on the first failing line."""
        for number, line in read_script(path):
            try:
                self.execute_line(line)
            except CnsError as exc:
                raise exc.with_location(f"{path}: line {number}") from exc
        return 0

    def drain_triggers(self) -> int:
        """Run queued change triggers; failures are reported, not raised."""
        if self._draining:
            return 0
        self._draining = True
        ran = 0
        try:
            while True:
                trigger = self.ctx.next_trigger()
                if trigger is None:
                    break
                command, key, value = trigger
                self.ctx.session.system["data"] = value
                self.ctx.session.system["key"] = "/" + key
                try:
                    self.execute_line(command)
                except CnsError as exc:
                    LOGGER.debug("trigger '%s' failed", command, exc_info=True)
                    emit_error(self.ctx, exc)
                ran += 1
        finally:
            self._draining = False
        return ran


__all__ = ["Interpreter"]
