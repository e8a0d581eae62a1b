"""Interactive REPL for the CNS console."""

from __future__ import annotations

import logging
import sys
from typing import Callable, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout

from cnskit import __version__
from cnskit.errors import CnsError

from .completion import CnsCompleter
from .history import HistoryStore
from .interpreter import Interpreter
from .output import emit_error

LOGGER = logging.getLogger("cns_cli.repl")

PROMPT = "> "
QUIT_HINT = '(To quit, press Ctrl+C again or type "quit")'


class ConsoleREPL:
    """prompt_toolkit REPL with a plain ``input()`` loop for non-TTY stdin."""

    def __init__(
        self,
        interpreter: Interpreter,
        *,
        history_store: Optional[HistoryStore] = None,
        interactive: Optional[bool] = None,
    ) -> None:
        self.interpreter = interpreter
        self.ctx = interpreter.ctx
        self.history_store = history_store or self.ctx.history
        self.ctx.history = self.history_store
        self.interactive = sys.stdin.isatty() if interactive is None else interactive
        self._signalled = False

    def run(self) -> int:
        if not self.ctx.silent:
            self.ctx.write(f"Welcome to CNS v{__version__}.")
            self.ctx.write('Type "help" for more information.')
        if not self.interactive:
            return self._loop(lambda: input(PROMPT if not self.ctx.silent else ""))
        history = InMemoryHistory()
        for entry in self.history_store.snapshot():
            history.append_string(entry)
        session = PromptSession(
            PROMPT,
            history=history,
            completer=CnsCompleter(self.ctx, self.interpreter.registry),
            complete_while_typing=False,
        )

        def read_line() -> str:
            with patch_stdout():
                return session.prompt()

        return self._loop(read_line)

    def _loop(self, read_line: Callable[[], str]) -> int:
        while True:
            self.interpreter.drain_triggers()
            try:
                line = read_line()
            except EOFError:
                self.ctx.write()
                return 0
            except KeyboardInterrupt:
                if self._signalled:
                    self.ctx.write()
                    return 0
                self._signalled = True
                self.ctx.write(QUIT_HINT, force=True)
                continue
            self._signalled = False
            try:
                self.dispatch(line)
            except SystemExit as exc:
                return int(exc.code or 0)

    def dispatch(self, line: str) -> None:
        """Run one input line, reporting (not raising) console errors."""
        stripped = line.strip()
        if not stripped:
            return
        try:
            self.interpreter.execute_line(stripped)
        except CnsError as exc:
            LOGGER.debug("statement failed: %s", stripped, exc_info=True)
            emit_error(self.ctx, exc)
        except KeyboardInterrupt:
            self.ctx.write("Aborted.", force=True)
        finally:
            self.history_store.append(stripped)
        self.interpreter.drain_triggers()
