"""Console context: session plus output sink, interrupt and trigger queue."""

from __future__ import annotations

import contextlib
import logging
import queue
import sys
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, TextIO, Tuple

from cnskit.mirror import Changes
from cnskit.paths import has_wildcard, is_under, matches, normalise_key
from cnskit.session import Session

from .history import HistoryStore

if TYPE_CHECKING:  # pragma: no cover
    from .interpreter import Interpreter

LOGGER = logging.getLogger("cns_cli.context")

# (command line, changed key, new value)
Trigger = Tuple[str, str, str]


def trigger_matches(key: str, target: str) -> bool:
    if has_wildcard(target):
        return matches(key, target)
    return key == target or is_under(key, target)


@dataclass
class ConsoleContext:
    """Holds shared console state for one interpreter."""

    session: Session = field(default_factory=Session)
    history: HistoryStore = field(default_factory=lambda: HistoryStore(None))
    stream: Optional[TextIO] = None
    remote: bool = False
    triggers: Dict[str, str] = field(default_factory=dict)
    interrupt: threading.Event = field(default_factory=threading.Event)
    changed: threading.Event = field(default_factory=threading.Event)
    interpreter: Optional["Interpreter"] = field(default=None, repr=False)
    _pending: "queue.Queue[Trigger]" = field(default_factory=queue.Queue, repr=False)
    _capture: Optional[List[str]] = field(default=None, repr=False)
    _token: Optional[int] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self._token = self.session.subscribe(self._on_session_change)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    @property
    def silent(self) -> bool:
        return bool(self.session.options.get("silent"))

    @property
    def out(self) -> TextIO:
        return self.stream or sys.stdout

    def write(self, text: str = "", *, end: str = "\n", force: bool = False) -> None:
        if self._capture is not None:
            self._capture.append(text + end)
            return
        if self.silent and not force:
            return
        self.out.write(text + end)
        self.out.flush()

    def is_terminal(self) -> bool:
        if self._capture is not None:
            return False
        isatty = getattr(self.out, "isatty", None)
        return bool(isatty and isatty())

    @contextlib.contextmanager
    def capture(self) -> Iterator[List[str]]:
        """Collect everything written inside the block instead of printing it."""
        previous, self._capture = self._capture, []
        try:
            yield self._capture
        finally:
            self._capture = previous

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------
    def add_trigger(self, path: str, command: str) -> str:
        target = normalise_key(self.session.resolve_path(path))
        self.triggers[target] = command
        return target

    def remove_trigger(self, path: str) -> bool:
        target = normalise_key(self.session.resolve_path(path))
        return self.triggers.pop(target, None) is not None

    def _on_session_change(self, session: Session, changes: Changes) -> None:
        self.changed.set()
        if not changes:
            return
        for key, value in changes.items():
            for target, command in list(self.triggers.items()):
                if trigger_matches(key, target):
                    self._pending.put((command, key, value or ""))

    def next_trigger(self) -> Optional[Trigger]:
        try:
            return self._pending.get_nowait()
        except queue.Empty:
            return None

    def pending_triggers(self) -> int:
        return self._pending.qsize()

    def close(self) -> None:
        if self._token is not None:
            self.session.unsubscribe(self._token)
            self._token = None
