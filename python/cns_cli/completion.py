"""prompt_toolkit completer for the CNS console."""

from __future__ import annotations

from typing import Iterable, List

from prompt_toolkit.completion import CompleteEvent, Completer, Completion, PathCompleter
from prompt_toolkit.document import Document

from cnskit.errors import ArgumentError
from cnskit.paths import SEPARATOR, child_names, normalise_key

from .commands import CommandRegistry
from .context import ConsoleContext
from .parser import tokenize

NAMESPACE_COMMANDS = {"cd", "ls", "get", "set", "delete", "purge", "on", "top"}
FILE_COMMANDS = {"load", "save", "cat", "init"}


def _normalise_tokens(text: str) -> List[str]:
    if not text:
        return []
    try:
        tokens = tokenize(text)
    except ArgumentError:
        tokens = text.split()
    if text[-1].isspace():
        tokens.append("")
    return tokens


class CnsCompleter(Completer):
    """Completes command names, namespace paths and file names."""

    def __init__(self, ctx: ConsoleContext, registry: CommandRegistry) -> None:
        self.ctx = ctx
        self.registry = registry
        self._path = PathCompleter(expanduser=True)

    def get_completions(self, document: Document, complete_event: CompleteEvent) -> Iterable[Completion]:
        tokens = _normalise_tokens(document.text_before_cursor)
        if len(tokens) <= 1:
            prefix = tokens[0] if tokens else ""
            for name in self._matching(self.registry.names(), prefix):
                yield Completion(name, start_position=-len(prefix))
            return
        command = self.registry.get(tokens[0])
        if command is None:
            return
        prefix = tokens[-1]
        if command.name in FILE_COMMANDS:
            yield from self._path.get_completions(Document(prefix, len(prefix)), complete_event)
            return
        if command.name in NAMESPACE_COMMANDS and len(tokens) == 2:
            for candidate in self._namespace_candidates(prefix):
                yield Completion(candidate, start_position=-len(prefix))

    def _namespace_candidates(self, prefix: str) -> List[str]:
        session = self.ctx.session
        mirror = session.mirror
        if mirror is None or not mirror.online:
            return []
        head, _, partial = prefix.rpartition(SEPARATOR)
        if prefix.startswith(SEPARATOR) and not head:
            head = SEPARATOR
        base = normalise_key(session.resolve_path(head or None))
        names = child_names(mirror.snapshot(), base)
        lead = f"{head}{SEPARATOR}" if head and head != SEPARATOR else head
        return [lead + name for name in self._matching(names, partial)]

    @staticmethod
    def _matching(candidates: Iterable[str], prefix: str) -> List[str]:
        needle = prefix.lower()
        return sorted({c for c in candidates if c.lower().startswith(needle)})


__all__ = ["CnsCompleter"]
