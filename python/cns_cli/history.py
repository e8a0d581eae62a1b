"""Statement history shared by the REPL, ``history`` and ``save``."""

from __future__ import annotations

import logging
from collections import deque
from pathlib import Path
from typing import Deque, Iterable, Iterator, List, Optional, Tuple

LOGGER = logging.getLogger("cns_cli.history")

DEFAULT_LIMIT = 1000


class HistoryStore:
    """Bounded list of executed lines, most recent last.

    With a *path* the list is read at start-up and rewritten after every
    change; without one it lives in memory only.
    """

    def __init__(self, path: Optional[str], *, limit: int = DEFAULT_LIMIT) -> None:
        self.path = Path(path).expanduser() if path else None
        self._lines: Deque[str] = deque(maxlen=max(1, int(limit or 1)))
        if self.path is not None:
            self._lines.extend(self._read(self.path))

    @property
    def limit(self) -> int:
        return self._lines.maxlen or DEFAULT_LIMIT

    def __len__(self) -> int:
        return len(self._lines)

    @staticmethod
    def _read(path: Path) -> List[str]:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            LOGGER.debug("cannot read history %s: %s", path, exc)
            return []
        return [line.strip() for line in text.splitlines() if line.strip()]

    def append(self, line: str) -> None:
        """Record *line* unless it is blank or repeats the previous entry."""
        text = line.strip()
        if not text or (self._lines and self._lines[-1] == text):
            return
        self._lines.append(text)
        self._flush()

    def extend(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.append(line)

    def clear(self) -> None:
        self._lines.clear()
        self._flush()

    def numbered(self) -> Iterator[Tuple[int, str]]:
        return enumerate(self._lines, start=1)

    def snapshot(self) -> List[str]:
        return list(self._lines)

    def _flush(self) -> None:
        if self.path is None:
            return
        body = "".join(f"{line}\n" for line in self._lines)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(body, encoding="utf-8")
        except OSError as exc:
            LOGGER.debug("cannot write history %s: %s", self.path, exc)
