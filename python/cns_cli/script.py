"""Script file helpers (``.cns`` files)."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, Tuple

from cnskit import __version__
from cnskit.errors import ScriptIOError

SHEBANG = "#!/usr/bin/env cns"
SCRIPT_SUFFIX = ".cns"


def generated_header(comment: str = "//") -> str:
    stamp = datetime.now().isoformat(timespec="seconds")
    return f"{comment} Generated by cns v{__version__} on {stamp}\n"


def read_script(path: str) -> Iterator[Tuple[int, str]]:
    """Yield ``(line number, line)`` pairs, skipping a leading shebang."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ScriptIOError(f"{path}: {exc.strerror or exc}") from exc
    for number, line in enumerate(text.splitlines(), start=1):
        if number == 1 and line.startswith("#!"):
            continue
        yield number, line


def write_script(path: str, lines: Iterable[str]) -> None:
    body = "".join(f"{line}\n" for line in lines)
    try:
        Path(path).write_text(f"{SHEBANG}\n{generated_header()}{body}", encoding="utf-8")
    except OSError as exc:
        raise ScriptIOError(f"{path}: {exc.strerror or exc}") from exc


def read_text(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ScriptIOError(f"{path}: {exc.strerror or exc}") from exc
