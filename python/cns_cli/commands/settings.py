"""Version, init, config, output and status commands."""

from __future__ import annotations

from pathlib import Path
from typing import List

from dotenv import set_key

from cnskit import __version__
from cnskit.errors import ScriptIOError
from cnskit.properties import display_value
from cnskit.render import FORMATS

from .base import Command
from ..context import ConsoleContext
from ..output import apply_debug, emit, emit_properties
from ..script import generated_header

ENV_FILE = ".env"


class VersionCommand(Command):
    def __init__(self) -> None:
        super().__init__("version", "Output version information", aliases=("v",))

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        emit(ctx, __version__)
        return 0


class InitCommand(Command):
    """Write the non-default configuration to a ``.env`` file."""

    def __init__(self, env_path: str = ENV_FILE) -> None:
        super().__init__("init", "Initialize .env with current config", aliases=("i",), usage="init [file]", max_args=1)
        self.env_path = env_path

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        path = Path(argv[0] if argv else self.env_path)
        try:
            path.write_text(generated_header("#"), encoding="utf-8")
            for name, value in ctx.session.config.non_defaults().items():
                set_key(str(path), name, display_value(value), quote_mode="auto")
        except OSError as exc:
            raise ScriptIOError(f"{path}: {exc.strerror or exc}") from exc
        return 0


class ConfigCommand(Command):
    def __init__(self) -> None:
        super().__init__(
            "config",
            "Display or set config properties",
            aliases=("c",),
            usage="config [name [value]]",
            max_args=2,
        )

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        session = ctx.session
        if len(argv) < 2:
            emit_properties(ctx, "config", session.config.as_dict(), argv[0] if argv else None)
            return 0
        session.set_config(argv[0], argv[1])
        return 0


class OutputCommand(Command):
    def __init__(self) -> None:
        super().__init__(
            "output",
            "Display or set output options",
            aliases=("o",),
            usage="output [name [value]]",
            max_args=2,
        )

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        session = ctx.session
        if not argv:
            emit_properties(ctx, "output", session.options.as_dict())
            return 0
        if len(argv) == 1:
            if argv[0].lower() in FORMATS:
                session.set_option("format", argv[0].lower())
                return 0
            emit_properties(ctx, "output", session.options.as_dict(), argv[0])
            return 0
        value = session.set_option(argv[0], argv[1])
        if argv[0] == "debug":
            apply_debug(value)
        return 0


class StatusCommand(Command):
    def __init__(self) -> None:
        super().__init__("status", "Display status properties", aliases=("s",), usage="status [name]", max_args=1)

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        emit_properties(ctx, "status", ctx.session.stats.as_dict(), argv[0] if argv else None)
        return 0
