"""Output helpers for the CNS console."""

from __future__ import annotations

import logging
import traceback
from typing import Any, Mapping, Optional

from cnskit.errors import ArgumentError
from cnskit.properties import display_value
from cnskit.tree import TreeNode

from .context import ConsoleContext

CLEAR_SCREEN = "\x1b[2J\x1b[H"

_COLOURS = {"yellow": "\x1b[33m", "red": "\x1b[31m"}
_RESET = "\x1b[0m"

DEBUG_LOGGERS = ("cnskit", "cns_cli")


def paint(ctx: ConsoleContext, text: str, colour: str) -> str:
    if not text or ctx.session.options.get("monochrome") or not ctx.is_terminal():
        return text
    return f"{_COLOURS.get(colour, '')}{text}{_RESET}"


def emit(ctx: ConsoleContext, text: str, *, end: str = "\n") -> None:
    """Write rendered output; empty renders print nothing at all."""
    if not text and end == "\n":
        return
    ctx.write(paint(ctx, text, "yellow"), end=end)


def emit_error(ctx: ConsoleContext, error: BaseException) -> None:
    text = f"error: {error}"
    if ctx.session.options.get("debug") and error.__traceback__ is not None:
        trace = "".join(traceback.format_tb(error.__traceback__))
        text = f"{text}\n{trace.rstrip()}"
    ctx.write(paint(ctx, text, "red"), force=True)


def apply_debug(enabled: bool) -> None:
    """Turn debug logging of the console packages on or off."""
    level = logging.DEBUG if enabled else logging.NOTSET
    for name in DEBUG_LOGGERS:
        logging.getLogger(name).setLevel(level)


def emit_rendered(ctx: ConsoleContext, data: Any, root: str, fmt: Optional[str] = None) -> None:
    emit(ctx, ctx.session.render(data, root, fmt))


def emit_properties(ctx: ConsoleContext, root: str, values: Mapping[str, Any], name: Optional[str] = None) -> None:
    """Display a whole property map, or the single property *name*."""
    if name is None:
        nodes = [TreeNode(key, display_value(value)) for key, value in values.items()]
        emit_rendered(ctx, nodes, root)
        return
    if name not in values:
        raise ArgumentError(name)
    emit_rendered(ctx, display_value(values[name]), name)


def clear_screen(ctx: ConsoleContext) -> None:
    if ctx.is_terminal():
        ctx.write(CLEAR_SCREEN, end="")


__all__ = ["emit", "emit_error", "apply_debug", "emit_rendered", "emit_properties", "clear_screen", "paint"]
