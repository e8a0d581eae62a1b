"""cns CLI entry point."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import dotenv_values

from cnskit import __version__
from cnskit.errors import CnsError, OptionError
from cnskit.properties import config_properties, option_properties
from cnskit.render import FORMATS
from cnskit.session import Session

from .context import ConsoleContext
from .history import HistoryStore
from .interpreter import Interpreter
from .output import emit_error
from .repl import ConsoleREPL
from .script import SCRIPT_SUFFIX

LOG = logging.getLogger("cns_cli.cli")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cns",
        description="CNS namespace console",
        usage="cns [options] [script.cns | commands]",
    )
    parser.add_argument("-v", "--version", action="version", version=__version__)
    parser.add_argument("-c", "--context", help="Set CNS context id")
    parser.add_argument("--prefix", help="Namespace prefix to mirror")
    parser.add_argument("--store", choices=("tcp", "memory"), help="Store backend")
    parser.add_argument("--host", help="Store gateway host")
    parser.add_argument("--port", type=int, help="Store gateway port")
    parser.add_argument("-o", "--output", choices=FORMATS, help="Set output format")
    parser.add_argument("-i", "--indent", type=int, help="Set output indent (0-8)")
    parser.add_argument("-m", "--monochrome", action="store_true", help="Disable console colours")
    parser.add_argument("-s", "--silent", action="store_true", help="Disable console output")
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug output")
    parser.add_argument("--log-level", default=None, help="Logging level (default from CNS_LOG or WARNING)")
    parser.add_argument("--env", type=Path, default=Path(".env"), help="Environment file to load")
    parser.add_argument(
        "--history",
        type=Path,
        default=Path.home() / ".cns_history",
        help="Path to command history file",
    )
    parser.add_argument("words", nargs="*", help="Script file or statements to run")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = build_arg_parser()
    args, unknown = parser.parse_known_args(argv)
    for word in unknown:
        if word.startswith("-"):
            raise OptionError(word)
    args.words = list(args.words) + list(unknown)
    return args


def build_session(args: argparse.Namespace, environ: Mapping[str, Optional[str]]) -> Session:
    config = config_properties()
    config.load(environ)
    overrides = {
        "CNS_CONTEXT": args.context,
        "CNS_PREFIX": args.prefix,
        "CNS_STORE": args.store,
        "CNS_STORE_HOST": args.host,
        "CNS_STORE_PORT": args.port,
    }
    for name, value in overrides.items():
        if value is not None:
            config.set(name, value)
    options = option_properties()
    if args.output:
        options.set("format", args.output)
    if args.indent is not None:
        options.set("indent", args.indent)
    options.set("monochrome", args.monochrome)
    options.set("silent", args.silent)
    options.set("debug", args.debug)
    return Session(config=config, options=options)


def _environment(env_file: Path) -> dict:
    """Process environment layered over the ``.env`` file (process wins)."""
    merged = {}
    if env_file.is_file():
        merged.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    merged.update(os.environ)
    return merged


def main(argv: List[str] | None = None) -> int:
    try:
        args = parse_args(argv)
    except OptionError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    environ = _environment(args.env)
    level = "DEBUG" if args.debug else (args.log_level or environ.get("CNS_LOG") or "WARNING")
    _configure_logging(level)
    try:
        session = build_session(args, environ)
    except CnsError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    session.environ = environ
    history = HistoryStore(str(args.history))
    ctx = ConsoleContext(session=session, history=history)
    interpreter = Interpreter(ctx)
    line = " ".join(args.words).strip()
    try:
        return _run(interpreter, line)
    finally:
        ctx.close()
        session.close()


def _run(interpreter: Interpreter, line: str) -> int:
    ctx = interpreter.ctx
    try:
        ctx.session.connect()
    except CnsError as exc:
        LOG.debug("initial connect failed", exc_info=True)
        emit_error(ctx, exc)
        if line:
            return 1
    if line:
        try:
            if line.endswith(SCRIPT_SUFFIX):
                interpreter.run_script(line)
            else:
                interpreter.execute_line(line)
            interpreter.drain_triggers()
        except CnsError as exc:
            emit_error(ctx, exc)
            return 1
        except SystemExit as exc:
            return int(exc.code or 0)
        return 0
    repl = ConsoleREPL(interpreter, history_store=ctx.history)
    try:
        return repl.run()
    except KeyboardInterrupt:
        print()
        return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
