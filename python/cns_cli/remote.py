"""Remote command envelope handling for dashboard consumers.

A consumer sends ``{"command": "<statement line>"}`` and receives the text
the console would have printed: ``{"response": ..., "format": ...}``, plus
``"error"`` when the line failed.  Each :class:`RemoteConsole` drives its
own interpreter and session, independent of the local console.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Mapping, Optional

from cnskit.broadcast import Consumer, Payload
from cnskit.errors import CnsError, MissingArgumentError
from cnskit.session import Session

from .context import ConsoleContext
from .interpreter import Interpreter

LOGGER = logging.getLogger("cns_cli.remote")


class RemoteConsole:
    def __init__(self, session: Optional[Session] = None, *, interpreter: Optional[Interpreter] = None) -> None:
        if interpreter is None:
            interpreter = Interpreter(ConsoleContext(session=session or Session(), remote=True))
        self.interpreter = interpreter
        self.ctx = interpreter.ctx
        self.ctx.remote = True

    @property
    def session(self) -> Session:
        return self.ctx.session

    def handle(self, envelope: Mapping[str, Any]) -> Dict[str, Any]:
        fmt = str(self.session.options.get("format"))
        command = envelope.get("command") if isinstance(envelope, Mapping) else None
        if not isinstance(command, str):
            return {"response": "", "format": fmt, "error": str(MissingArgumentError("command"))}
        with self.ctx.capture() as chunks:
            try:
                self.interpreter.execute_line(command)
                self.interpreter.drain_triggers()
            except CnsError as exc:
                LOGGER.debug("remote command failed: %s", command, exc_info=True)
                return {"response": _joined(chunks), "format": fmt, "error": str(exc)}
        return {"response": _joined(chunks), "format": str(self.session.options.get("format"))}

    def handle_text(self, message: str) -> str:
        """Decode a JSON envelope, run it and encode the reply."""
        try:
            envelope = json.loads(message)
        except json.JSONDecodeError as exc:
            fmt = str(self.session.options.get("format"))
            return json.dumps({"response": "", "format": fmt, "error": f"Invalid argument: {exc.msg}"})
        return json.dumps(self.handle(envelope))

    def close(self) -> None:
        self.ctx.close()


def _joined(chunks) -> str:
    text = "".join(chunks)
    return text[:-1] if text.endswith("\n") else text


def text_consumer(send: Callable[[str], None]) -> Consumer:
    """Adapt a text sender (a websocket ``send``) into a broadcast consumer."""

    def consume(payload: Payload) -> None:
        send(json.dumps(payload))

    return consume


__all__ = ["RemoteConsole", "text_consumer"]
