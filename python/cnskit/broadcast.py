"""Fan-out of mirror state to display consumers.

Payloads are plain JSON-ready dictionaries::

    {"version": ..., "config": {...}, "stats": {...}, "data": {path: value}}
    {"version": ..., "config": {...}, "stats": {...}, "changes": {path: value-or-None}}

The first form is a full snapshot, the second an incremental diff where a
``None`` value marks a deleted path.  :class:`PayloadView` is the consumer
side: it folds payloads into a local mapping and runs the same
select/build/render pipeline as the console.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Mapping, Optional

from .paths import select
from .render import RenderOptions, render
from .tree import view_of

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = 1

Payload = Dict[str, Any]
Consumer = Callable[[Payload], None]


def snapshot_payload(
    config: Mapping[str, Any],
    stats: Mapping[str, Any],
    data: Mapping[str, str],
    *,
    version: int = PROTOCOL_VERSION,
) -> Payload:
    return {
        "version": version,
        "config": dict(config),
        "stats": dict(stats),
        "data": {path: data[path] for path in sorted(data)},
    }


def diff_payload(
    config: Mapping[str, Any],
    stats: Mapping[str, Any],
    changes: Mapping[str, Optional[str]],
    *,
    version: int = PROTOCOL_VERSION,
) -> Payload:
    return {
        "version": version,
        "config": dict(config),
        "stats": dict(stats),
        "changes": {path: changes[path] for path in sorted(changes)},
    }


class BroadcastChannel:
    """Best-effort fan-out; one failing consumer never blocks the others."""

    def __init__(self) -> None:
        self._consumers: Dict[int, Consumer] = {}
        self._lock = threading.Lock()
        self._next_token = 1
        self.sent = 0
        self.failed = 0

    def add_consumer(self, consumer: Consumer) -> int:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._consumers[token] = consumer
            return token

    def remove_consumer(self, token: int) -> None:
        with self._lock:
            self._consumers.pop(token, None)

    def consumer_count(self) -> int:
        with self._lock:
            return len(self._consumers)

    def publish(self, payload: Payload) -> int:
        """Deliver *payload* to every consumer; returns the number that accepted it."""
        with self._lock:
            consumers = list(self._consumers.items())
        delivered = 0
        for token, consumer in consumers:
            try:
                consumer(payload)
            except Exception:
                self.failed += 1
                logger.exception("broadcast consumer %d failed", token)
                continue
            delivered += 1
        self.sent += delivered
        return delivered


class PayloadView:
    """Consumer-side copy of the namespace rebuilt from broadcast payloads."""

    def __init__(self) -> None:
        self.version: Optional[int] = None
        self.config: Dict[str, Any] = {}
        self.stats: Dict[str, Any] = {}
        self.entries: Dict[str, str] = {}

    def apply(self, payload: Mapping[str, Any]) -> None:
        self.version = payload.get("version", self.version)
        self.config = dict(payload.get("config") or self.config)
        self.stats = dict(payload.get("stats") or self.stats)
        data = payload.get("data")
        if data is not None:
            self.entries = {str(path): str(value) for path, value in data.items()}
            return
        for path, value in (payload.get("changes") or {}).items():
            if value is None:
                self.entries.pop(path, None)
            else:
                self.entries[path] = str(value)

    def select(self, pattern: str) -> Dict[str, str]:
        return select(self.entries, pattern)

    def render(self, path: str, options: Optional[RenderOptions] = None) -> str:
        data, label, _root = view_of(self.entries, path)
        return render(data, root=label, options=options)


__all__ = [
    "PROTOCOL_VERSION",
    "BroadcastChannel",
    "PayloadView",
    "snapshot_payload",
    "diff_payload",
]
