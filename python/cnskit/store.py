"""Remote store contract and the in-process store implementation."""

from __future__ import annotations

import abc
import logging
import threading
from typing import Dict, List

from .errors import ArgumentError, RemoteOperationError
from .events import DeleteEvent, DisconnectedEvent, EventHandler, PutEvent, WatchStream
from .paths import is_under, is_valid_key, normalise_key

logger = logging.getLogger(__name__)


def in_scope(key: str, prefix: str) -> bool:
    """True when *key* is *prefix* itself or lies below it."""
    return key == prefix or is_under(key, prefix)


class NamespaceStore(abc.ABC):
    """Interface of the watchable key-value store behind the namespace.

    Every operation may fail with :class:`RemoteOperationError`.
    """

    kind = "custom"

    @abc.abstractmethod
    def range(self, prefix: str) -> Dict[str, str]:
        """Bulk read of every entry at or below *prefix*."""

    @abc.abstractmethod
    def watch(self, prefix: str, handler: EventHandler) -> WatchStream:
        """Open a change stream scoped to *prefix*."""

    @abc.abstractmethod
    def put(self, key: str, value: str) -> None:
        """Write *value* and return once the store acknowledged it."""

    @abc.abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abc.abstractmethod
    def delete_prefix(self, prefix: str) -> int:
        """Delete *prefix* and everything below it; returns the count removed."""

    def close(self) -> None:
        return None


class MemoryStore(NamespaceStore):
    """Thread-safe in-process store used offline and in tests.

    Mutations are acknowledged immediately while the matching notifications
    are queued on each watcher's stream, so readers of a mirror only observe
    a write once the stream is pumped.
    """

    kind = "memory"

    def __init__(self, data: Dict[str, str] | None = None) -> None:
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()
        self._watchers: List[WatchStream] = []
        self.available = True
        self._seq = 0
        for key, value in (data or {}).items():
            self._data[self._checked_key(key)] = str(value)

    def range(self, prefix: str) -> Dict[str, str]:
        self._ensure_available("range")
        prefix = normalise_key(prefix)
        with self._lock:
            return {key: value for key, value in sorted(self._data.items()) if in_scope(key, prefix)}

    def watch(self, prefix: str, handler: EventHandler) -> WatchStream:
        self._ensure_available("watch")
        stream = WatchStream(normalise_key(prefix), handler, on_cancel=self._forget)
        with self._lock:
            self._watchers.append(stream)
        return stream

    def put(self, key: str, value: str) -> None:
        self._ensure_available("put")
        key = self._checked_key(key)
        with self._lock:
            self._data[key] = str(value)
            self._seq += 1
            event = PutEvent(type="put", seq=self._seq, key=key, value=str(value))
            watchers = [w for w in self._watchers if in_scope(key, w.prefix)]
        for stream in watchers:
            stream.push(event)

    def delete(self, key: str) -> None:
        self._ensure_available("delete")
        key = self._checked_key(key)
        self._remove([key])

    def delete_prefix(self, prefix: str) -> int:
        self._ensure_available("purge")
        prefix = self._checked_key(prefix)
        with self._lock:
            keys = [key for key in self._data if in_scope(key, prefix)]
        return self._remove(keys)

    def drop_watchers(self, reason: str = "connection lost") -> None:
        """Simulate the store dropping every change stream."""
        with self._lock:
            watchers = list(self._watchers)
        logger.debug("dropping %d watch stream(s): %s", len(watchers), reason)
        for stream in watchers:
            stream.push(DisconnectedEvent(type="disconnected", reason=reason))

    def close(self) -> None:
        with self._lock:
            watchers = list(self._watchers)
            self._watchers.clear()
        for stream in watchers:
            stream.cancel()

    def _remove(self, keys: List[str]) -> int:
        events = []
        with self._lock:
            for key in sorted(keys):
                if self._data.pop(key, None) is None:
                    continue
                self._seq += 1
                events.append(DeleteEvent(type="delete", seq=self._seq, key=key))
            watchers = list(self._watchers)
        for event in events:
            for stream in watchers:
                if in_scope(event.key, stream.prefix):
                    stream.push(event)
        return len(events)

    def _forget(self, stream: WatchStream) -> None:
        with self._lock:
            if stream in self._watchers:
                self._watchers.remove(stream)

    def _ensure_available(self, operation: str) -> None:
        if not self.available:
            raise RemoteOperationError(f"{operation} failed: store unavailable")

    @staticmethod
    def _checked_key(key: str) -> str:
        if not is_valid_key(key):
            raise ArgumentError(str(key))
        return normalise_key(key)


__all__ = ["NamespaceStore", "MemoryStore", "in_scope"]
