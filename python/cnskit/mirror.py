"""Local mirror of a remote namespace subtree."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional

from .errors import ArgumentError, RemoteOperationError, StoreConnectionError, WatchError
from .events import ConnectedEvent, DeleteEvent, DisconnectedEvent, PutEvent, ResyncEvent, WatchEvent, WatchStream
from .paths import is_valid_key, normalise_key, select
from .store import NamespaceStore, in_scope

logger = logging.getLogger(__name__)

STATE_ONLINE = "online"
STATE_OFFLINE = "offline"

# ``None`` instead of a mapping means "everything changed".
Changes = Optional[Dict[str, Optional[str]]]
ChangeListener = Callable[["NamespaceMirror", Changes], None]


class NamespaceMirror:
    """Eventually-fresh copy of every entry below ``prefix``.

    The watch stream and callers share one lock, which is the only place the
    mapping is mutated.  Readers that need a consistent view (tree building,
    rendering) take :meth:`snapshot`.
    """

    def __init__(self, store: NamespaceStore, prefix: str = "") -> None:
        self.store = store
        self.prefix = normalise_key(prefix)
        self.state = STATE_OFFLINE
        self.updates = 0
        self._entries: Dict[str, str] = {}
        self._lock = threading.RLock()
        self._stream: Optional[WatchStream] = None
        self._listeners: Dict[int, ChangeListener] = {}
        self._next_token = 1

    @classmethod
    def connect(cls, store: NamespaceStore, prefix: str = "", *, background: bool = True) -> "NamespaceMirror":
        """Seed a mirror with a bulk read and keep it current with a watch.

        Either step failing fails the whole connect; a mirror is never
        returned half-live.
        """
        mirror = cls(store, prefix)
        try:
            seed = store.range(mirror.prefix)
        except RemoteOperationError as exc:
            raise StoreConnectionError(f"bulk read of '{mirror.prefix or '/'}' failed: {exc.detail}") from exc
        try:
            stream = store.watch(mirror.prefix, mirror.apply_event)
        except WatchError:
            raise
        except RemoteOperationError as exc:
            raise WatchError(f"watch of '{mirror.prefix or '/'}' failed: {exc.detail}") from exc
        with mirror._lock:
            mirror._entries = _valid_entries(seed)
            mirror._stream = stream
            mirror.state = STATE_ONLINE
        if background:
            mirror.start()
        logger.debug("mirror connected prefix=%s entries=%d", mirror.prefix or "/", len(seed))
        return mirror

    def start(self) -> None:
        """Deliver watch events from a background thread from now on."""
        stream = self._stream
        if stream is not None:
            stream.start()

    # ------------------------------------------------------------------
    # Change listeners
    # ------------------------------------------------------------------
    def subscribe(self, listener: ChangeListener) -> int:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._listeners[token] = listener
            return token

    def unsubscribe(self, token: int) -> None:
        with self._lock:
            self._listeners.pop(token, None)

    def _notify(self, changes: Changes) -> None:
        with self._lock:
            listeners = list(self._listeners.values())
        for listener in listeners:
            try:
                listener(self, changes)
            except Exception:
                logger.exception("mirror change listener failed")

    # ------------------------------------------------------------------
    # Notification ingest
    # ------------------------------------------------------------------
    def apply_event(self, event: WatchEvent) -> None:
        if isinstance(event, PutEvent):
            self.on_put(event.key, event.value)
        elif isinstance(event, DeleteEvent):
            self.on_delete(event.key)
        elif isinstance(event, DisconnectedEvent):
            self.on_disconnect()
        elif isinstance(event, ResyncEvent):
            self.resync()
        elif isinstance(event, ConnectedEvent):
            logger.debug("watch stream for %s (re)connected", self.prefix or "/")
        else:
            logger.debug("ignoring watch event %s", event.type)

    def on_put(self, path: str, value: str) -> None:
        key = normalise_key(path)
        if not is_valid_key(key) or not in_scope(key, self.prefix):
            logger.warning("ignoring put for out-of-scope key %r", path)
            return
        with self._lock:
            if self.state != STATE_ONLINE:
                return
            self._entries[key] = str(value)
            self.updates += 1
        self._notify({key: str(value)})

    def on_delete(self, path: str) -> None:
        key = normalise_key(path)
        with self._lock:
            if self.state != STATE_ONLINE:
                return
            self._entries.pop(key, None)
            self.updates += 1
        self._notify({key: None})

    def resync(self) -> None:
        """Replace the local copy with a fresh bulk read after missed notifications."""
        try:
            seed = self.store.range(self.prefix)
        except RemoteOperationError as exc:
            logger.warning("resync of %s failed, going offline: %s", self.prefix or "/", exc)
            self.on_disconnect()
            return
        with self._lock:
            if self.state != STATE_ONLINE:
                return
            self._entries = _valid_entries(seed)
            self.updates += 1
        logger.info("mirror %s resynchronized (%d entries)", self.prefix or "/", len(seed))
        self._notify(None)

    def on_disconnect(self) -> None:
        stream = None
        with self._lock:
            self._entries.clear()
            self.state = STATE_OFFLINE
            stream, self._stream = self._stream, None
        if stream is not None:
            stream.cancel()
        self._notify(None)

    def close(self) -> None:
        """Cancel the watch and discard the local copy."""
        self.on_disconnect()

    def pump(self) -> int:
        """Deliver queued watch events on the caller's thread."""
        stream = self._stream
        return stream.pump() if stream else 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    @property
    def online(self) -> bool:
        return self.state == STATE_ONLINE

    def get(self, path: str, default: Optional[str] = None) -> Optional[str]:
        with self._lock:
            return self._entries.get(normalise_key(path), default)

    def snapshot(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._entries)

    def select(self, pattern: str) -> Dict[str, str]:
        return select(self.snapshot(), pattern)

    def subtree(self, path: str) -> Dict[str, str]:
        """Entry at *path* plus every entry below it, ordered by path."""
        key = normalise_key(path)
        entries = self.snapshot()
        found = {k: v for k, v in entries.items() if in_scope(k, key)}
        return {k: found[k] for k in sorted(found)}

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    # ------------------------------------------------------------------
    # Writes (acknowledged by the store, reflected by the watch)
    # ------------------------------------------------------------------
    def put(self, path: str, value: str) -> None:
        self.store.put(_writable(path), value)

    def delete(self, path: str) -> None:
        self.store.delete(_writable(path))

    def purge(self, prefix: str) -> int:
        return self.store.delete_prefix(_writable(prefix))


def _valid_entries(seed: Dict[str, str]) -> Dict[str, str]:
    return {key: str(value) for key, value in seed.items() if is_valid_key(key)}


def _writable(path: str) -> str:
    # Stored keys are never empty and never contain a wildcard segment.
    if not is_valid_key(path):
        raise ArgumentError(f"invalid key '{path or '/'}'")
    return normalise_key(path)


__all__ = ["NamespaceMirror", "STATE_ONLINE", "STATE_OFFLINE", "Changes", "ChangeListener"]
