"""Explicit session object owning the mirror, variables and statistics.

A console and a dashboard bridge each hold their own :class:`Session`; no
state is shared through module globals.
"""

from __future__ import annotations

import logging
import os
import shutil
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .broadcast import BroadcastChannel, diff_payload, snapshot_payload
from .errors import CnsError, RemoteOperationError, StoreConnectionError, VariableError
from .mirror import Changes, NamespaceMirror
from .paths import SEPARATOR, join_path, normalise_key, split_path
from .properties import CONNECTION_KEYS, PropertyMap, config_properties, display_value, option_properties
from .render import RenderOptions, render
from .store import MemoryStore, NamespaceStore
from .transport import TransportConfig, TransportStore
from .tree import view_of

logger = logging.getLogger(__name__)

STATUS_DISCONNECTED = "disconnected"
STATUS_ONLINE = "online"
STATUS_DEGRADED = "degraded"

# Where the node keeps its context entries, relative to the prefix.
CONTEXTS_PATH = "node/contexts"

StoreFactory = Callable[[PropertyMap], NamespaceStore]
SessionListener = Callable[["Session", Changes], None]


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


@dataclass
class Statistics:
    started: str = field(default_factory=_now)
    reads: int = 0
    writes: int = 0
    updates: int = 0
    errors: int = 0
    status: str = STATUS_DISCONNECTED

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


class StoreFactoryRegistry:
    """Builds a store from the ``CNS_STORE*`` settings.

    The memory backend is created once and reused across reconnects so its
    data outlives a disconnect, like a real remote store would.
    """

    def __init__(self) -> None:
        self._memory: Optional[MemoryStore] = None

    def __call__(self, config: PropertyMap) -> NamespaceStore:
        if config.get("CNS_STORE") == "memory":
            if self._memory is None:
                self._memory = MemoryStore()
            return self._memory
        transport_config = TransportConfig(
            host=str(config.get("CNS_STORE_HOST")),
            port=int(config.get("CNS_STORE_PORT")),
        )
        return TransportStore(config=transport_config)


class Session:
    """One user's view of the namespace: mirror + variables + statistics."""

    def __init__(
        self,
        *,
        config: Optional[PropertyMap] = None,
        options: Optional[PropertyMap] = None,
        store_factory: Optional[StoreFactory] = None,
        broadcast: Optional[BroadcastChannel] = None,
        background: bool = True,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.config = config or config_properties()
        self.options = options or option_properties()
        self.stats = Statistics()
        self.system: Dict[str, str] = {"data": "", "key": ""}
        self.store_factory: StoreFactory = store_factory or StoreFactoryRegistry()
        self.broadcast = broadcast or BroadcastChannel()
        self.background = background
        self.environ = environ if environ is not None else os.environ
        self.store: Optional[NamespaceStore] = None
        self.mirror: Optional[NamespaceMirror] = None
        self.path = self.home
        self._mirror_token: Optional[int] = None
        self._listeners: Dict[int, SessionListener] = {}
        self._next_token = 1
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------
    @property
    def home(self) -> str:
        """Namespace prefix, narrowed to the context entry when ``CNS_CONTEXT`` is set."""
        segments = split_path(str(self.config.get("CNS_PREFIX") or ""))
        context = str(self.config.get("CNS_CONTEXT") or "").strip()
        if context:
            segments += split_path(CONTEXTS_PATH) + [context]
        return SEPARATOR + join_path(segments)

    @property
    def connected(self) -> bool:
        mirror = self.mirror
        return mirror is not None and mirror.online

    def connect(self) -> NamespaceMirror:
        """Open a fresh mirror, replacing any existing one."""
        if self.mirror is not None:
            self.disconnect()
        store = self.store_factory(self.config)
        prefix = normalise_key(str(self.config.get("CNS_PREFIX") or ""))
        try:
            mirror = NamespaceMirror.connect(store, prefix, background=False)
        except StoreConnectionError as exc:
            self.stats.errors += 1
            self.stats.status = STATUS_DISCONNECTED
            logger.debug("connect to %s failed: %s", prefix or "/", exc)
            store.close()
            self.publish()
            raise
        with self._lock:
            self.store = store
            self.mirror = mirror
            self.stats.status = STATUS_ONLINE
            self.stats.updates = mirror.updates
            self._mirror_token = mirror.subscribe(self._on_mirror_change)
        if self.background:
            mirror.start()
        logger.info("connected to namespace %s (%d entries)", prefix or "/", mirror.size())
        self.publish()
        return mirror

    def disconnect(self) -> None:
        with self._lock:
            mirror, self.mirror = self.mirror, None
            store, self.store = self.store, None
            token, self._mirror_token = self._mirror_token, None
        if mirror is not None:
            if token is not None:
                mirror.unsubscribe(token)
            mirror.close()
        if store is not None:
            store.close()
        self.stats.status = STATUS_DISCONNECTED
        if mirror is not None:
            self._fire(None)
            self.publish()

    def reconnect(self) -> NamespaceMirror:
        return self.connect()

    def close(self) -> None:
        self.disconnect()

    def pump(self) -> int:
        """Deliver pending watch events on the calling thread."""
        mirror = self.mirror
        return mirror.pump() if mirror else 0

    def require_mirror(self) -> NamespaceMirror:
        mirror = self.mirror
        if mirror is None or not mirror.online:
            raise StoreConnectionError()
        return mirror

    # ------------------------------------------------------------------
    # Change propagation
    # ------------------------------------------------------------------
    def subscribe(self, listener: SessionListener) -> int:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._listeners[token] = listener
            return token

    def unsubscribe(self, token: int) -> None:
        with self._lock:
            self._listeners.pop(token, None)

    def _on_mirror_change(self, mirror: NamespaceMirror, changes: Changes) -> None:
        self.stats.updates = mirror.updates
        if changes is None and not mirror.online:
            # The store dropped the watch; the mirror is empty until reconnect.
            self.stats.status = STATUS_DISCONNECTED
        self._fire(changes)
        self.publish(changes)

    def _fire(self, changes: Changes) -> None:
        with self._lock:
            listeners = list(self._listeners.values())
        for listener in listeners:
            try:
                listener(self, changes)
            except Exception:
                logger.exception("session listener failed")

    def payload(self, changes: Changes = None) -> Dict[str, Any]:
        config = self.config.as_dict()
        stats = self.stats.as_dict()
        if changes is None:
            mirror = self.mirror
            return snapshot_payload(config, stats, mirror.snapshot() if mirror else {})
        return diff_payload(config, stats, changes)

    def publish(self, changes: Changes = None) -> int:
        return self.broadcast.publish(self.payload(changes))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def resolve_path(self, path: Optional[str] = None) -> str:
        """Absolute console path for *path* (``~`` is home, ``..`` goes up)."""
        text = str(path or "").strip()
        if not text:
            return self.path
        if text.startswith("~"):
            segments, rest = split_path(self.home), text[1:]
        elif text.startswith(SEPARATOR):
            segments, rest = [], text
        else:
            segments, rest = split_path(self.path), text
        for segment in rest.split(SEPARATOR):
            if segment in ("", "."):
                continue
            if segment == "..":
                if segments:
                    segments.pop()
                continue
            segments.append(segment)
        return SEPARATOR + join_path(segments)

    def read(self, path: str, default: Optional[str] = None) -> Optional[str]:
        mirror = self.require_mirror()
        self.stats.reads += 1
        return mirror.get(normalise_key(self.resolve_path(path)), default)

    def query(self, path: Optional[str] = None) -> Tuple[Any, str, str]:
        """Select what *path* addresses; returns ``(data, label, root_prefix)``."""
        mirror = self.require_mirror()
        self.stats.reads += 1
        return view_of(mirror.snapshot(), self.resolve_path(path))

    def select(self, pattern: str) -> Dict[str, str]:
        """Entries matching *pattern*, resolved against the current path like any path."""
        mirror = self.require_mirror()
        self.stats.reads += 1
        return mirror.select(normalise_key(self.resolve_path(pattern)))

    def entries(self) -> Dict[str, str]:
        return self.require_mirror().snapshot()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def put(self, path: str, value: str) -> None:
        key = normalise_key(self.resolve_path(path))
        self._write("put", lambda mirror: mirror.put(key, value))

    def delete(self, path: str) -> None:
        key = normalise_key(self.resolve_path(path))
        self._write("delete", lambda mirror: mirror.delete(key))

    def purge(self, path: str) -> int:
        key = normalise_key(self.resolve_path(path))
        removed: List[int] = []
        self._write("purge", lambda mirror: removed.append(mirror.purge(key)))
        return removed[0] if removed else 0

    def _write(self, operation: str, action: Callable[[NamespaceMirror], Any]) -> None:
        mirror = self.require_mirror()
        try:
            action(mirror)
        except CnsError as exc:
            self.record_failure(exc)
            raise
        self.stats.writes += 1
        if self.stats.status == STATUS_DEGRADED:
            self.stats.status = STATUS_ONLINE
            self.publish({})

    def record_failure(self, exc: CnsError) -> None:
        self.stats.errors += 1
        if isinstance(exc, RemoteOperationError):
            self.stats.status = STATUS_DEGRADED
        logger.debug("remote operation failed: %s", exc)
        self.publish({})

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------
    def set_config(self, name: str, raw: Any) -> Any:
        value = self.config.set(name, raw)
        if name in ("CNS_PREFIX", "CNS_CONTEXT"):
            self.path = self.home
        if name in CONNECTION_KEYS and self.mirror is not None:
            self.reconnect()
        return value

    def set_option(self, name: str, raw: Any) -> Any:
        return self.options.set(name, raw)

    def system_values(self) -> Dict[str, str]:
        values = dict(self.system)
        values["path"] = self.path
        return values

    def lookup_variable(self, name: str) -> str:
        """Resolve ``$name``: config, options, stats, system, mirror, environment."""
        for scope in (self.config.as_dict(), self.options.as_dict(), self.stats.as_dict(), self.system_values()):
            if name in scope:
                return display_value(scope[name])
        mirror = self.mirror
        if mirror is not None and mirror.online:
            value = mirror.get(normalise_key(self.resolve_path(name)))
            if value is not None:
                return value
        value = self.environ.get(name)
        if value is not None:
            return value
        raise VariableError(name)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def render_options(self, fmt: Optional[str] = None) -> RenderOptions:
        width = int(self.options.get("columns") or 0)
        if width <= 0:
            width = shutil.get_terminal_size().columns
        return RenderOptions(
            format=fmt or str(self.options.get("format")),
            indent=int(self.options.get("indent")),
            width=width,
        )

    def rows(self) -> int:
        height = int(self.options.get("rows") or 0)
        return height if height > 0 else shutil.get_terminal_size().lines

    def render(self, data: Any, root: str, fmt: Optional[str] = None) -> str:
        return render(data, root=root, options=self.render_options(fmt))


__all__ = [
    "Session",
    "Statistics",
    "CONTEXTS_PATH",
    "StoreFactoryRegistry",
    "STATUS_DISCONNECTED",
    "STATUS_ONLINE",
    "STATUS_DEGRADED",
]
