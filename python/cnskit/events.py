"""Watch notification events and the cancellable watch stream."""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

EventHandler = Callable[["WatchEvent"], None]


def _to_float(value: Any) -> float:
    try:
        if value is None:
            return 0.0
        return float(value)
    except (TypeError, ValueError):
        return 0.0


@dataclass
class WatchEvent:
    type: str
    seq: int = 0
    ts: float = field(default_factory=time.time)
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PutEvent(WatchEvent):
    key: str = ""
    value: str = ""


@dataclass
class DeleteEvent(WatchEvent):
    key: str = ""


@dataclass
class ConnectedEvent(WatchEvent):
    pass


@dataclass
class DisconnectedEvent(WatchEvent):
    reason: Optional[str] = None


@dataclass
class ResyncEvent(WatchEvent):
    """Notifications were lost; the receiver must re-read the whole prefix."""

    dropped: int = 0


def parse_event(event: Dict[str, Any]) -> WatchEvent:
    """Convert a raw gateway event dictionary into a typed dataclass."""

    event_type = str(event.get("type") or "")
    seq = int(event.get("seq") or 0)
    ts = _to_float(event.get("ts")) or time.time()
    data = {k: v for k, v in event.items() if k not in {"type", "seq", "ts"}}

    if event_type == "put":
        value = event.get("value")
        return PutEvent(
            type=event_type,
            seq=seq,
            ts=ts,
            data=data,
            key=str(event.get("key") or ""),
            value="" if value is None else str(value),
        )
    if event_type == "delete":
        return DeleteEvent(type=event_type, seq=seq, ts=ts, data=data, key=str(event.get("key") or ""))
    if event_type == "connected":
        return ConnectedEvent(type=event_type, seq=seq, ts=ts, data=data)
    if event_type == "disconnected":
        return DisconnectedEvent(type=event_type, seq=seq, ts=ts, data=data, reason=event.get("reason"))
    if event_type == "resync":
        return ResyncEvent(type=event_type, seq=seq, ts=ts, data=data)
    return WatchEvent(type=event_type, seq=seq, ts=ts, data=data)


class WatchStream:
    """Bounded channel of watch events delivered to a single handler.

    Producers call :meth:`push`; events are delivered by :meth:`pump`, either
    from a background dispatcher started with :meth:`start` or explicitly by
    the owner.  Delivery and :meth:`cancel` share one lock, so once
    ``cancel()`` returns no further event reaches the handler and anything
    still queued is discarded.

    When the queue overflows the backlog is thrown away and the next pump
    delivers a single :class:`ResyncEvent` ahead of anything pushed later.
    """

    def __init__(
        self,
        prefix: str,
        handler: EventHandler,
        *,
        queue_size: int = 1024,
        on_cancel: Optional[Callable[["WatchStream"], None]] = None,
    ) -> None:
        self.prefix = prefix
        self.handler = handler
        self._queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._deliver_lock = threading.RLock()
        self._cancelled = False
        self._on_cancel = on_cancel
        self._worker: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._interval = 0.01
        self._push_lock = threading.Lock()
        self._resync = 0
        self.dropped = 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def push(self, event: WatchEvent) -> None:
        with self._push_lock:
            if self._cancelled:
                return
            try:
                self._queue.put_nowait(event)
            except queue.Full:
                lost = self._drain() + 1
                self.dropped += lost
                self._resync += lost
                logger.warning("watch stream %s overflowed, %d event(s) dropped", self.prefix or "/", lost)

    def pending(self) -> int:
        return self._queue.qsize() + (1 if self._resync else 0)

    def _next(self) -> Optional[WatchEvent]:
        with self._push_lock:
            lost, self._resync = self._resync, 0
        if lost:
            return ResyncEvent(type="resync", dropped=lost)
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def pump(self) -> int:
        """Deliver queued events; returns the number delivered."""
        delivered = 0
        while True:
            with self._deliver_lock:
                if self._cancelled:
                    self._drain()
                    return delivered
                event = self._next()
                if event is None:
                    return delivered
                try:
                    self.handler(event)
                except Exception:
                    logger.exception("watch handler failed for %s event", event.type)
                delivered += 1

    def start(self, interval: float = 0.01) -> None:
        """Start a background dispatcher that periodically pumps the stream."""
        self._interval = interval
        if self._worker and self._worker.is_alive():
            return
        self._stop_event.clear()
        self._worker = threading.Thread(target=self._run, name=f"watch:{self.prefix}", daemon=True)
        self._worker.start()

    def cancel(self) -> None:
        with self._deliver_lock:
            if self._cancelled:
                return
            self._cancelled = True
            self._drain()
        self._stop_event.set()
        worker = self._worker
        if worker and worker.is_alive() and worker is not threading.current_thread():
            worker.join(timeout=0.5)
        self._worker = None
        if self._on_cancel:
            self._on_cancel(self)

    def _drain(self) -> int:
        count = 0
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return count
            count += 1

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            self.pump()


__all__ = [
    "WatchEvent",
    "PutEvent",
    "DeleteEvent",
    "ConnectedEvent",
    "DisconnectedEvent",
    "ResyncEvent",
    "WatchStream",
    "parse_event",
]
