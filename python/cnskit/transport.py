"""
JSON-over-TCP client for the namespace store gateway.

Every frame is one JSON object terminated by a newline.  Requests carry a
``seq`` number that the gateway echoes in its reply; frames with a ``type``
and no ``status`` are watch events pushed by the gateway at any time.
"""

from __future__ import annotations

import itertools
import json
import logging
import socket
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import RemoteOperationError, WatchError
from .events import DisconnectedEvent, EventHandler, WatchEvent, WatchStream, parse_event
from .paths import normalise_key
from .store import NamespaceStore

logger = logging.getLogger(__name__)

STATE_DISCONNECTED = "disconnected"
STATE_CONNECTING = "connecting"
STATE_CONNECTED = "connected"

Message = Dict[str, Any]


class TransportError(RuntimeError):
    """The gateway could not be reached or did not answer."""


@dataclass
class TransportConfig:
    host: str = "127.0.0.1"
    port: int = 2379
    connect_timeout: float = 2.0
    read_timeout: float = 5.0
    reconnect_backoff: float = 0.5
    max_backoff: float = 5.0
    max_retries: int = 3
    request_retries: int = 1


class _ReplySlot:
    __slots__ = ("ready", "message")

    def __init__(self) -> None:
        self.ready = threading.Event()
        self.message: Optional[Message] = None


def _split_frames(buffer: bytes) -> Tuple[List[Message], bytes]:
    """Decode every complete line of *buffer*; returns the messages and the tail."""
    *lines, tail = buffer.split(b"\n")
    messages: List[Message] = []
    for line in lines:
        if not line.strip():
            continue
        try:
            message = json.loads(line.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.debug("dropping malformed gateway frame: %r", line[:80])
            continue
        if isinstance(message, dict):
            messages.append(message)
    return messages, tail


class GatewayTransport:
    """Synchronous request/reply client with a background frame reader."""

    def __init__(self, config: Optional[TransportConfig] = None) -> None:
        self.config = config or TransportConfig()
        self._sock: Optional[socket.socket] = None
        self._state = STATE_DISCONNECTED
        self._closed = False
        self._io_lock = threading.RLock()
        self._send_lock = threading.Lock()
        self._seq = itertools.count(1)
        self._seq_lock = threading.Lock()
        self._waiting: Dict[int, _ReplySlot] = {}
        self._waiting_lock = threading.Lock()
        self._reader: Optional[threading.Thread] = None
        self._event_handler: Optional[Callable[[Message], None]] = None
        self._disconnect_callbacks: List[Callable[[str], None]] = []

    @property
    def state(self) -> str:
        return self._state

    def set_event_handler(self, handler: Optional[Callable[[Message], None]]) -> None:
        self._event_handler = handler

    def register_on_disconnect(self, callback: Callable[[str], None]) -> None:
        self._disconnect_callbacks.append(callback)

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------
    def connect(self, *, retry: bool = True) -> None:
        with self._io_lock:
            if self._sock is not None:
                return
            if self._closed:
                raise TransportError("transport closed")
            self._state = STATE_CONNECTING
            try:
                sock = self._open_socket(retry)
            except TransportError:
                self._state = STATE_DISCONNECTED
                raise
            self._sock = sock
            self._state = STATE_CONNECTED
            self._reader = threading.Thread(
                target=self._read_frames, args=(sock,), name="gateway-reader", daemon=True
            )
            self._reader.start()
        logger.debug("connected to gateway %s:%s", self.config.host, self.config.port)

    def _open_socket(self, retry: bool) -> socket.socket:
        attempts = max(1, self.config.max_retries) if retry else 1
        delay = self.config.reconnect_backoff
        error: Optional[OSError] = None
        for attempt in range(1, attempts + 1):
            if self._closed:
                break
            try:
                sock = socket.create_connection(
                    (self.config.host, self.config.port), timeout=self.config.connect_timeout
                )
            except OSError as exc:
                error = exc
                if attempt < attempts:
                    time.sleep(delay)
                    delay = min(delay * 2, self.config.max_backoff)
                continue
            sock.settimeout(self.config.read_timeout)
            return sock
        if error is None:
            raise TransportError("connect failed: transport closed")
        raise TransportError(f"connect failed: {error}") from error

    def close(self) -> None:
        self._closed = True
        sock = self._sock
        if sock is not None:
            self._drop(sock, None)
        reader = self._reader
        if reader is not None and reader.is_alive() and reader is not threading.current_thread():
            reader.join(timeout=0.5)

    def _drop(self, sock: socket.socket, error: Optional[BaseException]) -> None:
        """Forget *sock*, fail every waiting request and notify listeners once."""
        with self._io_lock:
            if self._sock is not sock:
                return
            self._sock = None
            self._state = STATE_DISCONNECTED
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        sock.close()
        if error is not None:
            logger.debug("gateway connection dropped: %s", error)
        with self._waiting_lock:
            slots = list(self._waiting.values())
        for slot in slots:
            slot.ready.set()
        for callback in list(self._disconnect_callbacks):
            try:
                callback(STATE_DISCONNECTED)
            except Exception:
                logger.exception("disconnect callback failed")

    # ------------------------------------------------------------------
    # Frames
    # ------------------------------------------------------------------
    def _read_frames(self, sock: socket.socket) -> None:
        buffer = b""
        error: Optional[BaseException] = None
        while not self._closed and self._sock is sock:
            try:
                chunk = sock.recv(4096)
            except socket.timeout:
                continue
            except OSError as exc:
                error = exc
                break
            if not chunk:
                break
            messages, buffer = _split_frames(buffer + chunk)
            for message in messages:
                if "type" in message and "status" not in message:
                    self._deliver_event(message)
                else:
                    self._deliver_reply(message)
        self._drop(sock, error)

    def _deliver_reply(self, message: Message) -> None:
        seq = message.get("seq")
        with self._waiting_lock:
            slot = self._waiting.get(seq) if isinstance(seq, int) else None
        if slot is None:
            logger.debug("ignoring unmatched gateway reply seq=%r", seq)
            return
        slot.message = message
        slot.ready.set()

    def _deliver_event(self, message: Message) -> None:
        handler = self._event_handler
        if handler is None:
            return
        try:
            handler(message)
        except Exception:
            logger.exception("gateway event handler failed")

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    def send_request(self, payload: Message, timeout: Optional[float] = None) -> Message:
        """Send *payload* and block for the matching reply."""
        error: Optional[TransportError] = None
        for attempt in range(max(1, self.config.request_retries)):
            if attempt:
                time.sleep(self.config.reconnect_backoff)
            try:
                return self._roundtrip(dict(payload), timeout)
            except TransportError as exc:
                error = exc
        raise TransportError(f"rpc failed: {error}") from error

    def _roundtrip(self, payload: Message, timeout: Optional[float]) -> Message:
        if self._closed:
            raise TransportError("transport closed")
        self.connect()
        with self._seq_lock:
            seq = next(self._seq)
        payload["seq"] = seq
        slot = _ReplySlot()
        with self._waiting_lock:
            self._waiting[seq] = slot
        try:
            sock = self._sock
            if sock is None:
                raise TransportError("connection closed")
            frame = json.dumps(payload).encode("utf-8") + b"\n"
            try:
                with self._send_lock:
                    sock.sendall(frame)
            except OSError as exc:
                self._drop(sock, exc)
                raise TransportError(f"send failed: {exc}") from exc
            if not slot.ready.wait(timeout or self.config.read_timeout):
                raise TransportError("rpc timeout")
            if slot.message is None:
                raise TransportError("connection closed")
            return slot.message
        finally:
            with self._waiting_lock:
                self._waiting.pop(seq, None)


class TransportStore(NamespaceStore):
    """:class:`NamespaceStore` backed by a :class:`GatewayTransport`."""

    kind = "tcp"

    def __init__(
        self,
        transport: Optional[GatewayTransport] = None,
        *,
        config: Optional[TransportConfig] = None,
    ) -> None:
        self.transport = transport or GatewayTransport(config or TransportConfig())
        self.transport.set_event_handler(self._handle_event)
        self.transport.register_on_disconnect(self._handle_disconnect)
        self._streams: Dict[str, WatchStream] = {}
        self._streams_lock = threading.Lock()
        # Events for watch ids whose reply is still in flight.
        self._early: Dict[str, List[WatchEvent]] = {}
        self._watching = 0

    def range(self, prefix: str) -> Dict[str, str]:
        response = self._request({"cmd": "range", "prefix": normalise_key(prefix)}, "range")
        entries = response.get("entries") or {}
        if not isinstance(entries, dict):
            raise RemoteOperationError("range failed: malformed entries")
        return {str(key): "" if value is None else str(value) for key, value in entries.items()}

    def watch(self, prefix: str, handler: EventHandler) -> WatchStream:
        prefix = normalise_key(prefix)
        with self._streams_lock:
            self._watching += 1
        try:
            try:
                response = self._request({"cmd": "watch", "prefix": prefix}, "watch")
            except RemoteOperationError as exc:
                raise WatchError(str(exc.detail)) from exc
            watch_id = str(response.get("watch") or "")
            if not watch_id:
                raise WatchError("gateway returned no watch id")
            stream = WatchStream(prefix, handler, on_cancel=lambda s: self._cancel_watch(watch_id))
            with self._streams_lock:
                self._streams[watch_id] = stream
                for event in self._early.pop(watch_id, []):
                    stream.push(event)
            return stream
        finally:
            with self._streams_lock:
                self._watching -= 1
                if not self._watching:
                    self._early.clear()

    def put(self, key: str, value: str) -> None:
        self._request({"cmd": "put", "key": normalise_key(key), "value": str(value)}, "put")

    def delete(self, key: str) -> None:
        self._request({"cmd": "delete", "key": normalise_key(key)}, "delete")

    def delete_prefix(self, prefix: str) -> int:
        response = self._request({"cmd": "delete_prefix", "prefix": normalise_key(prefix)}, "purge")
        try:
            return int(response.get("deleted") or 0)
        except (TypeError, ValueError):
            return 0

    def close(self) -> None:
        with self._streams_lock:
            streams = list(self._streams.values())
            self._streams.clear()
        for stream in streams:
            stream.cancel()
        self.transport.close()

    def _request(self, payload: Message, operation: str) -> Message:
        try:
            response = self.transport.send_request(payload)
        except TransportError as exc:
            raise RemoteOperationError(f"{operation} failed: {exc}") from exc
        if response.get("status") != "ok":
            raise RemoteOperationError(f"{operation} failed: {response.get('error', 'unknown error')}")
        return response

    def _cancel_watch(self, watch_id: str) -> None:
        with self._streams_lock:
            self._streams.pop(watch_id, None)
        if self.transport.state != STATE_CONNECTED:
            return
        try:
            self.transport.send_request({"cmd": "unwatch", "watch": watch_id})
        except TransportError as exc:
            logger.debug("unwatch %s failed: %s", watch_id, exc)

    def _handle_event(self, message: Message) -> None:
        watch_id = str(message.get("watch") or "")
        event = parse_event(message)
        with self._streams_lock:
            if not watch_id:
                targets = list(self._streams.values())
            elif watch_id in self._streams:
                targets = [self._streams[watch_id]]
            else:
                # The gateway may notify before the watch reply is read.
                if self._watching:
                    self._early.setdefault(watch_id, []).append(event)
                return
            for stream in targets:
                stream.push(event)

    def _handle_disconnect(self, _state: str) -> None:
        with self._streams_lock:
            streams = list(self._streams.values())
        for stream in streams:
            stream.push(DisconnectedEvent(type="disconnected", reason="gateway connection closed"))


__all__ = [
    "TransportError",
    "TransportConfig",
    "GatewayTransport",
    "TransportStore",
    "STATE_CONNECTED",
    "STATE_CONNECTING",
    "STATE_DISCONNECTED",
]
