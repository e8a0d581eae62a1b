import json
import socket
import threading
import time
from typing import Dict, List, Optional

import pytest

from cnskit.errors import RemoteOperationError
from cnskit.events import ResyncEvent
from cnskit.mirror import NamespaceMirror
from cnskit.transport import GatewayTransport, TransportConfig, TransportStore


class DummyGateway:
    """Newline-delimited JSON store gateway holding its data in a dict."""

    events_first = False

    def __init__(self, data: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(data or {})
        self.requests: List[dict] = []
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind(("127.0.0.1", 0))
        self.port = self._sock.getsockname()[1]
        self._sock.listen(5)
        self._stop = threading.Event()
        self._conns: List[socket.socket] = []
        self._watches: Dict[str, str] = {}
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                conn, _ = self._sock.accept()
            except OSError:
                break
            conn.settimeout(1.0)
            self._conns.append(conn)
            threading.Thread(target=self._handle_client, args=(conn,), daemon=True).start()

    def _handle_client(self, conn: socket.socket) -> None:
        buffer = b""
        with conn:
            while not self._stop.is_set():
                try:
                    chunk = conn.recv(4096)
                except socket.timeout:
                    continue
                except OSError:
                    break
                if not chunk:
                    break
                buffer += chunk
                while b"\n" in buffer:
                    line, buffer = buffer.split(b"\n", 1)
                    if not line:
                        continue
                    msg = json.loads(line.decode("utf-8"))
                    self.requests.append(msg)
                    response, events = self._handle_command(msg)
                    response["seq"] = msg.get("seq")
                    try:
                        payloads = events + [response] if self.events_first else [response] + events
                        for payload in payloads:
                            conn.sendall(json.dumps(payload).encode("utf-8") + b"\n")
                    except OSError:
                        return

    def _handle_command(self, msg: dict):
        cmd = msg.get("cmd")
        if cmd == "range":
            prefix = msg.get("prefix", "")
            entries = {k: v for k, v in self.data.items() if not prefix or k == prefix or k.startswith(prefix + "/")}
            return {"status": "ok", "entries": entries}, []
        if cmd == "watch":
            watch_id = f"w{len(self._watches) + 1}"
            self._watches[watch_id] = msg.get("prefix", "")
            return {"status": "ok", "watch": watch_id}, []
        if cmd == "unwatch":
            self._watches.pop(msg.get("watch"), None)
            return {"status": "ok"}, []
        if cmd == "put":
            key = msg["key"]
            if key.startswith("readonly"):
                return {"status": "error", "error": "permission denied"}, []
            self.data[key] = msg["value"]
            return {"status": "ok"}, self._events({"type": "put", "key": key, "value": msg["value"]})
        if cmd == "delete":
            key = msg["key"]
            if self.data.pop(key, None) is None:
                return {"status": "ok"}, []
            return {"status": "ok"}, self._events({"type": "delete", "key": key})
        if cmd == "delete_prefix":
            prefix = msg["prefix"]
            keys = [k for k in self.data if k == prefix or k.startswith(prefix + "/")]
            events = []
            for key in keys:
                del self.data[key]
                events.extend(self._events({"type": "delete", "key": key}))
            return {"status": "ok", "deleted": len(keys)}, events
        return {"status": "error", "error": f"unknown command {cmd}"}, []

    def _events(self, event: dict) -> List[dict]:
        return [dict(event, watch=watch_id) for watch_id in self._watches]

    def drop_clients(self) -> None:
        for conn in list(self._conns):
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass

    def close(self) -> None:
        self._stop.set()
        self.drop_clients()
        try:
            self._sock.close()
        except OSError:
            pass
        self._thread.join(timeout=1)


class EagerGateway(DummyGateway):
    """Notifies a new watch of a put before acknowledging the watch itself."""

    events_first = True

    def _handle_command(self, msg: dict):
        response, events = super()._handle_command(msg)
        if msg.get("cmd") == "watch":
            events = [{"type": "put", "key": "cns/early", "value": "1", "watch": response["watch"]}]
        return response, events


@pytest.fixture
def gateway():
    server = DummyGateway({"cns/a": "1", "cns/b/c": "2", "other": "x"})
    yield server
    server.close()


def _store(port: int) -> TransportStore:
    return TransportStore(config=TransportConfig(host="127.0.0.1", port=port, read_timeout=0.5, max_retries=1))


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_range_over_gateway(gateway):
    store = _store(gateway.port)
    try:
        assert store.range("cns") == {"cns/a": "1", "cns/b/c": "2"}
        assert gateway.requests[0]["cmd"] == "range"
        assert isinstance(gateway.requests[0]["seq"], int)
    finally:
        store.close()


def test_mirror_follows_gateway_events(gateway):
    store = _store(gateway.port)
    mirror = NamespaceMirror.connect(store, "cns", background=False)
    try:
        mirror.put("cns/d", "4")
        assert mirror.get("cns/d") is None
        assert _wait_for(lambda: mirror._stream is not None and mirror._stream.pending() > 0)
        mirror.pump()
        assert mirror.get("cns/d") == "4"
        assert mirror.purge("cns/b") == 1
        assert _wait_for(lambda: mirror._stream.pending() > 0)
        mirror.pump()
        assert mirror.select("cns/*") == {"cns/a": "1", "cns/d": "4"}
    finally:
        mirror.close()
        store.close()


def test_gateway_error_becomes_remote_error(gateway):
    store = _store(gateway.port)
    try:
        with pytest.raises(RemoteOperationError) as excinfo:
            store.put("readonly/x", "1")
        assert "permission denied" in str(excinfo.value)
    finally:
        store.close()


def test_unreachable_gateway_fails_cleanly():
    spare = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    spare.bind(("127.0.0.1", 0))
    port = spare.getsockname()[1]
    spare.close()
    store = _store(port)
    try:
        with pytest.raises(RemoteOperationError):
            store.range("")
    finally:
        store.close()


def test_dropped_connection_takes_mirror_offline(gateway):
    store = _store(gateway.port)
    mirror = NamespaceMirror.connect(store, "cns", background=False)
    try:
        gateway.drop_clients()
        assert _wait_for(lambda: store.transport.state == "disconnected")
        assert _wait_for(lambda: mirror._stream is None or mirror._stream.pending() > 0)
        mirror.pump()
        assert not mirror.online
        assert mirror.snapshot() == {}
    finally:
        mirror.close()
        store.close()


def test_transport_matches_responses_by_seq(gateway):
    transport = GatewayTransport(TransportConfig(port=gateway.port, max_retries=1))
    try:
        first = transport.send_request({"cmd": "range", "prefix": "cns"})
        second = transport.send_request({"cmd": "range", "prefix": "other"})
        assert first["entries"] == {"cns/a": "1", "cns/b/c": "2"}
        assert second["entries"] == {"other": "x"}
        assert second["seq"] == first["seq"] + 1
    finally:
        transport.close()


def test_event_sent_before_watch_reply_is_delivered():
    server = EagerGateway({"cns/a": "1"})
    store = _store(server.port)
    received = []
    try:
        stream = store.watch("cns", received.append)
        assert stream.pump() == 1
        assert [(event.key, event.value) for event in received] == [("cns/early", "1")]
        assert store._early == {}
    finally:
        store.close()
        server.close()


def test_mirror_resyncs_after_overflow(gateway):
    store = _store(gateway.port)
    mirror = NamespaceMirror.connect(store, "cns", background=False)
    try:
        gateway.data["cns/late"] = "9"
        mirror._stream.push(ResyncEvent(type="resync", dropped=1))
        mirror.pump()
        assert mirror.online
        assert mirror.get("cns/late") == "9"
    finally:
        mirror.close()
        store.close()
