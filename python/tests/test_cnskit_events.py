from __future__ import annotations

import threading
import time

from cnskit.events import (
    DeleteEvent,
    DisconnectedEvent,
    PutEvent,
    ResyncEvent,
    WatchEvent,
    WatchStream,
    parse_event,
)


def test_parse_event_types():
    put = parse_event({"type": "put", "seq": 3, "key": "a/b", "value": 5})
    assert isinstance(put, PutEvent)
    assert (put.key, put.value, put.seq) == ("a/b", "5", 3)
    assert isinstance(parse_event({"type": "delete", "key": "a"}), DeleteEvent)
    gone = parse_event({"type": "disconnected", "reason": "bye"})
    assert isinstance(gone, DisconnectedEvent)
    assert gone.reason == "bye"
    other = parse_event({"type": "mystery", "extra": 1})
    assert type(other) is WatchEvent
    assert other.data == {"extra": 1}
    assert isinstance(parse_event({"type": "resync"}), ResyncEvent)


def test_stream_delivers_in_order_on_pump():
    received = []
    stream = WatchStream("", received.append)
    for idx in range(3):
        stream.push(PutEvent(type="put", key=f"k{idx}", value=str(idx)))
    assert stream.pending() == 3
    assert stream.pump() == 3
    assert [event.key for event in received] == ["k0", "k1", "k2"]


def test_overflow_replaces_backlog_with_resync():
    received = []
    stream = WatchStream("", received.append, queue_size=2)
    for idx in range(3):
        stream.push(PutEvent(type="put", key=f"k{idx}"))
    assert stream.pending() == 1
    stream.push(PutEvent(type="put", key="k3"))
    assert stream.pump() == 2
    assert stream.dropped == 3
    assert isinstance(received[0], ResyncEvent)
    assert received[0].dropped == 3
    assert received[1].key == "k3"
    assert stream.pump() == 0


def test_cancel_discards_queued_events_and_runs_callback():
    received = []
    cancelled = []
    stream = WatchStream("", received.append, on_cancel=cancelled.append)
    stream.push(PutEvent(type="put", key="a"))
    stream.cancel()
    stream.push(PutEvent(type="put", key="b"))
    assert stream.pump() == 0
    assert received == []
    assert cancelled == [stream]
    assert stream.cancelled


def test_no_delivery_after_cancel_returns():
    delivered_after = []
    cancelled = threading.Event()

    def handler(event):
        if cancelled.is_set():
            delivered_after.append(event)
        time.sleep(0.001)

    stream = WatchStream("", handler)
    stream.start(interval=0.001)
    for idx in range(200):
        stream.push(PutEvent(type="put", key=f"k{idx}"))
    time.sleep(0.01)
    stream.cancel()
    cancelled.set()
    for idx in range(20):
        stream.push(PutEvent(type="put", key=f"late{idx}"))
    time.sleep(0.02)
    assert delivered_after == []


def test_handler_errors_do_not_stop_the_stream():
    received = []

    def handler(event):
        if event.key == "bad":
            raise ValueError("boom")
        received.append(event.key)

    stream = WatchStream("", handler)
    stream.push(PutEvent(type="put", key="bad"))
    stream.push(PutEvent(type="put", key="good"))
    assert stream.pump() == 2
    assert received == ["good"]
