from __future__ import annotations

from cnskit.broadcast import PROTOCOL_VERSION, BroadcastChannel, PayloadView, diff_payload, snapshot_payload
from cnskit.render import RenderOptions


def test_payload_shapes():
    snapshot = snapshot_payload({"CNS_PREFIX": "cns"}, {"reads": 0}, {"b": "2", "a": "1"})
    assert snapshot["version"] == PROTOCOL_VERSION
    assert list(snapshot["data"]) == ["a", "b"]
    diff = diff_payload({}, {}, {"a": None})
    assert diff["changes"] == {"a": None}
    assert "data" not in diff


def test_failing_consumer_does_not_block_others():
    channel = BroadcastChannel()
    received = []

    def broken(payload):
        raise ConnectionError("display went away")

    channel.add_consumer(received.append)
    channel.add_consumer(broken)
    channel.add_consumer(received.append)
    assert channel.publish({"version": 1}) == 2
    assert len(received) == 2
    assert channel.failed == 1
    assert channel.sent == 2


def test_removed_consumer_stops_receiving():
    channel = BroadcastChannel()
    received = []
    token = channel.add_consumer(received.append)
    channel.remove_consumer(token)
    assert channel.consumer_count() == 0
    assert channel.publish({}) == 0
    assert received == []


def test_view_applies_snapshot_then_diffs():
    view = PayloadView()
    view.apply(snapshot_payload({"CNS_PREFIX": "cns"}, {"status": "online"}, {"cns/a": "1", "cns/b/c": "2"}))
    view.apply(diff_payload({"CNS_PREFIX": "cns"}, {"status": "online"}, {"cns/a": None, "cns/b/d": "3"}))
    assert view.entries == {"cns/b/c": "2", "cns/b/d": "3"}
    assert view.stats["status"] == "online"
    assert view.select("cns/b/*") == {"cns/b/c": "2", "cns/b/d": "3"}
    assert view.render("/cns/b", RenderOptions(format="text")) == "c=2\nd=3"


def test_view_tracks_session(session):
    view = PayloadView()
    session.broadcast.add_consumer(view.apply)
    session.publish()
    assert view.entries == session.entries()
    session.put("network/nodes/n3/name", "Node Three")
    session.delete("network/nodes/n2/name")
    session.pump()
    assert view.entries == session.entries()
    assert view.stats["writes"] == 2
    session.disconnect()
    assert view.entries == {}
    assert view.stats["status"] == "disconnected"
