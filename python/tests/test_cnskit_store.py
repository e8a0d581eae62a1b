from __future__ import annotations

import pytest

from cnskit.errors import ArgumentError, RemoteOperationError
from cnskit.events import DeleteEvent, PutEvent
from cnskit.store import MemoryStore, in_scope


def test_in_scope_matches_prefix_and_descendants():
    assert in_scope("a", "a")
    assert in_scope("a/b", "a")
    assert not in_scope("ab", "a")
    assert in_scope("anything", "")


def test_range_is_scoped_and_sorted():
    store = MemoryStore({"b/2": "x", "a/1": "y", "b/1": "z", "bb": "w"})
    assert list(store.range("b")) == ["b/1", "b/2"]
    assert list(store.range("/")) == ["a/1", "b/1", "b/2", "bb"]


def test_watch_receives_scoped_events():
    store = MemoryStore()
    events = []
    stream = store.watch("a", events.append)
    store.put("a/x", "1")
    store.put("b/x", "2")
    store.delete("a/x")
    store.delete("a/missing")
    stream.pump()
    assert [type(event) for event in events] == [PutEvent, DeleteEvent]
    assert events[0].key == "a/x"


def test_delete_prefix_counts_removed_keys():
    store = MemoryStore({"p": "0", "p/a": "1", "p/a/b": "2", "pq": "3"})
    assert store.delete_prefix("p") == 3
    assert store.range("") == {"pq": "3"}


def test_invalid_keys_are_rejected():
    store = MemoryStore()
    with pytest.raises(ArgumentError):
        store.put("a/*/b", "1")
    with pytest.raises(ArgumentError):
        store.put("", "1")


def test_unavailable_store_fails_operations():
    store = MemoryStore({"a": "1"})
    store.available = False
    with pytest.raises(RemoteOperationError) as excinfo:
        store.put("a", "2")
    assert "put failed" in str(excinfo.value)
    with pytest.raises(RemoteOperationError):
        store.range("")
    store.available = True
    assert store.range("") == {"a": "1"}
