"""Tests for console history helpers."""

from __future__ import annotations

from cns_cli.history import HistoryStore


def test_history_store_loads_existing_file(tmp_path):
    path = tmp_path / "history.txt"
    path.write_text("one\ntwo\n", encoding="utf-8")
    store = HistoryStore(str(path), limit=5)
    assert store.snapshot() == ["one", "two"]
    store.append("three")
    assert store.snapshot()[-1] == "three"
    assert "three" in path.read_text(encoding="utf-8")


def test_history_store_limits_entries(tmp_path):
    path = tmp_path / "history.txt"
    store = HistoryStore(str(path), limit=3)
    for idx in range(5):
        store.append(f"get n{idx}")
    assert store.snapshot() == ["get n2", "get n3", "get n4"]
    text = path.read_text(encoding="utf-8").strip().splitlines()
    assert text == ["get n2", "get n3", "get n4"]


def test_history_store_ignores_duplicate_adjacent(tmp_path):
    store = HistoryStore(str(tmp_path / "history.txt"), limit=10)
    store.append("pwd")
    store.append("pwd ")
    store.append("   ")
    assert store.snapshot() == ["pwd"]


def test_history_clear_truncates_file(tmp_path):
    path = tmp_path / "history.txt"
    store = HistoryStore(str(path))
    store.extend(["ls", "pwd"])
    store.clear()
    assert store.snapshot() == []
    assert path.read_text(encoding="utf-8") == ""


def test_history_without_file_stays_in_memory():
    store = HistoryStore(None)
    store.append("ls")
    assert store.snapshot() == ["ls"]
