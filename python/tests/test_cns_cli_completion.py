"""Completion tests for the CNS console."""

from __future__ import annotations

from prompt_toolkit.document import Document

from cns_cli.commands import build_registry
from cns_cli.completion import CnsCompleter


def _complete(console, text: str):
    completer = CnsCompleter(console.ctx, build_registry())
    doc = Document(text, cursor_position=len(text))
    return [c.text for c in completer.get_completions(doc, None)]


def test_command_completion_includes_shortcuts(console):
    assert _complete(console, "pu") == ["purge", "put"]
    assert "help" in _complete(console, "")


def test_namespace_completion_relative_to_current_path(console):
    assert _complete(console, "cd net") == ["network"]
    assert _complete(console, "get network/no") == ["network/nodes"]
    console.ctx.session.path = "/cns/network/nodes"
    assert _complete(console, "ls ") == ["n1", "n2"]


def test_namespace_completion_for_absolute_paths(console):
    assert _complete(console, "ls /c") == ["/cns"]
    assert _complete(console, "ls /cns/net") == ["/cns/network"]


def test_only_first_argument_completes_paths(console):
    assert _complete(console, "set network/name Na") == []
    assert _complete(console, "nosuch net") == []


def test_no_namespace_completion_when_disconnected(console):
    console.ctx.session.disconnect()
    assert _complete(console, "cd net") == []


def test_file_completion_for_load(console, tmp_path):
    (tmp_path / "demo.cns").write_text("pwd\n", encoding="utf-8")
    text = f"load {tmp_path.as_posix()}/demo."
    assert "cns" in _complete(console, text)
