"""Tests for console statement parsing."""

from __future__ import annotations

import pytest

from cnskit.errors import ArgumentError
from cns_cli.parser import expand_variables, join_tokens, parse_line, split_statements, strip_comment, tokenize


def test_strip_comment_outside_quotes():
    assert strip_comment("get name // trailing") == "get name"
    assert strip_comment('echo "a // b"') == 'echo "a // b"'
    assert strip_comment("// whole line") == ""


def test_split_statements_respects_quotes():
    assert split_statements("set a 1; get a;; ") == ["set a 1", "get a"]
    assert split_statements('echo "a;b"; pwd') == ['echo "a;b"', "pwd"]


def test_tokenize_groups_quoted_text():
    assert tokenize('set name "Node One"') == ["set", "name", "Node One"]
    assert tokenize("  ls   /cns  ") == ["ls", "/cns"]
    assert tokenize("echo it's") == ["echo", "it's"]


def test_unterminated_quote_is_an_argument_error():
    with pytest.raises(ArgumentError):
        tokenize('echo "open')


def test_parse_line():
    assert parse_line('cd network; set name "Demo"  // rename') == [["cd", "network"], ["set", "name", "Demo"]]


def test_expand_variables():
    values = {"a/b": "1", "x": "two"}
    assert expand_variables("${a/b}-$x", values.__getitem__) == "1-two"
    assert expand_variables("plain", values.__getitem__) == "plain"


def test_join_tokens_quotes_where_needed():
    assert join_tokens(["set", "name", "Node One"]) == 'set name "Node One"'
    assert join_tokens(["echo", "a;b", ""]) == 'echo "a;b" ""'
