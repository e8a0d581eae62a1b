"""Script, history and .env file handling."""

from __future__ import annotations

import pytest
from dotenv import dotenv_values

from cnskit.errors import CommandError, ScriptIOError
from cns_cli.script import SHEBANG, read_script


def test_load_runs_script_lines(run, session, tmp_path):
    script = tmp_path / "setup.cns"
    script.write_text(
        "#!/usr/bin/env cns\n"
        "// rename the network\n"
        "set network/name Renamed; set network/owner ops\n"
        "\n"
        "echo done // trailing comment\n",
        encoding="utf-8",
    )
    assert run(f'load "{script}"') == "done\n"
    session.pump()
    assert session.read("network/name") == "Renamed"
    assert session.read("network/owner") == "ops"


def test_load_reports_failing_line(console, tmp_path):
    script = tmp_path / "broken.cns"
    script.write_text("echo ok\nbogus\necho never\n", encoding="utf-8")
    with pytest.raises(CommandError) as excinfo:
        with console.ctx.capture() as chunks:
            console.run_script(str(script))
    assert excinfo.value.location == f"{script}: line 2"
    assert str(excinfo.value) == f"{script}: line 2: Illegal command: bogus"
    assert chunks == ["ok\n"]


def test_nested_load_keeps_inner_location(console, tmp_path):
    inner = tmp_path / "inner.cns"
    inner.write_text("echo inner\nbogus\n", encoding="utf-8")
    outer = tmp_path / "outer.cns"
    outer.write_text(f'echo outer\nload "{inner}"\n', encoding="utf-8")
    with pytest.raises(CommandError) as excinfo:
        with console.ctx.capture():
            console.run_script(str(outer))
    assert excinfo.value.location == f"{outer}: line 2: {inner}: line 2"
    assert str(excinfo.value).endswith(f"{inner}: line 2: Illegal command: bogus")


def test_load_missing_file(run, tmp_path):
    with pytest.raises(ScriptIOError):
        run(f'load "{tmp_path / "missing.cns"}"')


def test_save_writes_history_as_script(console, run, tmp_path):
    console.ctx.history.extend(["cd network", 'set name "Demo Two"'])
    target = tmp_path / "saved.cns"
    run(f'save "{target}"')
    lines = target.read_text(encoding="utf-8").splitlines()
    assert lines[0] == SHEBANG
    assert lines[1].startswith("// Generated by cns v")
    assert lines[2:] == ["cd network", 'set name "Demo Two"']
    assert [line for _, line in read_script(str(target))][1:] == lines[2:]


def test_saved_script_replays(console, run, session, tmp_path):
    console.ctx.history.extend(["set network/name Replayed"])
    target = tmp_path / "replay.cns"
    run(f'save "{target}"')
    run(f'load "{target}"')
    session.pump()
    assert session.read("network/name") == "Replayed"


def test_history_command_lists_and_clears(console, run):
    console.ctx.history.extend(["pwd", "ls"])
    assert run("history") == "    1  pwd\n    2  ls\n"
    run("history clear")
    assert console.ctx.history.snapshot() == []


def test_init_writes_non_default_config(run, tmp_path):
    env_file = tmp_path / "cns.env"
    run("config CNS_CONTEXT c1; config CNS_STORE_PORT 2380")
    run(f'init "{env_file}"')
    text = env_file.read_text(encoding="utf-8")
    assert text.startswith("# Generated by cns v")
    assert dotenv_values(env_file) == {"CNS_CONTEXT": "c1", "CNS_STORE_PORT": "2380"}
