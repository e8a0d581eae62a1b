"""
Pytest configuration and fixtures for CNS tests.
"""
import sys
from pathlib import Path

import pytest

PYTHON_SRC = Path(__file__).resolve().parents[1]
if str(PYTHON_SRC) not in sys.path:
    sys.path.append(str(PYTHON_SRC))

from cnskit.session import Session  # noqa: E402
from cnskit.store import MemoryStore  # noqa: E402
from cns_cli.context import ConsoleContext  # noqa: E402
from cns_cli.interpreter import Interpreter  # noqa: E402

SAMPLE = {
    "cns/network/name": "Demo Network",
    "cns/network/nodes/n1/name": "Node One",
    "cns/network/nodes/n1/contexts/c1/name": "Context One",
    "cns/network/nodes/n2/name": "Node Two",
}


@pytest.fixture
def store():
    return MemoryStore(dict(SAMPLE))


@pytest.fixture
def session(store):
    """Connected session over an in-process store; events are pumped by hand."""
    sess = Session(store_factory=lambda config: store, background=False, environ={})
    sess.connect()
    yield sess
    sess.close()


@pytest.fixture
def console(session):
    """Interpreter over the connected session with a fixed output width."""
    session.options.set("columns", "80")
    ctx = ConsoleContext(session=session)
    interpreter = Interpreter(ctx)
    yield interpreter
    ctx.close()


@pytest.fixture
def run(console):
    """Execute a line on the console fixture and return what it printed."""

    def run_line(line: str) -> str:
        with console.ctx.capture() as chunks:
            console.execute_line(line)
        return "".join(chunks)

    return run_line
