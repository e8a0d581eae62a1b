"""
cnskit - Shared namespace toolkit for CNS front-ends.

This package is the common surface for the console and the dashboard
bridge.  It mirrors a remote slash-keyed namespace, selects subtrees with
wildcard patterns and renders them.  Each module keeps one responsibility:

    paths.py      → path helpers and the wildcard pattern matcher
    events.py     → watch events and the cancellable watch stream
    store.py      → store contract and the in-process memory store
    transport.py  → JSON-over-TCP store gateway client
    mirror.py     → local mirror kept current by the watch stream
    tree.py       → flat entries → nested nodes (and back)
    render.py     → text / tree / table / json / xml output
    properties.py → typed config and output properties
    session.py    → session object owning mirror, variables and statistics
    broadcast.py  → fan-out of snapshots and diffs to display consumers
"""

from .errors import (  # noqa: F401
    ArgumentError,
    CnsError,
    CommandError,
    ContextError,
    FormatError,
    MissingArgumentError,
    OptionError,
    RemoteOperationError,
    ScriptIOError,
    StoreConnectionError,
    TypeMismatchError,
    VariableError,
    WatchError,
)
from .paths import matches, select, split_path, join_path  # noqa: F401
from .store import MemoryStore, NamespaceStore  # noqa: F401
from .transport import GatewayTransport, TransportConfig, TransportError, TransportStore  # noqa: F401
from .mirror import NamespaceMirror  # noqa: F401
from .tree import TreeNode, build_tree, document_to_entries  # noqa: F401
from .render import FORMATS, RenderOptions, render  # noqa: F401
from .session import Session, Statistics  # noqa: F401
from .broadcast import BroadcastChannel, PayloadView  # noqa: F401

__all__ = [
    "CnsError",
    "OptionError",
    "CommandError",
    "MissingArgumentError",
    "ArgumentError",
    "VariableError",
    "TypeMismatchError",
    "StoreConnectionError",
    "WatchError",
    "ContextError",
    "RemoteOperationError",
    "FormatError",
    "ScriptIOError",
    "matches",
    "select",
    "split_path",
    "join_path",
    "NamespaceStore",
    "MemoryStore",
    "GatewayTransport",
    "TransportConfig",
    "TransportError",
    "TransportStore",
    "NamespaceMirror",
    "TreeNode",
    "build_tree",
    "document_to_entries",
    "FORMATS",
    "RenderOptions",
    "render",
    "Session",
    "Statistics",
    "BroadcastChannel",
    "PayloadView",
]

__version__ = "1.0.0"
