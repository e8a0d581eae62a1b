"""Node commands: whoami, map, memory and network."""

from __future__ import annotations

import ipaddress
import socket
from typing import Dict, List, Optional

import psutil

from cnskit.errors import ContextError
from cnskit.paths import join_path, split_path
from cnskit.session import CONTEXTS_PATH, Session
from cnskit.tree import TreeNode

from .base import Command
from ..context import ConsoleContext
from ..output import emit_properties, emit_rendered

DETAIL_FLAG = "-l"


class WhoamiCommand(Command):
    def __init__(self) -> None:
        super().__init__("whoami", "Display the current context")

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        context = str(ctx.session.config.get("CNS_CONTEXT") or "")
        if not context:
            raise ContextError()
        emit_rendered(ctx, context, "context")
        return 0


class _Connection:
    __slots__ = ("alias", "properties")

    def __init__(self) -> None:
        self.alias: Optional[str] = None
        self.properties: Dict[str, str] = {}


def node_map(session: Session, detailed: bool = False) -> List[TreeNode]:
    """Contexts → capabilities → connections (→ properties when *detailed*).

    A capability profile ending in ``:provider`` lists its connections by
    their consumer, any other profile by its provider.
    """
    root = join_path(split_path(str(session.config.get("CNS_PREFIX") or "")) + split_path(CONTEXTS_PATH))
    depth = len(split_path(root))
    names: Dict[str, str] = {}
    contexts: Dict[str, Dict[str, Dict[str, _Connection]]] = {}

    for key, value in session.select(f"/{root}/*/name").items():
        context_id = split_path(key)[depth]
        names[context_id] = value
        contexts.setdefault(context_id, {})

    def connection(segments: List[str]) -> _Connection:
        context_id, _, profile, _, connection_id = segments[:5]
        profiles = contexts.setdefault(context_id, {})
        return profiles.setdefault(profile, {}).setdefault(connection_id, _Connection())

    for key, value in session.select(f"/{root}/*/capabilities/*/connections/*/*").items():
        segments = split_path(key)[depth:]
        role = "consumer" if segments[2].endswith(":provider") else "provider"
        if segments[5] == role:
            connection(segments).alias = value
    if detailed:
        for key, value in session.select(f"/{root}/*/capabilities/*/connections/*/properties/*").items():
            segments = split_path(key)[depth:]
            connection(segments).properties[segments[6]] = value

    nodes = []
    for context_id in sorted(contexts):
        label = names.get(context_id, context_id)
        if detailed:
            label = f"{label} ({context_id})"
        capabilities = []
        for profile in sorted(contexts[context_id]):
            links = []
            for connection_id, link in sorted(contexts[context_id][profile].items()):
                alias = link.alias or connection_id
                if detailed:
                    alias = f"{alias} ({connection_id})"
                props = tuple(TreeNode(name, value) for name, value in sorted(link.properties.items()))
                links.append(TreeNode(alias, children=props))
            capabilities.append(TreeNode(profile, children=tuple(links)))
        nodes.append(TreeNode(label, children=tuple(capabilities)))
    return nodes


class MapCommand(Command):
    def __init__(self) -> None:
        super().__init__("map", "Display the node map", usage="map [-l]", max_args=1)

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        detailed = bool(argv) and argv[0] == DETAIL_FLAG
        emit_rendered(ctx, node_map(ctx.session, detailed), "node")
        return 0


class MemoryCommand(Command):
    def __init__(self) -> None:
        super().__init__(
            "memory",
            "Display memory properties",
            aliases=("m", "mem"),
            usage="memory [name]",
            max_args=1,
        )

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        usage = psutil.Process().memory_info()._asdict()
        emit_properties(ctx, "memory", usage, argv[0] if argv else None)
        return 0


def _address(snic) -> Dict[str, str]:
    return {
        "family": "IPv4" if snic.family == socket.AF_INET else str(getattr(snic.family, "name", snic.family)),
        "address": snic.address,
        "netmask": snic.netmask or "",
        "broadcast": snic.broadcast or "",
    }


def _external_ipv4(snic) -> bool:
    if snic.family != socket.AF_INET:
        return False
    try:
        return not ipaddress.ip_address(snic.address).is_loopback
    except ValueError:
        return False


class NetworkCommand(Command):
    """Show the host's external IPv4 addresses, or every interface with ``-l``."""

    def __init__(self) -> None:
        super().__init__(
            "network",
            "Display network properties",
            aliases=("n", "net"),
            usage="network [-l | name]",
            max_args=1,
        )

    def run(self, ctx: ConsoleContext, argv: List[str]) -> int:
        interfaces = psutil.net_if_addrs()
        if argv and argv[0] == DETAIL_FLAG:
            nodes = []
            for name in sorted(interfaces):
                entries = tuple(
                    TreeNode(str(index), children=tuple(TreeNode(k, v) for k, v in _address(snic).items() if v))
                    for index, snic in enumerate(interfaces[name])
                )
                nodes.append(TreeNode(name, children=entries))
            emit_rendered(ctx, nodes, "network")
            return 0
        for name in sorted(interfaces):
            for snic in interfaces[name]:
                if _external_ipv4(snic):
                    emit_properties(ctx, "network", _address(snic), argv[0] if argv else None)
        return 0
