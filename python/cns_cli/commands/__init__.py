"""Command registry for the CNS console."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .base import Command
from .connect import ConnectCommand, DisconnectCommand
from .console import CatCommand, ClsCommand, EchoCommand
from .exit import ExitCommand
from .files import HistoryCommand, LoadCommand, SaveCommand
from .help import HelpCommand
from .mutate import DeleteCommand, PurgeCommand, SetCommand
from .navigate import CdCommand, LsCommand, PwdCommand
from .node import MapCommand, MemoryCommand, NetworkCommand, WhoamiCommand
from .query import GetCommand
from .settings import ConfigCommand, InitCommand, OutputCommand, StatusCommand, VersionCommand
from .watch import OnCommand, TopCommand, WaitCommand


class CommandRegistry:
    """Stores the known commands and resolves shortcuts."""

    def __init__(self) -> None:
        self._commands: Dict[str, Command] = {}
        self._shortcuts: Dict[str, Command] = {}
        self._ordered: List[Command] = []

    def register(self, command: Command) -> None:
        self._ordered.append(command)
        self._commands[command.name] = command
        for alias in command.aliases:
            self._shortcuts[alias] = command

    def get(self, name: str) -> Optional[Command]:
        """Case-insensitive lookup, shortcuts first."""
        key = name.lower()
        return self._shortcuts.get(key) or self._commands.get(key)

    def list_commands(self) -> Iterable[Command]:
        return self._ordered

    def names(self) -> List[str]:
        return sorted(set(self._commands) | set(self._shortcuts))


def build_registry() -> CommandRegistry:
    registry = CommandRegistry()
    commands = [
        HelpCommand(),
        VersionCommand(),
        InitCommand(),
        ConfigCommand(),
        OutputCommand(),
        StatusCommand(),
        MemoryCommand(),
        NetworkCommand(),
        WhoamiCommand(),
        ConnectCommand(),
        DisconnectCommand(),
        PwdCommand(),
        CdCommand(),
        LsCommand(),
        MapCommand(),
        GetCommand(),
        SetCommand(),
        DeleteCommand(),
        PurgeCommand(),
        OnCommand(),
        TopCommand(),
        WaitCommand(),
        ClsCommand(),
        CatCommand(),
        EchoCommand(),
        HistoryCommand(),
        SaveCommand(),
        LoadCommand(),
        ExitCommand(),
    ]
    for command in commands:
        registry.register(command)
        bind = getattr(command, "bind", None)
        if callable(bind):
            bind(registry)
    return registry


__all__ = ["Command", "CommandRegistry", "build_registry"]
