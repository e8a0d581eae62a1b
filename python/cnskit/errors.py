"""Typed errors shared by the CNS toolkit and console."""

from __future__ import annotations

from typing import Optional


class CnsError(RuntimeError):
    """Base class for every recoverable console/toolkit error."""

    label = "Error"

    def __init__(self, detail: Optional[str] = None, *, location: Optional[str] = None) -> None:
        self.detail = detail
        self.location = location
        super().__init__(self._compose())

    def _compose(self) -> str:
        text = self.label
        if self.detail:
            text = f"{text}: {self.detail}"
        if self.location:
            text = f"{self.location}: {text}"
        return text

    def with_location(self, location: str) -> "CnsError":
        """Return a copy of this error annotated with *location* (file and line).

        An existing location (a nested script) stays, after the new one.
        """
        if self.location:
            location = f"{location}: {self.location}"
        clone = type(self)(self.detail, location=location)
        clone.__cause__ = self
        return clone


class OptionError(CnsError):
    label = "Illegal option"


class CommandError(CnsError):
    label = "Illegal command"


class MissingArgumentError(CnsError):
    label = "Missing argument"


class ArgumentError(CnsError):
    label = "Invalid argument"


class VariableError(CnsError):
    label = "Invalid variable"


class TypeMismatchError(CnsError):
    label = "Type mismatch"


class StoreConnectionError(CnsError):
    """No active remote session, or the session could not be established."""

    label = "No connection"


class WatchError(StoreConnectionError):
    label = "Watch error"


class ContextError(CnsError):
    """No context id is configured."""

    label = "No context"


class RemoteOperationError(CnsError):
    label = "Remote error"


class FormatError(CnsError):
    label = "Invalid format"


class ScriptIOError(CnsError):
    label = "File error"


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
]
