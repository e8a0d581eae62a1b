"""Typed property maps backing the ``config`` and ``output`` variables.

Each property declares its scalar kind up front; assignments are coerced
to that kind instead of guessing from whatever value is currently held.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple

from .errors import ArgumentError, TypeMismatchError
from .render import FORMATS

logger = logging.getLogger(__name__)

STRING = "string"
NUMBER = "number"
BOOLEAN = "boolean"


def display_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class Property:
    name: str
    kind: str = STRING
    default: Any = ""
    choices: Tuple[str, ...] = ()
    description: str = ""

    def coerce(self, raw: Any) -> Any:
        text = display_value(raw).strip() if self.kind != STRING else display_value(raw)
        if self.kind == NUMBER:
            try:
                return int(text, 0)
            except ValueError:
                pass
            try:
                return float(text)
            except ValueError:
                raise TypeMismatchError(f"{self.name} expects a number, got '{text}'") from None
        if self.kind == BOOLEAN:
            lowered = text.lower()
            if lowered == "true":
                return True
            if lowered == "false":
                return False
            raise TypeMismatchError(f"{self.name} expects true or false, got '{text}'")
        if self.choices and text not in self.choices:
            raise ArgumentError(f"{self.name} must be one of {', '.join(self.choices)}")
        return text


class PropertyMap:
    """Named, typed values with declared defaults."""

    def __init__(self, schema: Iterable[Property]) -> None:
        self.schema: Dict[str, Property] = {prop.name: prop for prop in schema}
        self._values: Dict[str, Any] = {name: prop.default for name, prop in self.schema.items()}

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __getitem__(self, name: str) -> Any:
        if name not in self._values:
            raise ArgumentError(name)
        return self._values[name]

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def set(self, name: str, raw: Any) -> Any:
        prop = self.schema.get(name)
        if prop is None:
            raise ArgumentError(name)
        value = prop.coerce(raw)
        self._values[name] = value
        return value

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._values)

    def non_defaults(self) -> Dict[str, Any]:
        return {name: value for name, value in self._values.items() if value != self.schema[name].default}

    def load(self, source: Mapping[str, Optional[str]]) -> None:
        """Apply values from *source* (environment or ``.env``), skipping bad ones."""
        for name in self.schema:
            raw = source.get(name)
            if raw is None or raw == "":
                continue
            try:
                self.set(name, raw)
            except (ArgumentError, TypeMismatchError) as exc:
                logger.warning("ignoring %s from environment: %s", name, exc)


CONFIG_SCHEMA: Tuple[Property, ...] = (
    Property("CNS_CONTEXT", STRING, "", description="Context id used for the home path"),
    Property("CNS_PREFIX", STRING, "cns", description="Namespace prefix mirrored from the store"),
    Property("CNS_STORE", STRING, "tcp", choices=("tcp", "memory"), description="Store backend"),
    Property("CNS_STORE_HOST", STRING, "localhost", description="Store gateway host"),
    Property("CNS_STORE_PORT", NUMBER, 2379, description="Store gateway port"),
)

OPTION_SCHEMA: Tuple[Property, ...] = (
    Property("format", STRING, "tree", choices=FORMATS, description="Output format"),
    Property("indent", NUMBER, 2, description="Indent size (0-8)"),
    Property("columns", NUMBER, 0, description="Output width, 0 for terminal width"),
    Property("rows", NUMBER, 0, description="Output height, 0 for terminal height"),
    Property("monochrome", BOOLEAN, False, description="Disable colours"),
    Property("silent", BOOLEAN, False, description="Disable console output"),
    Property("debug", BOOLEAN, False, description="Enable debug output"),
)

# Settings whose change requires a fresh mirror.
CONNECTION_KEYS = frozenset({"CNS_PREFIX", "CNS_STORE", "CNS_STORE_HOST", "CNS_STORE_PORT"})


def config_properties() -> PropertyMap:
    return PropertyMap(CONFIG_SCHEMA)


def option_properties() -> PropertyMap:
    return PropertyMap(OPTION_SCHEMA)


__all__ = [
    "Property",
    "PropertyMap",
    "STRING",
    "NUMBER",
    "BOOLEAN",
    "CONFIG_SCHEMA",
    "OPTION_SCHEMA",
    "CONNECTION_KEYS",
    "config_properties",
    "option_properties",
    "display_value",
]
