# src/cloudmcp/mcp/registry.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Tool Registry.

Summary:
    Thread-safe, read-mostly catalog of :class:`ToolDescriptor` keyed by
    name. Registration validates the descriptor; enumeration returns a
    point-in-time, name-sorted snapshot even while registrations race.

Validation rules:
    * name: ``[a-z0-9][a-z0-9_]{2,49}`` (3-50 chars, no spaces)
    * description: 10-500 characters
    * input schema: JSON-serializable object whose root ``type``, when
      present, is a JSON-Schema primitive type name
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping
from typing import Final

from cloudmcp.domain.entities.tool import ToolDescriptor
from cloudmcp.domain.exceptions import ToolDuplicate, ToolInvalid, ToolUnknown
from cloudmcp.infrastructure.concurrency.rwlock import ReaderPreferredLock
from cloudmcp.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)

__all__ = ["ToolRegistry", "validate_descriptor"]

_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"[a-z0-9][a-z0-9_]{2,49}")
_DESCRIPTION_MIN: Final[int] = 10
_DESCRIPTION_MAX: Final[int] = 500
_SCHEMA_ROOT_TYPES: Final[frozenset[str]] = frozenset(
    {"object", "array", "string", "number", "integer", "boolean", "null"}
)


def validate_descriptor(descriptor: ToolDescriptor) -> None:
    """Check ``descriptor`` against the registry's naming and schema rules.

    Raises:
        ToolInvalid: With ``details["field"]`` naming the offending attribute.
    """
    name = descriptor.name
    if not isinstance(name, str) or _NAME_PATTERN.fullmatch(name) is None:
        raise ToolInvalid(
            f"Invalid tool name {name!r}: expected 3-50 chars of [a-z0-9_], "
            "starting with a letter or digit",
            details={"field": "name"},
        )
    length = len(descriptor.description or "")
    if not _DESCRIPTION_MIN <= length <= _DESCRIPTION_MAX:
        raise ToolInvalid(
            f"Tool '{name}' description must be {_DESCRIPTION_MIN}-{_DESCRIPTION_MAX} "
            f"characters, got {length}",
            details={"field": "description"},
        )
    schema = descriptor.input_schema
    if not isinstance(schema, Mapping):
        raise ToolInvalid(
            f"Tool '{name}' input schema must be an object", details={"field": "schema"}
        )
    root_type = schema.get("type")
    if root_type is not None and root_type not in _SCHEMA_ROOT_TYPES:
        raise ToolInvalid(
            f"Tool '{name}' input schema has unsupported root type {root_type!r}",
            details={"field": "schema"},
        )
    try:
        json.dumps(schema, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise ToolInvalid(
            f"Tool '{name}' input schema is not JSON-serializable", details={"field": "schema"}
        ) from exc


class ToolRegistry:
    """Name-keyed catalog of tools guarded by a reader-preferred lock."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolDescriptor] = {}
        self._lock = ReaderPreferredLock()

    def register(self, descriptor: ToolDescriptor) -> None:
        """Add ``descriptor`` to the catalog.

        Raises:
            ToolInvalid: The descriptor violates a validation rule.
            ToolDuplicate: A tool with the same name is registered.
        """
        validate_descriptor(descriptor)
        with self._lock.write():
            if descriptor.name in self._tools:
                raise ToolDuplicate(
                    f"Tool '{descriptor.name}' is already registered",
                    details={"toolName": descriptor.name},
                )
            self._tools[descriptor.name] = descriptor
        logger.debug("tool_registered", extra={"extra": {"tool": descriptor.name}})

    def register_all(self, descriptors: Iterable[ToolDescriptor]) -> None:
        """Register each descriptor in order; stops at the first failure."""
        for descriptor in descriptors:
            self.register(descriptor)

    def lookup(self, name: str) -> ToolDescriptor:
        """Return the tool called ``name``.

        Raises:
            ToolUnknown: No such tool.
        """
        with self._lock.read():
            descriptor = self._tools.get(name)
        if descriptor is None:
            raise ToolUnknown(name)
        return descriptor

    def has(self, name: str) -> bool:
        with self._lock.read():
            return name in self._tools

    def enumerate(self) -> list[ToolDescriptor]:
        """Return all tools sorted by name."""
        with self._lock.read():
            snapshot = list(self._tools.values())
        return sorted(snapshot, key=lambda d: d.name)

    def names(self) -> list[str]:
        with self._lock.read():
            return sorted(self._tools)

    def count(self) -> int:
        with self._lock.read():
            return len(self._tools)

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)
