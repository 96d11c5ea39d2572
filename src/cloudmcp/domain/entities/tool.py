# src/cloudmcp/domain/entities/tool.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Tool entities.

Purpose:
    Describe a callable tool (name, description, input schema, handler) and
    the structured result a handler yields. Handlers are plain async
    callables; built-in and provider-bound tools share this shape.

Layer:
    domain

Notes:
    - ``ToolDescriptor`` keeps a private deep copy of its input schema and
      hands out copies, so the advertised schema stays equal across calls.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, Protocol

if TYPE_CHECKING:
    from cloudmcp.infrastructure.concurrency.cancellation import CancellationToken

__all__ = ["TextContent", "ToolDescriptor", "ToolHandler", "ToolResult"]


@dataclass(frozen=True)
class TextContent:
    """Plain-text content block."""

    text: str
    type: Literal["text"] = "text"


@dataclass(frozen=True)
class ToolResult:
    """Structured handler output.

    Attributes:
        content: Ordered content blocks.
        is_error: Tool-level failure reported as a result, not a protocol error.
    """

    content: Sequence[TextContent] = field(default_factory=tuple)
    is_error: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "content", tuple(self.content))

    @classmethod
    def text(cls, text: str, *, is_error: bool = False) -> ToolResult:
        return cls(content=(TextContent(text=text),), is_error=is_error)

    @classmethod
    def json(cls, payload: Any) -> ToolResult:
        """Return ``payload`` rendered as indented JSON text."""
        return cls.text(json.dumps(payload, indent=2, default=str))


class ToolHandler(Protocol):
    """Async handler contract.

    Handlers receive a cancellation token and the ``arguments`` object of a
    ``tools/call`` request, and return a :class:`ToolResult` or raise a
    domain error.
    """

    async def __call__(
        self, token: CancellationToken, arguments: Mapping[str, Any]
    ) -> ToolResult: ...


@dataclass(frozen=True)
class ToolDescriptor:
    """A registered tool.

    Attributes:
        name: Unique name (``^[a-z0-9][a-z0-9_]{2,49}$``).
        description: Human description (10-500 characters).
        input_schema: JSON-Schema-shaped object describing ``arguments``.
        handler: Coroutine function executing the tool.
    """

    name: str
    description: str
    input_schema: Mapping[str, Any]
    handler: ToolHandler = field(compare=False)

    def __post_init__(self) -> None:
        # Anything other than a mapping is left for validate_descriptor to reject.
        if isinstance(self.input_schema, Mapping):
            object.__setattr__(self, "input_schema", copy.deepcopy(dict(self.input_schema)))

    def schema(self) -> dict[str, Any]:
        """Return a fresh copy of the input schema."""
        return copy.deepcopy(dict(self.input_schema))

    def to_wire(self) -> dict[str, Any]:
        """Return the ``tools/list`` entry for this tool."""
        return {"name": self.name, "description": self.description, "inputSchema": self.schema()}
