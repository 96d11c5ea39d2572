# src/cloudmcp/domain/exceptions/registry.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Tool Registry Exceptions."""

from __future__ import annotations

from cloudmcp.domain.exceptions.base import DomainError

__all__ = ["RegistryError", "ToolDuplicate", "ToolInvalid", "ToolUnknown"]


class RegistryError(DomainError):
    """Base class for tool registry errors."""

    code = "REGISTRY_ERROR"


class ToolDuplicate(RegistryError):
    """A tool with the same name is already registered."""

    code = "TOOL_DUPLICATE"


class ToolInvalid(RegistryError):
    """The tool descriptor violates a naming, description or schema rule."""

    code = "TOOL_INVALID"


class ToolUnknown(RegistryError):
    """No tool is registered under the requested name."""

    code = "TOOL_UNKNOWN"

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Tool unknown: {tool_name}", details={"toolName": tool_name})
        self.tool_name = tool_name
