# src/cloudmcp/mcp/capabilities/version.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""MCP Capability: version"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from cloudmcp.domain.entities.tool import ToolDescriptor, ToolResult
from cloudmcp.infrastructure.concurrency.cancellation import CancellationToken
from cloudmcp.mcp.schemas.tools import NoParams
from cloudmcp.version import get_version_info

__all__ = ["version", "version_tool"]


async def version(token: CancellationToken, arguments: Mapping[str, Any]) -> ToolResult:
    """Execute the ``version`` tool: build information as indented JSON."""
    NoParams.model_validate(arguments)
    return ToolResult.json(get_version_info().model_dump())


def version_tool() -> ToolDescriptor:
    return ToolDescriptor(
        name="version",
        description="Returns CloudMCP server version and build information",
        input_schema=NoParams.model_json_schema(),
        handler=version,
    )
