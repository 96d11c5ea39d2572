# src/cloudmcp/mcp/capabilities/hello.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""MCP Capability: hello"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from cloudmcp.domain.entities.tool import ToolDescriptor, ToolResult
from cloudmcp.infrastructure.concurrency.cancellation import CancellationToken
from cloudmcp.mcp.schemas.tools import HelloParams

__all__ = ["hello", "hello_tool"]


async def hello(token: CancellationToken, arguments: Mapping[str, Any]) -> ToolResult:
    """Execute the ``hello`` tool.

    Args:
        token: Request cancellation token.
        arguments: ``{"name": str}``; the name defaults to ``World``.

    Returns:
        ToolResult: One greeting text block.
    """
    params = HelloParams.model_validate(arguments)
    return ToolResult.text(
        f"Hello, {params.name}! CloudMCP server is running and ready to help."
    )


def hello_tool() -> ToolDescriptor:
    return ToolDescriptor(
        name="hello",
        description="Responds with a friendly greeting message from CloudMCP",
        input_schema=HelloParams.model_json_schema(),
        handler=hello,
    )
