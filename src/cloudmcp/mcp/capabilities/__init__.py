# src/cloudmcp/mcp/capabilities/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Built-in tools of the broker."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from cloudmcp.config.manager import ConfigManager
from cloudmcp.domain.entities.tool import ToolDescriptor
from cloudmcp.infrastructure.concurrency.cancellation import Clock
from cloudmcp.infrastructure.observability.metrics import MetricsProvider
from cloudmcp.mcp.capabilities.accounts import AccountTools
from cloudmcp.mcp.capabilities.health_check import HealthCheckTool
from cloudmcp.mcp.capabilities.hello import hello_tool
from cloudmcp.mcp.capabilities.version import version_tool
from cloudmcp.mcp.registry import ToolRegistry

__all__ = ["AccountTools", "HealthCheckTool", "builtin_tools"]


def builtin_tools(
    *,
    server_name: str,
    registry: ToolRegistry,
    metrics: MetricsProvider,
    manager: ConfigManager | None = None,
    metrics_endpoint: Callable[[], str | None] | None = None,
    providers: Sequence[str] = (),
    clock: Clock | None = None,
) -> list[ToolDescriptor]:
    """Return the built-in tool descriptors.

    Account tools are included only when a configuration manager is given.
    ``health_check`` reads tool names from ``registry`` at call time.
    """
    tools = [
        hello_tool(),
        version_tool(),
        HealthCheckTool(
            server_name=server_name,
            tool_names=registry.names,
            metrics=metrics,
            metrics_endpoint=metrics_endpoint,
            providers=providers,
            clock=clock,
        ).descriptor(),
    ]
    if manager is not None:
        tools.extend(AccountTools(manager).descriptors())
    return tools
