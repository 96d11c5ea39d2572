# src/cloudmcp/mcp/capabilities/health_check.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""MCP Capability: health_check

Reports broker status and service discovery data: registered tools,
attached providers, uptime and where metrics are scraped.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any, Final

from cloudmcp.domain.entities.tool import ToolDescriptor, ToolResult
from cloudmcp.infrastructure.concurrency.cancellation import (
    CancellationToken,
    Clock,
    SystemClock,
)
from cloudmcp.infrastructure.observability.metrics import MetricsProvider
from cloudmcp.mcp.schemas.tools import NoParams
from cloudmcp.version import get_version_info

__all__ = ["HealthCheckTool", "advertised_capabilities", "format_uptime"]

# Capability -> tool-name prefix that must be registered for it to be advertised.
_CAPABILITY_TOOLS: Final[tuple[tuple[str, str], ...]] = (
    ("health_monitoring", "health_check"),
    ("service_discovery", "health_check"),
    ("account_management", "account_"),
)


def advertised_capabilities(tool_names: Sequence[str]) -> list[str]:
    """Return the capabilities backed by at least one registered tool."""
    return [
        capability
        for capability, prefix in _CAPABILITY_TOOLS
        if any(name.startswith(prefix) for name in tool_names)
    ]


def format_uptime(seconds: float) -> str:
    """Render an uptime as an ISO-8601 duration (``PT45S``, ``PT2M5S``, ``PT3H``)."""
    total = max(0, int(seconds))
    if total < 60:
        return f"PT{total}S"
    if total < 3600:
        minutes, secs = divmod(total, 60)
        return f"PT{minutes}M" if secs == 0 else f"PT{minutes}M{secs}S"
    hours, rest = divmod(total, 3600)
    minutes = rest // 60
    return f"PT{hours}H" if minutes == 0 else f"PT{hours}H{minutes}M"


class HealthCheckTool:
    """The ``health_check`` tool.

    Args:
        server_name: Label reported under ``serverInfo``.
        tool_names: Callable returning the currently registered tool names.
        metrics: Metrics provider (enabled flag).
        metrics_endpoint: Scrape URL, or ``None`` when the sidecar is not bound.
        providers: Names of attached cloud providers.
        clock: Time source for uptime and timestamp.
    """

    def __init__(
        self,
        *,
        server_name: str,
        tool_names: Callable[[], Sequence[str]],
        metrics: MetricsProvider,
        metrics_endpoint: Callable[[], str | None] | None = None,
        providers: Sequence[str] = (),
        clock: Clock | None = None,
    ) -> None:
        self._server_name = server_name
        self._tool_names = tool_names
        self._metrics = metrics
        self._metrics_endpoint = metrics_endpoint
        self._providers = tuple(providers)
        self._clock = clock or SystemClock()
        self._started = self._clock.monotonic()

    def report(self) -> dict[str, Any]:
        """Return the health payload."""
        info = get_version_info()
        names = list(self._tool_names())
        endpoint = self._metrics_endpoint() if self._metrics_endpoint is not None else None
        metrics: dict[str, Any] = {"enabled": self._metrics.enabled, "backend": "prometheus"}
        if endpoint:
            metrics["endpoint"] = endpoint
        return {
            "status": "healthy",
            "message": "CloudMCP server running",
            "serverInfo": {
                "name": self._server_name,
                "version": info.version,
                "apiVersion": info.api_version,
                "platform": info.platform,
                "gitCommit": info.git_commit,
            },
            "availableServices": {
                "toolsRegistered": len(names),
                "toolNames": names,
                "capabilities": advertised_capabilities(names),
            },
            "providers": {
                "registered": len(self._providers),
                "available": list(self._providers),
            },
            "timestamp": self._clock.now().strftime("%Y-%m-%dT%H:%M:%SZ"),
            "uptime": format_uptime(self._clock.monotonic() - self._started),
            "metrics": metrics,
        }

    async def __call__(self, token: CancellationToken, arguments: Mapping[str, Any]) -> ToolResult:
        NoParams.model_validate(arguments)
        return ToolResult.json(self.report())

    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name="health_check",
            description="Check server health and list available services for CloudMCP shell",
            input_schema=NoParams.model_json_schema(),
            handler=self,
        )
