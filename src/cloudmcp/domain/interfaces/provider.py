# src/cloudmcp/domain/interfaces/provider.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""
Cloud provider interface.

Purpose:
- Define the narrow contract through which a cloud provider integration
  contributes tools and a health check to the broker.
- Keep provider SDKs, HTTP transports and per-resource handlers out of the core.

Layer: domain

Notes:
- Implementations translate transport errors into domain exceptions and
  must not place credentials in tool results or health details.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from cloudmcp.domain.entities.health import ComponentHealth
from cloudmcp.domain.entities.tool import ToolDescriptor


class CloudProvider(Protocol):
    """Protocol for provider integrations attached at bootstrap."""

    @property
    def name(self) -> str:
        """Stable provider identifier, used as the health component key."""

    def tools(self) -> Iterable[ToolDescriptor]:
        """Return the tools this provider contributes to the registry."""

    async def health_check(self) -> ComponentHealth:
        """Probe the provider and report its health.

        Implementations may take arbitrarily long; callers bound the wait.
        """
