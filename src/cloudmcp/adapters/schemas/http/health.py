# src/cloudmcp/adapters/schemas/http/health.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Sidecar health and index response schemas.

Layer: adapters/schemas/http
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from cloudmcp.adapters.schemas.http.base import BaseHTTPSchema
from cloudmcp.domain.entities.health import ComponentHealth, HealthState, HealthStatus

__all__ = ["ComponentHealthHTTP", "EndpointMap", "HealthStatusHTTP", "ServiceInfoHTTP"]


class ComponentHealthHTTP(BaseHTTPSchema):
    """One component of a deep-health response."""

    status: HealthState
    message: str
    last_checked: datetime
    duration_ms: float
    details: dict[str, Any] | None = None

    @classmethod
    def from_entity(cls, component: ComponentHealth) -> ComponentHealthHTTP:
        return cls(
            status=component.status,
            message=component.message,
            last_checked=component.last_checked,
            duration_ms=component.duration_ms,
            details=dict(component.details) or None,
        )


class HealthStatusHTTP(BaseHTTPSchema):
    """Body of ``/health`` and ``/provider/health``."""

    status: HealthState = Field(..., examples=["healthy", "degraded", "unhealthy"])
    message: str
    timestamp: datetime
    duration_ms: float
    components: dict[str, ComponentHealthHTTP] | None = None
    metrics: dict[str, float] | None = None

    @classmethod
    def from_entity(cls, status: HealthStatus, *, deep: bool = False) -> HealthStatusHTTP:
        return cls(
            status=status.status,
            message=status.message,
            timestamp=status.timestamp,
            duration_ms=status.duration_ms,
            components=(
                {n: ComponentHealthHTTP.from_entity(c) for n, c in status.components.items()}
                if deep
                else None
            ),
            metrics=dict(status.metrics) if deep else None,
        )


class EndpointMap(BaseHTTPSchema):
    """Paths served by the sidecar."""

    metrics: str = "/metrics"
    health: str = "/health"
    provider_health: str = "/provider/health"


class ServiceInfoHTTP(BaseHTTPSchema):
    """Body of ``/``."""

    service: str = "CloudMCP Metrics Server"
    status: str = "running"
    version: str
    timestamp: datetime
    endpoints: EndpointMap = Field(default_factory=EndpointMap)
    metrics_enabled: bool
