# src/cloudmcp/domain/entities/health.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Health entities.

Purpose:
    Represent component and aggregate health independently of the HTTP
    surface that reports them. The overall state is derived purely from
    component states: any unhealthy -> unhealthy, else any degraded ->
    degraded, else healthy.

Layer:
    domain
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

__all__ = [
    "ComponentHealth",
    "HealthState",
    "HealthStatus",
    "determine_overall_status",
    "summarize_components",
]


class HealthState(StrEnum):
    """Health of a component or of the whole broker."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass(frozen=True)
class ComponentHealth:
    """Outcome of one health check.

    Attributes:
        status: Component state.
        message: Short, human-readable explanation.
        last_checked: When the check completed (UTC).
        duration_ms: Time spent in the check.
        details: Optional structured diagnostics.
    """

    status: HealthState
    message: str
    last_checked: datetime
    duration_ms: float = 0.0
    details: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class HealthStatus:
    """Aggregate health reported by ``/health`` and ``/provider/health``.

    Attributes:
        status: Overall state.
        message: Human-readable summary.
        timestamp: When the evaluation started (UTC).
        duration_ms: Total evaluation time.
        components: Per-component results (deep health only).
        metrics: Numeric summary of the evaluation.
    """

    status: HealthState
    message: str
    timestamp: datetime
    duration_ms: float
    components: Mapping[str, ComponentHealth] = field(default_factory=dict)
    metrics: Mapping[str, float] = field(default_factory=dict)


def determine_overall_status(states: Iterable[HealthState]) -> HealthState:
    """Derive the overall state from component states.

    An empty input is healthy.
    """
    seen = set(states)
    if HealthState.UNHEALTHY in seen:
        return HealthState.UNHEALTHY
    if HealthState.DEGRADED in seen:
        return HealthState.DEGRADED
    return HealthState.HEALTHY


def summarize_components(components: Mapping[str, ComponentHealth]) -> str:
    """Return the summary message for a set of component results."""
    total = len(components)
    unhealthy = sum(1 for c in components.values() if c.status is HealthState.UNHEALTHY)
    degraded = sum(1 for c in components.values() if c.status is HealthState.DEGRADED)
    if unhealthy:
        return f"{unhealthy} of {total} components are unhealthy"
    if degraded:
        return f"{degraded} of {total} components are degraded"
    return f"All {total} components are healthy"
