# src/cloudmcp/adapters/routers/dependencies.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Route dependencies resolving sidecar collaborators from ``app.state``.

The app factory stores collaborators on ``app.state``; tests override these
dependencies with ``app.dependency_overrides`` when they need fakes.
"""

from __future__ import annotations

from fastapi import Request

from cloudmcp.application.services.health_service import HealthService
from cloudmcp.infrastructure.concurrency.cancellation import Clock
from cloudmcp.infrastructure.observability.metrics import MetricsProvider

__all__ = ["get_clock", "get_health_service", "get_metrics_provider"]


def get_health_service(request: Request) -> HealthService:
    return request.app.state.health_service


def get_metrics_provider(request: Request) -> MetricsProvider:
    return request.app.state.metrics


def get_clock(request: Request) -> Clock:
    return request.app.state.clock
