# src/cloudmcp/adapters/routers/root_router.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Sidecar index: service identity and endpoint map."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from cloudmcp import __version__
from cloudmcp.adapters.routers.dependencies import get_clock, get_metrics_provider
from cloudmcp.adapters.schemas.http.health import ServiceInfoHTTP
from cloudmcp.infrastructure.concurrency.cancellation import Clock
from cloudmcp.infrastructure.observability.metrics import MetricsProvider

router = APIRouter()


@router.get(
    "/",
    summary="Service index",
    operation_id="service_index",
    response_model=ServiceInfoHTTP,
)
async def index(
    provider: Annotated[MetricsProvider, Depends(get_metrics_provider)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> ServiceInfoHTTP:
    return ServiceInfoHTTP(
        version=__version__,
        timestamp=clock.now(),
        metrics_enabled=provider.enabled,
    )
