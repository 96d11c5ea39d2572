# src/cloudmcp/adapters/routers/metrics_router.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Prometheus scrape endpoint (Adapters Layer)."""

from __future__ import annotations

import asyncio
from typing import Annotated, Final

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import PlainTextResponse

from cloudmcp.adapters.routers.dependencies import get_metrics_provider
from cloudmcp.infrastructure.observability.metrics import MetricsProvider

router = APIRouter()

METRICS_DISABLED_BODY: Final[str] = "# Metrics collection is disabled\n"


@router.get("/metrics", summary="Prometheus metrics", operation_id="metrics_scrape")
async def metrics(
    provider: Annotated[MetricsProvider, Depends(get_metrics_provider)],
) -> Response:
    """Return the text exposition, or ``503`` when collection is disabled."""
    if not provider.enabled:
        return PlainTextResponse(
            METRICS_DISABLED_BODY, status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )
    body = await asyncio.to_thread(provider.render)
    return Response(content=body, media_type=provider.content_type)
