# src/cloudmcp/adapters/routers/health_router.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Health endpoints (Adapters Layer).

Purpose:
    Expose liveness (``/health``) and deep provider health
    (``/provider/health``) for operational tooling.

Design:
    * Status codes: 200 healthy, 206 degraded, 503 unhealthy.
    * Responses are never cached by intermediaries.
    * The health service is injected; routes hold no state.
"""

from __future__ import annotations

from typing import Annotated, Final

from fastapi import APIRouter, Depends, Response, status

from cloudmcp.adapters.routers.dependencies import get_health_service
from cloudmcp.adapters.schemas.http.health import HealthStatusHTTP
from cloudmcp.application.services.health_service import HealthService
from cloudmcp.domain.entities.health import HealthState
from cloudmcp.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)
router = APIRouter()

_STATUS_CODES: Final[dict[HealthState, int]] = {
    HealthState.HEALTHY: status.HTTP_200_OK,
    HealthState.DEGRADED: status.HTTP_206_PARTIAL_CONTENT,
    HealthState.UNHEALTHY: status.HTTP_503_SERVICE_UNAVAILABLE,
}
_NO_CACHE: Final[str] = "no-cache, no-store, must-revalidate"


def _apply(response: Response, state: HealthState) -> None:
    response.status_code = _STATUS_CODES[state]
    response.headers["Cache-Control"] = _NO_CACHE


@router.get(
    "/health",
    summary="Liveness",
    operation_id="health_liveness",
    response_model=HealthStatusHTTP,
    response_model_exclude_none=True,
    responses={
        206: {"description": "Degraded", "model": HealthStatusHTTP},
        503: {"description": "Unhealthy", "model": HealthStatusHTTP},
    },
)
async def health(
    response: Response,
    service: Annotated[HealthService, Depends(get_health_service)],
) -> HealthStatusHTTP:
    """Return a fast liveness signal (no external I/O)."""
    result = await service.quick_check()
    _apply(response, result.status)
    return HealthStatusHTTP.from_entity(result)


@router.get(
    "/provider/health",
    summary="Deep health",
    operation_id="health_provider",
    response_model=HealthStatusHTTP,
    response_model_exclude_none=True,
    responses={
        206: {"description": "Degraded", "model": HealthStatusHTTP},
        503: {"description": "Unhealthy", "model": HealthStatusHTTP},
    },
)
async def provider_health(
    response: Response,
    service: Annotated[HealthService, Depends(get_health_service)],
) -> HealthStatusHTTP:
    """Aggregate every component check, each bounded by the configured timeout."""
    result = await service.comprehensive_check()
    _apply(response, result.status)
    logger.info(
        "provider_health_probe",
        extra={
            "extra": {
                "overall": result.status.value,
                "components": {n: c.status.value for n, c in result.components.items()},
                "duration_ms": result.duration_ms,
            }
        },
    )
    return HealthStatusHTTP.from_entity(result, deep=True)
