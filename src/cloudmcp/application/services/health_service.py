# src/cloudmcp/application/services/health_service.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Health Service (Application Layer).

Purpose:
    Evaluate broker health for the sidecar: a cheap liveness check and a
    deep check that fans out to every component in parallel.

Design:
    * Liveness reports ``degraded`` when metrics collection is disabled and
      ``healthy`` otherwise; it performs no I/O.
    * Deep health always includes the ``metrics_provider`` component plus
      every attached check (one per provider). Each check is bounded; a check
      that overruns is ``unhealthy`` with message ``"timeout"`` and a check
      that raises is ``unhealthy`` with the exception type. Neither fails
      the whole evaluation.
"""

from __future__ import annotations

import asyncio
import dataclasses
from collections.abc import Awaitable, Callable
from typing import Final

from cloudmcp.domain.entities.health import (
    ComponentHealth,
    HealthState,
    HealthStatus,
    determine_overall_status,
    summarize_components,
)
from cloudmcp.infrastructure.concurrency.cancellation import Clock, SystemClock
from cloudmcp.infrastructure.logging.logger import get_json_logger
from cloudmcp.infrastructure.observability.metrics import MetricsProvider

__all__ = ["METRICS_COMPONENT", "ComponentCheck", "HealthService"]

logger = get_json_logger(__name__)

ComponentCheck = Callable[[], Awaitable[ComponentHealth]]

METRICS_COMPONENT: Final[str] = "metrics_provider"
_METRICS_DISABLED: Final[str] = "Metrics collection is disabled"


class HealthService:
    """Quick and deep health evaluation.

    Args:
        metrics: Metrics provider whose state drives liveness.
        clock: Time source for timestamps and durations.
        check_timeout: Default per-component bound of deep checks, in seconds.
    """

    def __init__(
        self,
        metrics: MetricsProvider,
        *,
        clock: Clock | None = None,
        check_timeout: float = 5.0,
    ) -> None:
        self._metrics = metrics
        self._clock = clock or SystemClock()
        self._check_timeout = check_timeout
        self._checks: dict[str, ComponentCheck] = {}

    def add_check(self, name: str, check: ComponentCheck) -> None:
        """Attach a deep-health check under ``name`` (replacing any previous one)."""
        if name == METRICS_COMPONENT:
            raise ValueError(f"'{METRICS_COMPONENT}' is reserved")
        self._checks[name] = check

    @property
    def component_names(self) -> list[str]:
        return [METRICS_COMPONENT, *sorted(self._checks)]

    def _elapsed_ms(self, start: float) -> float:
        return round((self._clock.monotonic() - start) * 1000.0, 3)

    async def quick_check(self) -> HealthStatus:
        """Return liveness without touching external dependencies."""
        start = self._clock.monotonic()
        timestamp = self._clock.now()
        if not self._metrics.enabled:
            state, message = HealthState.DEGRADED, _METRICS_DISABLED
        else:
            self._metrics.record_health_check("health")
            state, message = HealthState.HEALTHY, "All systems operational"
        return HealthStatus(
            status=state,
            message=message,
            timestamp=timestamp,
            duration_ms=self._elapsed_ms(start),
        )

    async def comprehensive_check(self, timeout: float | None = None) -> HealthStatus:
        """Run every component check in parallel and aggregate the result.

        Args:
            timeout: Per-component bound in seconds; defaults to the service's.

        Returns:
            HealthStatus: Overall state, per-component results and a summary.
        """
        bound = self._check_timeout if timeout is None else timeout
        start = self._clock.monotonic()
        timestamp = self._clock.now()
        self._metrics.record_health_check("provider_health")

        checks: dict[str, ComponentCheck] = {METRICS_COMPONENT: self._metrics_component}
        checks.update(sorted(self._checks.items()))
        results = await asyncio.gather(
            *(self._run_check(name, check, bound) for name, check in checks.items())
        )
        components = dict(zip(checks, results, strict=True))

        overall = determine_overall_status(c.status for c in components.values())
        healthy = sum(1 for c in components.values() if c.status is HealthState.HEALTHY)
        duration_ms = self._elapsed_ms(start)
        status = HealthStatus(
            status=overall,
            message=summarize_components(components),
            timestamp=timestamp,
            duration_ms=duration_ms,
            components=components,
            metrics={
                "check_duration_seconds": duration_ms / 1000.0,
                "total_components": len(components),
                "healthy_components": healthy,
                "total_providers": len(self._checks),
            },
        )
        if overall is not HealthState.HEALTHY:
            logger.warning(
                "deep_health_not_healthy",
                extra={
                    "extra": {
                        "status": overall.value,
                        "components": {n: c.status.value for n, c in components.items()},
                    }
                },
            )
        return status

    async def _run_check(self, name: str, check: ComponentCheck, timeout: float) -> ComponentHealth:
        start = self._clock.monotonic()
        try:
            result = await asyncio.wait_for(check(), timeout=timeout)
        except TimeoutError:
            return ComponentHealth(
                status=HealthState.UNHEALTHY,
                message="timeout",
                last_checked=self._clock.now(),
                duration_ms=self._elapsed_ms(start),
            )
        except Exception as exc:
            logger.warning(
                "health_check_failed",
                extra={"extra": {"component": name, "error": type(exc).__name__}},
            )
            return ComponentHealth(
                status=HealthState.UNHEALTHY,
                message=f"check failed: {type(exc).__name__}",
                last_checked=self._clock.now(),
                duration_ms=self._elapsed_ms(start),
            )
        return dataclasses.replace(result, duration_ms=self._elapsed_ms(start))

    async def _metrics_component(self) -> ComponentHealth:
        if not self._metrics.enabled:
            return ComponentHealth(
                status=HealthState.DEGRADED,
                message=_METRICS_DISABLED,
                last_checked=self._clock.now(),
            )
        await asyncio.to_thread(self._metrics.render)
        return ComponentHealth(
            status=HealthState.HEALTHY,
            message="Metrics provider is responsive",
            last_checked=self._clock.now(),
        )
