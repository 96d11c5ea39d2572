# src/cloudmcp/infrastructure/observability/metrics.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Prometheus metrics provider (registry-injected).

Summary:
    :class:`MetricsProvider` owns a ``CollectorRegistry`` and creates the
    broker's collectors on it lazily, with stable identity: asking for the
    same metric twice returns the same collector, and a collector already
    present on the registry is reused instead of raising a duplicate
    registration error.

Design notes:
- No process-wide state. Each provider is bound to the registry passed at
  construction; when none is passed, a private registry is created with
  the process and platform collectors attached, so ``/metrics`` exposes
  process counters alongside the broker's own series.
- A disabled provider records nothing; the sidecar reports it as degraded.
- All histograms use explicit buckets so ``_bucket/_count/_sum`` series
  appear after the first ``observe(...)`` call.

Example:
    metrics = MetricsProvider()
    metrics.record_tool_execution("hello", "success", 0.002)
    body = metrics.render()
"""

from __future__ import annotations

import threading
from contextlib import suppress
from typing import Final, TypeVar

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

from cloudmcp.infrastructure.logging.logger import get_json_logger

_log = get_json_logger(__name__)

__all__ = ["CONTENT_TYPE_LATEST", "MetricsProvider"]

# Common histogram buckets (seconds)
_BUCKETS: Final[tuple[float, ...]] = (
    0.005,
    0.010,
    0.025,
    0.050,
    0.100,
    0.250,
    0.500,
    1.000,
    2.500,
    5.000,
    10.000,
)

_C = TypeVar("_C", Counter, Gauge, Histogram)


class MetricsProvider:
    """Registry-bound collector factory and recording facade.

    Args:
        enabled: Whether recording is active.
        registry: Registry to bind collectors to. A private registry with
            process/platform collectors is created when omitted.
        namespace: Prefix of every metric name.
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        registry: CollectorRegistry | None = None,
        namespace: str = "cloudmcp",
    ) -> None:
        if registry is None:
            registry = CollectorRegistry(auto_describe=True)
            ProcessCollector(registry=registry)
            PlatformCollector(registry=registry)
        self._registry = registry
        self._enabled = enabled
        self._namespace = namespace
        self._cache: dict[str, Counter | Gauge | Histogram] = {}
        self._lock = threading.RLock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST

    def render(self) -> bytes:
        """Return the text exposition of every collector on the registry."""
        return generate_latest(self._registry)

    # ------------------------------------------------------------------ #
    # Get-or-create helpers
    # ------------------------------------------------------------------ #

    def _lookup_existing(self, name: str, kind: type[_C]) -> _C | None:
        """Return a collector already registered under ``name``, if of ``kind``."""
        with self._lock, suppress(Exception):
            mapping = getattr(self._registry, "_names_to_collectors", None)
            if isinstance(mapping, dict):
                col = mapping.get(name)
                if isinstance(col, kind):
                    return col
        return None

    def _get_or_create(
        self,
        kind: type[_C],
        suffix: str,
        help_text: str,
        *,
        labelnames: tuple[str, ...] = (),
        buckets: tuple[float, ...] | None = None,
    ) -> _C:
        """Get or create a registry-bound collector with stable identity.

        1. Return from the provider cache if present.
        2. If the registry already has a collector by this name, reuse it.
        3. Otherwise, register a new collector.

        Args:
            kind: Collector class.
            suffix: Name without the namespace prefix.
            help_text: Human-readable description.
            labelnames: Label names.
            buckets: Histogram buckets (histograms only).

        Returns:
            The collector bound to this provider's registry.
        """
        name = f"{self._namespace}_{suffix}"
        with self._lock:
            cached = self._cache.get(name)
            if isinstance(cached, kind):
                return cached

            existing = self._lookup_existing(name, kind)
            if existing is not None:
                self._cache[name] = existing
                return existing

            try:
                if kind is Histogram:
                    col = kind(
                        name,
                        help_text,
                        labelnames,
                        buckets=buckets or _BUCKETS,
                        registry=self._registry,
                    )
                else:
                    col = kind(name, help_text, labelnames, registry=self._registry)
            except ValueError:
                _log.exception("metric_registration_failed", extra={"extra": {"metric": name}})
                raise
            self._cache[name] = col
            return col

    # ------------------------------------------------------------------ #
    # Collectors
    # ------------------------------------------------------------------ #

    def tool_executions_total(self) -> Counter:
        return self._get_or_create(
            Counter,
            "tool_executions_total",
            "Tool invocations by tool and outcome.",
            labelnames=("tool", "status"),
        )

    def tool_execution_seconds(self) -> Histogram:
        return self._get_or_create(
            Histogram,
            "tool_execution_seconds",
            "Tool handler latency in seconds.",
            labelnames=("tool",),
        )

    def tools_registered(self) -> Gauge:
        return self._get_or_create(Gauge, "tools_registered", "Number of registered tools.")

    def http_request_seconds(self) -> Histogram:
        return self._get_or_create(
            Histogram,
            "http_request_seconds",
            "Sidecar HTTP request latency in seconds.",
            labelnames=("method", "handler", "status"),
        )

    def http_rate_limited_total(self) -> Counter:
        return self._get_or_create(
            Counter,
            "http_rate_limited_total",
            "Sidecar requests rejected by the rate limiter.",
        )

    def health_checks_total(self) -> Counter:
        return self._get_or_create(
            Counter,
            "health_checks_total",
            "Health evaluations by endpoint.",
            labelnames=("endpoint",),
        )

    # ------------------------------------------------------------------ #
    # Recording (no-ops when disabled)
    # ------------------------------------------------------------------ #

    def record_tool_execution(self, tool: str, status: str, seconds: float) -> None:
        if not self._enabled:
            return
        self.tool_executions_total().labels(tool=tool, status=status).inc()
        self.tool_execution_seconds().labels(tool=tool).observe(max(seconds, 0.0))

    def record_http_request(self, method: str, handler: str, status: int, seconds: float) -> None:
        if not self._enabled:
            return
        self.http_request_seconds().labels(
            method=method, handler=handler, status=str(status)
        ).observe(max(seconds, 0.0))

    def record_rate_limited(self) -> None:
        if self._enabled:
            self.http_rate_limited_total().inc()

    def record_health_check(self, endpoint: str) -> None:
        if self._enabled:
            self.health_checks_total().labels(endpoint=endpoint).inc()

    def set_tools_registered(self, count: int) -> None:
        if self._enabled:
            self.tools_registered().set(count)
