# src/cloudmcp/dependencies/core/bootstrap.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Core bootstrap for the broker (registry, sidecar, dispatcher, providers).

This module owns the lifecycle of everything the process shares: the metrics
provider, tool registry, health service, metrics/health sidecar and the
shared HTTP client handed to cloud providers. Configuration comes from
Settings and the ConfigManager; all heavy lifting is delegated to the
infrastructure and MCP modules.

The single public surface is :func:`bootstrap`, an async context manager that
yields a :class:`BootstrapState`. The sidecar is listening once the context
is entered and is stopped, within its shutdown timeout, on exit.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import httpx

from cloudmcp.adapters.sidecar_app import create_sidecar_app
from cloudmcp.application.services.health_service import HealthService
from cloudmcp.config.document import SystemSettings, resolve_system_settings
from cloudmcp.config.manager import ConfigManager
from cloudmcp.config.settings import Settings
from cloudmcp.domain.exceptions import SidecarError
from cloudmcp.domain.interfaces.provider import CloudProvider
from cloudmcp.infrastructure.concurrency.cancellation import Clock, SystemClock
from cloudmcp.infrastructure.http.metrics_server import MetricsServer, MetricsServerConfig
from cloudmcp.infrastructure.logging.logger import get_json_logger
from cloudmcp.infrastructure.observability.metrics import MetricsProvider
from cloudmcp.mcp.capabilities import builtin_tools
from cloudmcp.mcp.dispatcher import Dispatcher
from cloudmcp.mcp.registry import ToolRegistry

__all__ = ["BootstrapState", "ProviderFactory", "bootstrap"]

logger = get_json_logger(__name__)

# Builds a provider from the live configuration and the shared HTTP client.
ProviderFactory = Callable[[ConfigManager, httpx.AsyncClient], CloudProvider]

_PROVIDER_HTTP_TIMEOUT_S = 30.0


@dataclass
class BootstrapState:
    """State yielded by the bootstrap context manager."""

    settings: Settings
    system: SystemSettings
    manager: ConfigManager
    metrics: MetricsProvider
    registry: ToolRegistry
    health: HealthService
    sidecar: MetricsServer
    dispatcher: Dispatcher
    http_client: httpx.AsyncClient
    providers: list[CloudProvider] = field(default_factory=list)


@asynccontextmanager
async def bootstrap(
    settings: Settings,
    manager: ConfigManager,
    *,
    provider_factories: Sequence[ProviderFactory] = (),
    metrics: MetricsProvider | None = None,
    clock: Clock | None = None,
) -> AsyncGenerator[BootstrapState, None]:
    """Initialize and tear down the broker's shared components.

    Responsibilities:
        * Resolve effective system settings (file values + env overrides).
        * Build the metrics provider, tool registry and health service.
        * Instantiate providers, register their tools and health checks.
        * Start the sidecar, and stop it on exit even on error.

    Args:
        settings: Environment settings.
        manager: Loaded configuration manager.
        provider_factories: Factories of the cloud providers to attach.
        metrics: Metrics provider to use; a private one is built by default.
        clock: Time source shared by health, rate limiting and dispatch.

    Yields:
        BootstrapState: The wired components.

    Raises:
        TLSConfig: TLS is enabled with an unusable certificate pair.
        BindFailed: The sidecar port cannot be bound.
        ToolDuplicate: Two tools share a name.
    """
    clock = clock or SystemClock()
    system = resolve_system_settings(manager.snapshot().system, settings)
    metrics = metrics or MetricsProvider(enabled=system.enable_metrics)
    logger.info(
        "bootstrap_start",
        extra={"extra": {"server_name": system.server_name, "metrics": system.enable_metrics}},
    )

    async with httpx.AsyncClient(timeout=_PROVIDER_HTTP_TIMEOUT_S) as http_client:
        providers = [factory(manager, http_client) for factory in provider_factories]

        sidecar_config = MetricsServerConfig.from_settings(settings, system)
        health = HealthService(
            metrics, clock=clock, check_timeout=sidecar_config.health_check_timeout
        )
        sidecar = MetricsServer(
            sidecar_config,
            create_sidecar_app(sidecar_config, metrics=metrics, health=health, clock=clock),
        )

        def metrics_endpoint() -> str | None:
            return f"{sidecar.url}/metrics" if sidecar.url else None

        registry = ToolRegistry()
        registry.register_all(
            builtin_tools(
                server_name=system.server_name,
                registry=registry,
                metrics=metrics,
                manager=manager,
                metrics_endpoint=metrics_endpoint,
                providers=[provider.name for provider in providers],
                clock=clock,
            )
        )
        for provider in providers:
            registry.register_all(provider.tools())
            health.add_check(provider.name, provider.health_check)
        metrics.set_tools_registered(registry.count())

        dispatcher = Dispatcher(
            registry,
            server_name=system.server_name,
            metrics=metrics,
            max_in_flight=settings.dispatch_max_in_flight,
            shutdown_timeout=settings.dispatch_shutdown_timeout_s,
            clock=clock,
        )

        await sidecar.start()
        state = BootstrapState(
            settings=settings,
            system=system,
            manager=manager,
            metrics=metrics,
            registry=registry,
            health=health,
            sidecar=sidecar,
            dispatcher=dispatcher,
            http_client=http_client,
            providers=providers,
        )
        logger.info(
            "bootstrap_ready",
            extra={
                "extra": {
                    "tools": registry.count(),
                    "providers": len(providers),
                    "sidecar_url": sidecar.url,
                }
            },
        )
        try:
            yield state
        finally:
            if sidecar.running:
                try:
                    await sidecar.stop()
                except SidecarError:
                    logger.exception("bootstrap_sidecar_stop_failed")
            logger.info("bootstrap_stop")
