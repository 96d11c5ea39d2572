# src/cloudmcp/adapters/sidecar_app.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""
Sidecar Application Factory (Adapters Bootstrap)

Synopsis:
    Builds the FastAPI app served by the metrics/health sidecar: routers,
    middleware and error handlers. The app carries no MCP traffic.

Design:
    * Bootstrap only: collaborators are passed in and parked on ``app.state``.
    * No OpenAPI/docs endpoints; the sidecar exposes exactly four paths.
    * Middleware order, outermost first:
        1. AccessLogMiddleware (structured access logs)
        2. RequestLatencyMiddleware (latency histogram)
        3. SecurityHeadersMiddleware (headers on every response, 401/429 included)
        4. RateLimitMiddleware (shared token bucket)
        5. BasicAuthMiddleware (only when credentials are configured)
        6. RecoveryMiddleware (handler failures become 500 envelopes)
"""

from __future__ import annotations

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from cloudmcp import __version__
from cloudmcp.adapters.routers import health_router, metrics_router, root_router
from cloudmcp.application.services.health_service import HealthService
from cloudmcp.infrastructure.concurrency.cancellation import Clock, SystemClock
from cloudmcp.infrastructure.http.errors import handle_http_exception
from cloudmcp.infrastructure.http.metrics_server import MetricsServerConfig
from cloudmcp.infrastructure.logging.logger import get_json_logger
from cloudmcp.infrastructure.middleware.access_log import AccessLogMiddleware
from cloudmcp.infrastructure.middleware.basic_auth import BasicAuthMiddleware
from cloudmcp.infrastructure.middleware.rate_limit import RateLimitMiddleware, TokenBucket
from cloudmcp.infrastructure.middleware.recovery import RecoveryMiddleware
from cloudmcp.infrastructure.middleware.request_metrics import RequestLatencyMiddleware
from cloudmcp.infrastructure.middleware.security_headers import SecurityHeadersMiddleware
from cloudmcp.infrastructure.observability.metrics import MetricsProvider

__all__ = ["create_sidecar_app"]

logger = get_json_logger(__name__)


def _attach_middlewares(
    app: FastAPI, config: MetricsServerConfig, metrics: MetricsProvider, clock: Clock
) -> None:
    """Attach middleware innermost first (Starlette wraps in reverse order)."""
    app.add_middleware(RecoveryMiddleware)

    if config.basic_auth_configured:
        assert config.basic_auth_username is not None
        assert config.basic_auth_password is not None
        app.add_middleware(
            BasicAuthMiddleware,
            username=config.basic_auth_username,
            password=config.basic_auth_password.get_secret_value(),
        )

    if config.rate_limit_enabled:
        bucket = TokenBucket(config.rate_limit_per_second, config.rate_limit_burst, clock=clock)
        app.add_middleware(RateLimitMiddleware, bucket=bucket, metrics=metrics)

    if config.security_headers_enabled:
        app.add_middleware(SecurityHeadersMiddleware, tls_enabled=config.tls_enabled)

    app.add_middleware(RequestLatencyMiddleware, metrics=metrics, clock=clock)
    app.add_middleware(AccessLogMiddleware, clock=clock)


def create_sidecar_app(
    config: MetricsServerConfig,
    *,
    metrics: MetricsProvider,
    health: HealthService,
    clock: Clock | None = None,
) -> FastAPI:
    """Create the sidecar application.

    Args:
        config: Listener and hardening options.
        metrics: Provider behind ``/metrics`` and the latency middleware.
        health: Service behind ``/health`` and ``/provider/health``.
        clock: Time source shared with the rate limiter.

    Returns:
        FastAPI: Configured application, not yet bound to a socket.
    """
    clock = clock or SystemClock()
    app = FastAPI(
        title="CloudMCP Metrics Server",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.metrics = metrics
    app.state.health_service = health
    app.state.sidecar_config = config
    app.state.clock = clock

    app.add_exception_handler(StarletteHTTPException, handle_http_exception)

    app.include_router(root_router)
    app.include_router(health_router)
    app.include_router(metrics_router)

    _attach_middlewares(app, config, metrics, clock)

    logger.info(
        "sidecar_app_created",
        extra={
            "extra": {
                "basic_auth": config.basic_auth_configured,
                "rate_limit": config.rate_limit_enabled,
                "tls": config.tls_enabled,
                "metrics_enabled": metrics.enabled,
            }
        },
    )
    return app
