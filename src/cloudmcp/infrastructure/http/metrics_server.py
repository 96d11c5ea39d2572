# src/cloudmcp/infrastructure/http/metrics_server.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""
Embedded Metrics/Health Server (Infrastructure Layer)

Purpose:
    Run the sidecar ASGI app under uvicorn inside the broker's event loop,
    with an explicit start/stop lifecycle.

Design:
    * The listening socket is bound here, before uvicorn starts, so bind
      failures surface as ``BindFailed`` and port ``0`` resolves immediately.
    * uvicorn never installs signal handlers; the process entry owns signals.
    * ``stop()`` asks uvicorn to exit and waits at most ``shutdown_timeout``;
      past that, connections are force-closed and ``ShutdownTimeout`` raised.

Usage:
    server = MetricsServer(config, app)
    await server.start()
    ...
    await server.stop()

Layer:
    infrastructure/http
"""

from __future__ import annotations

import asyncio
import socket
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

import uvicorn
from pydantic import BaseModel, ConfigDict, Field, SecretStr

from cloudmcp.domain.exceptions import (
    AlreadyRunning,
    BindFailed,
    InvalidPort,
    NotRunning,
    ShutdownTimeout,
)
from cloudmcp.infrastructure.http.tls import build_server_ssl_context
from cloudmcp.infrastructure.logging.logger import get_json_logger

if TYPE_CHECKING:
    from cloudmcp.config.document import SystemSettings
    from cloudmcp.config.settings import Settings

__all__ = ["MetricsServer", "MetricsServerConfig"]

logger = get_json_logger(__name__)

_STARTUP_POLL_S: Final[float] = 0.01
_MAX_PORT: Final[int] = 65_535


class MetricsServerConfig(BaseModel):
    """Listener and hardening options of the sidecar.

    The port is range-checked by :class:`MetricsServer`, not here, so that an
    out-of-range value fails construction with ``InvalidPort``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str = "0.0.0.0"
    port: int = 8080
    shutdown_timeout: float = Field(default=30.0, gt=0)
    health_check_timeout: float = Field(default=5.0, gt=0)
    tls_enabled: bool = False
    tls_cert_file: Path | None = None
    tls_key_file: Path | None = None
    basic_auth_username: str | None = None
    basic_auth_password: SecretStr | None = None
    rate_limit_enabled: bool = True
    rate_limit_per_second: float = Field(default=10.0, gt=0)
    rate_limit_burst: int = Field(default=20, ge=1)
    security_headers_enabled: bool = True

    @property
    def basic_auth_configured(self) -> bool:
        """True when both a username and a non-empty password are set."""
        return bool(
            self.basic_auth_username
            and self.basic_auth_password is not None
            and self.basic_auth_password.get_secret_value()
        )

    @classmethod
    def from_settings(cls, settings: Settings, system: SystemSettings) -> MetricsServerConfig:
        """Build the sidecar options from env settings and effective system settings."""
        return cls(
            host=settings.metrics_host,
            port=system.metrics_port,
            shutdown_timeout=settings.metrics_shutdown_timeout_s,
            health_check_timeout=settings.health_check_timeout_s,
            tls_enabled=settings.metrics_tls_enabled,
            tls_cert_file=settings.metrics_tls_cert_file,
            tls_key_file=settings.metrics_tls_key_file,
            basic_auth_username=settings.metrics_auth_username,
            basic_auth_password=settings.metrics_auth_password,
            rate_limit_enabled=settings.metrics_rate_limit_enabled,
            rate_limit_per_second=settings.metrics_rate_limit_per_second,
            rate_limit_burst=settings.metrics_rate_limit_burst,
        )


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves process signals alone."""

    def install_signal_handlers(self) -> None:
        return None

    @contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class MetricsServer:
    """Start/stop wrapper around an embedded uvicorn server.

    Args:
        config: Listener options.
        app: ASGI application to serve (see ``create_sidecar_app``).

    Raises:
        InvalidPort: ``config.port`` is outside ``[0, 65535]``.
    """

    def __init__(self, config: MetricsServerConfig, app: Any) -> None:
        if not 0 <= config.port <= _MAX_PORT:
            raise InvalidPort(
                f"Metrics port {config.port} is outside [0, {_MAX_PORT}]",
                details={"port": config.port},
            )
        self._config = config
        self._app = app
        self._server: _EmbeddedServer | None = None
        self._task: asyncio.Task[None] | None = None
        self._bound_port: int | None = None

    @property
    def config(self) -> MetricsServerConfig:
        return self._config

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def port(self) -> int | None:
        """Return the bound port (kernel-assigned when configured as 0)."""
        return self._bound_port

    @property
    def url(self) -> str | None:
        """Base URL of the running listener, or ``None`` when stopped."""
        if self._bound_port is None:
            return None
        scheme = "https" if self._config.tls_enabled else "http"
        host = self._config.host
        if host in ("0.0.0.0", "::", ""):
            host = "127.0.0.1"
        return f"{scheme}://{host}:{self._bound_port}"

    def _bind(self) -> socket.socket:
        try:
            sock = socket.create_server((self._config.host, self._config.port), reuse_port=False)
        except OSError as exc:
            raise BindFailed(
                f"Cannot bind {self._config.host}:{self._config.port}: {exc.strerror or exc}",
                details={"host": self._config.host, "port": self._config.port},
            ) from exc
        sock.setblocking(False)
        return sock

    async def start(self) -> None:
        """Bind the listener and spawn the server task.

        Raises:
            AlreadyRunning: The server is already started.
            TLSConfig: TLS is enabled but the certificate pair is unusable.
            BindFailed: The address cannot be bound or the server fails to start.
        """
        if self._task is not None:
            raise AlreadyRunning("Metrics server is already running")

        ssl_context = None
        if self._config.tls_enabled:
            ssl_context = build_server_ssl_context(
                self._config.tls_cert_file, self._config.tls_key_file
            )

        sock = self._bind()
        bound_port = int(sock.getsockname()[1])

        uv_config = uvicorn.Config(
            self._app,
            host=self._config.host,
            port=bound_port,
            log_config=None,
            access_log=False,
            lifespan="off",
            server_header=False,
            timeout_graceful_shutdown=max(1, int(self._config.shutdown_timeout)),
        )
        uv_config.load()
        uv_config.ssl = ssl_context

        server = _EmbeddedServer(uv_config)
        task = asyncio.create_task(server.serve(sockets=[sock]), name="metrics-server")

        while not server.started:
            if task.done():
                sock.close()
                exc = None if task.cancelled() else task.exception()
                raise BindFailed(
                    f"Metrics server failed to start on port {bound_port}",
                    details={"port": bound_port},
                ) from exc
            await asyncio.sleep(_STARTUP_POLL_S)

        self._server = server
        self._task = task
        self._bound_port = bound_port
        logger.info(
            "metrics_server_started",
            extra={
                "extra": {
                    "host": self._config.host,
                    "port": bound_port,
                    "tls": self._config.tls_enabled,
                    "basic_auth": self._config.basic_auth_configured,
                }
            },
        )

    async def stop(self) -> None:
        """Shut down gracefully within ``shutdown_timeout``.

        Raises:
            NotRunning: The server is not started.
            ShutdownTimeout: Graceful shutdown overran; connections were force-closed.
        """
        if self._task is None or self._server is None:
            raise NotRunning("Metrics server is not running")

        server, task = self._server, self._task
        self._server = None
        self._task = None
        self._bound_port = None

        server.should_exit = True
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=self._config.shutdown_timeout)
        except TimeoutError as exc:
            server.force_exit = True
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            logger.warning(
                "metrics_server_forced_close",
                extra={"extra": {"timeout_s": self._config.shutdown_timeout}},
            )
            raise ShutdownTimeout(
                f"Metrics server did not stop within {self._config.shutdown_timeout}s"
            ) from exc
        logger.info("metrics_server_stopped")
