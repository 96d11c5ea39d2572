# tests/conftest.py
from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from prometheus_client import CollectorRegistry

from cloudmcp.config.manager import ConfigManager
from cloudmcp.config.settings import get_settings
from cloudmcp.infrastructure.observability.metrics import MetricsProvider

# Environment variables read by Settings; cleared so the host never leaks in.
_SETTINGS_ENV = (
    "SERVER_NAME",
    "LOG_LEVEL",
    "ENABLE_METRICS",
    "METRICS_PORT",
    "CLOUDMCP_CONFIG_PATH",
    "METRICS_HOST",
    "METRICS_AUTH_USERNAME",
    "METRICS_AUTH_PASSWORD",
    "METRICS_TLS_ENABLED",
    "METRICS_TLS_CERT_FILE",
    "METRICS_TLS_KEY_FILE",
    "METRICS_RATE_LIMIT_ENABLED",
    "METRICS_RATE_LIMIT_PER_SECOND",
    "METRICS_RATE_LIMIT_BURST",
    "METRICS_SHUTDOWN_TIMEOUT_S",
    "HEALTH_CHECK_TIMEOUT_S",
    "DAEMON_MODE",
    "DISPATCH_MAX_IN_FLIGHT",
    "DISPATCH_SHUTDOWN_TIMEOUT_S",
)


@pytest.fixture
def anyio_backend() -> str:
    """Force pytest-anyio to use asyncio (not trio)."""
    return "asyncio"


@pytest.fixture(autouse=True)
def _clean_settings_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Isolate every test from host environment overrides and cached settings."""
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self._mono = 1000.0
        self._now = start or datetime(2025, 1, 2, 3, 4, 5, tzinfo=UTC)

    def monotonic(self) -> float:
        return self._mono

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._mono += seconds
        self._now += timedelta(seconds=seconds)


class LineCollector:
    """In-memory stand-in for the dispatcher's output stream."""

    def __init__(self) -> None:
        self.chunks: list[bytes] = []
        self.closed = False

    def write(self, data: bytes) -> None:
        self.chunks.append(data)

    async def drain(self) -> None:
        return None

    def close(self) -> None:
        self.closed = True

    def responses(self) -> list[dict]:
        return [json.loads(chunk) for chunk in self.chunks]

    def by_id(self) -> dict:
        return {r["id"]: r for r in self.responses() if r["id"] is not None}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def metrics() -> MetricsProvider:
    """Metrics provider on an isolated registry."""
    return MetricsProvider(enabled=True, registry=CollectorRegistry())


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "cloudmcp" / "config.toml"


@pytest.fixture
def manager(config_path: Path) -> ConfigManager:
    """A loaded manager over a fresh configuration file."""
    mgr = ConfigManager(config_path)
    mgr.load_or_create()
    return mgr


@pytest.fixture
def restore_root_logging() -> Iterator[logging.Logger]:
    """Snapshot and restore the root logger's handlers and level."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def collector() -> LineCollector:
    return LineCollector()
