# tests/integration/test_bootstrap_wiring.py
from __future__ import annotations

import asyncio
import json
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

import httpx
import pytest

from cloudmcp.config.manager import ConfigManager
from cloudmcp.config.settings import get_settings
from cloudmcp.dependencies.core.bootstrap import bootstrap
from cloudmcp.domain.entities.health import ComponentHealth, HealthState
from cloudmcp.domain.entities.tool import ToolDescriptor, ToolResult
from cloudmcp.infrastructure.concurrency.cancellation import CancellationToken
from cloudmcp.infrastructure.observability.metrics import MetricsProvider

pytestmark = pytest.mark.integration


class FakeProvider:
    """Provider contributing one tool and a health check."""

    name = "fakecloud"

    def __init__(self, manager: ConfigManager, client: httpx.AsyncClient) -> None:
        self.manager = manager
        self.client = client

    async def _list(self, token: Any, arguments: Any) -> ToolResult:
        return ToolResult.json({"instances": []})

    def tools(self) -> Iterable[ToolDescriptor]:
        return [
            ToolDescriptor(
                "fakecloud_instances",
                "List instances of the fake cloud",
                {"type": "object", "properties": {}},
                self._list,
            )
        ]

    async def health_check(self) -> ComponentHealth:
        return ComponentHealth(
            status=HealthState.HEALTHY, message="ok", last_checked=datetime.now(UTC)
        )


@pytest.fixture
def sidecar_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("METRICS_PORT", "0")
    monkeypatch.setenv("METRICS_HOST", "127.0.0.1")
    monkeypatch.setenv("SERVER_NAME", "WiredCloud")
    monkeypatch.setenv("METRICS_SHUTDOWN_TIMEOUT_S", "5")


@pytest.mark.anyio
async def test_bootstrap_wires_providers_and_sidecar(
    sidecar_env: None, manager: ConfigManager, metrics: MetricsProvider
) -> None:
    async with bootstrap(
        get_settings(), manager, provider_factories=[FakeProvider], metrics=metrics
    ) as state:
        assert state.system.server_name == "WiredCloud"
        assert state.sidecar.running
        assert [p.name for p in state.providers] == ["fakecloud"]
        assert "fakecloud_instances" in state.registry
        assert "account_add" in state.registry
        assert state.health.component_names == ["metrics_provider", "fakecloud"]
        assert metrics.registry.get_sample_value("cloudmcp_tools_registered") == float(
            state.registry.count()
        )

        async with httpx.AsyncClient(base_url=state.sidecar.url, timeout=5.0) as client:
            deep = await client.get("/provider/health")
        assert deep.status_code == 200
        assert deep.json()["components"]["fakecloud"]["message"] == "ok"

        reader = asyncio.StreamReader()
        reader.feed_data(
            b'{"jsonrpc":"2.0","id":1,"method":"tools/call","params":{"name":"health_check"}}\n'
        )
        reader.feed_eof()

        chunks: list[bytes] = []

        class _Sink:
            def write(self, data: bytes) -> None:
                chunks.append(data)

            async def drain(self) -> None:
                return None

            def close(self) -> None:
                return None

        await state.dispatcher.serve(reader, _Sink(), CancellationToken())
        report = json.loads(json.loads(chunks[0])["result"]["content"][0]["text"])
        assert report["serverInfo"]["name"] == "WiredCloud"
        assert report["providers"] == {"registered": 1, "available": ["fakecloud"]}
        assert report["metrics"]["endpoint"] == f"{state.sidecar.url}/metrics"

    assert not state.sidecar.running
