# tests/unit/adapters/test_sidecar_app.py
from __future__ import annotations

import base64
from typing import Any

import pytest
from fastapi.testclient import TestClient
from prometheus_client import CollectorRegistry
from prometheus_client.parser import text_string_to_metric_families

from cloudmcp.adapters.sidecar_app import create_sidecar_app
from cloudmcp.application.services.health_service import HealthService
from cloudmcp.domain.entities.health import ComponentHealth, HealthState
from cloudmcp.infrastructure.http.metrics_server import MetricsServerConfig
from cloudmcp.infrastructure.observability.metrics import MetricsProvider


def _client(
    metrics: MetricsProvider, clock: Any, health: HealthService | None = None, **config: Any
) -> TestClient:
    config.setdefault("rate_limit_enabled", False)
    app = create_sidecar_app(
        MetricsServerConfig(**config),
        metrics=metrics,
        health=health or HealthService(metrics, clock=clock),
        clock=clock,
    )
    return TestClient(app)


def _basic(user: str, password: str) -> dict[str, str]:
    raw = base64.b64encode(f"{user}:{password}".encode()).decode()
    return {"Authorization": f"Basic {raw}"}


def test_health_healthy(metrics: MetricsProvider, clock: Any) -> None:
    response = _client(metrics, clock).get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["message"] == "All systems operational"
    assert body["timestamp"].startswith("2025-01-02T03:04:05")
    assert "components" not in body
    assert response.headers["Cache-Control"] == "no-cache, no-store, must-revalidate"


def test_health_degraded_when_metrics_disabled(clock: Any) -> None:
    disabled = MetricsProvider(enabled=False, registry=CollectorRegistry())
    client = _client(disabled, clock)

    health = client.get("/health")
    assert health.status_code == 206
    assert health.json()["status"] == "degraded"

    scrape = client.get("/metrics")
    assert scrape.status_code == 503
    assert scrape.text == "# Metrics collection is disabled\n"


def test_metrics_exposition(metrics: MetricsProvider, clock: Any) -> None:
    metrics.record_tool_execution("hello", "success", 0.01)
    client = _client(metrics, clock)
    client.get("/health")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    samples = [s for f in text_string_to_metric_families(response.text) for s in f.samples]
    (executed,) = [s for s in samples if s.name == "cloudmcp_tool_executions_total"]
    assert executed.labels == {"tool": "hello", "status": "success"}
    assert executed.value == 1.0
    assert any(s.name == "cloudmcp_http_request_seconds_count" for s in samples)


def test_index(metrics: MetricsProvider, clock: Any) -> None:
    body = _client(metrics, clock).get("/").json()
    assert body["service"] == "CloudMCP Metrics Server"
    assert body["status"] == "running"
    assert body["metrics_enabled"] is True
    assert body["endpoints"] == {
        "metrics": "/metrics",
        "health": "/health",
        "provider_health": "/provider/health",
    }


def test_provider_health_reports_components(metrics: MetricsProvider, clock: Any) -> None:
    service = HealthService(metrics, clock=clock)

    async def linode() -> ComponentHealth:
        return ComponentHealth(
            status=HealthState.UNHEALTHY, message="api unreachable", last_checked=clock.now()
        )

    service.add_check("linode", linode)
    response = _client(metrics, clock, health=service).get("/provider/health")

    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "unhealthy"
    assert set(body["components"]) == {"metrics_provider", "linode"}
    assert body["components"]["linode"]["message"] == "api unreachable"
    assert body["metrics"]["total_providers"] == 1.0


def test_security_headers_and_not_found_envelope(metrics: MetricsProvider, clock: Any) -> None:
    response = _client(metrics, clock).get("/nope")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "Strict-Transport-Security" not in response.headers


def test_security_headers_can_be_disabled(metrics: MetricsProvider, clock: Any) -> None:
    response = _client(metrics, clock, security_headers_enabled=False).get("/health")
    assert "X-Frame-Options" not in response.headers


class TestBasicAuth:
    @pytest.fixture
    def client(self, metrics: MetricsProvider, clock: Any) -> TestClient:
        return _client(
            metrics, clock, basic_auth_username="scraper", basic_auth_password="s3cret"
        )

    def test_protected_paths_require_credentials(self, client: TestClient) -> None:
        for path in ("/metrics", "/provider/health"):
            response = client.get(path)
            assert response.status_code == 401
            assert response.headers["WWW-Authenticate"] == 'Basic realm="CloudMCP Metrics"'
            assert response.json()["error"]["code"] == "UNAUTHORIZED"
            assert response.headers["X-Frame-Options"] == "DENY"

    def test_wrong_password_rejected(self, client: TestClient) -> None:
        assert client.get("/metrics", headers=_basic("scraper", "nope")).status_code == 401

    def test_valid_credentials_accepted(self, client: TestClient) -> None:
        assert client.get("/metrics", headers=_basic("scraper", "s3cret")).status_code == 200

    def test_liveness_and_index_stay_open(self, client: TestClient) -> None:
        assert client.get("/health").status_code == 200
        assert client.get("/").status_code == 200


def test_rate_limit_applies_across_endpoints(metrics: MetricsProvider, clock: Any) -> None:
    client = _client(
        metrics,
        clock,
        rate_limit_enabled=True,
        rate_limit_per_second=1.0,
        rate_limit_burst=2,
    )

    assert client.get("/health").status_code == 200
    assert client.get("/").status_code == 200
    limited = client.get("/metrics")

    assert limited.status_code == 429
    assert limited.headers["Retry-After"] == "1"
    assert limited.headers["X-RateLimit-Limit"] == "2"
    assert limited.headers["X-Content-Type-Options"] == "nosniff"
    assert metrics.registry.get_sample_value("cloudmcp_http_rate_limited_total") == 1.0

    clock.advance(1.0)
    assert client.get("/health").status_code == 200
