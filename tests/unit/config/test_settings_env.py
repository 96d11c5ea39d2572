# tests/unit/config/test_settings_env.py
from __future__ import annotations

from pathlib import Path

import pytest

from cloudmcp.config.directories import (
    CONFIG_FILENAME,
    default_config_path,
    ensure_safe_path,
)
from cloudmcp.config.settings import get_settings
from cloudmcp.domain.exceptions import ConfigPathUnsafe, ConfigValidate


def test_defaults_without_environment() -> None:
    settings = get_settings()
    assert settings.server_name is None
    assert settings.metrics_port is None
    assert settings.metrics_host == "0.0.0.0"
    assert settings.metrics_rate_limit_enabled is True
    assert settings.metrics_rate_limit_burst == 20
    assert settings.daemon_mode is False
    assert settings.basic_auth_configured is False


def test_get_settings_is_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    first = get_settings()
    monkeypatch.setenv("SERVER_NAME", "Later")
    assert get_settings() is first
    get_settings.cache_clear()
    assert get_settings().server_name == "Later"


def test_env_values_are_parsed(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("CLOUDMCP_CONFIG_PATH", str(tmp_path / "c.toml"))
    monkeypatch.setenv("DAEMON_MODE", "true")
    monkeypatch.setenv("METRICS_AUTH_USERNAME", "scraper")
    monkeypatch.setenv("METRICS_AUTH_PASSWORD", "s3cret")
    monkeypatch.setenv("DISPATCH_MAX_IN_FLIGHT", "3")

    settings = get_settings()

    assert settings.log_level == "warn"
    assert settings.config_path == tmp_path / "c.toml"
    assert settings.daemon_mode is True
    assert settings.basic_auth_configured is True
    assert settings.dispatch_max_in_flight == 3
    assert "s3cret" not in repr(settings)


def test_empty_env_values_are_ignored(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("METRICS_PORT", "")
    assert get_settings().metrics_port is None


@pytest.mark.parametrize(
    "name, value",
    [
        ("METRICS_PORT", "70000"),
        ("LOG_LEVEL", "chatty"),
        ("METRICS_RATE_LIMIT_BURST", "0"),
        ("DISPATCH_MAX_IN_FLIGHT", "0"),
    ],
)
def test_invalid_env_raises_config_validate(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigValidate):
        get_settings()


def test_tls_requires_certificate_and_key(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("METRICS_TLS_ENABLED", "true")
    with pytest.raises(ConfigValidate):
        get_settings()

    get_settings.cache_clear()
    monkeypatch.setenv("METRICS_TLS_CERT_FILE", str(tmp_path / "cert.pem"))
    monkeypatch.setenv("METRICS_TLS_KEY_FILE", str(tmp_path / "key.pem"))
    assert get_settings().metrics_tls_enabled is True


def test_default_config_path_follows_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    path = default_config_path()
    assert path.name == CONFIG_FILENAME
    assert path.parent.name == "cloudmcp"


def test_ensure_safe_path(tmp_path: Path) -> None:
    plain = tmp_path / "x" / "config.toml"
    assert ensure_safe_path(plain, []) == plain

    inside = tmp_path / "x" / ".." / "y" / "config.toml"
    assert ensure_safe_path(inside, [tmp_path]) == inside

    with pytest.raises(ConfigPathUnsafe):
        ensure_safe_path(tmp_path / ".." / "elsewhere.toml", [tmp_path])
