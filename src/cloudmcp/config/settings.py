# src/cloudmcp/config/settings.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""CloudMCP Environment Settings (Pydantic Settings, v2)

Summary:
    Typed, validated environment overrides for the broker. The TOML document
    owned by :class:`~cloudmcp.config.manager.ConfigManager` is the durable
    configuration; these values override it at runtime and are never
    written back to disk.

Design:
    - Pydantic v2 BaseSettings with explicit ``validation_alias`` env names.
    - ``None`` means "not set", so the document value wins.
    - Singleton accessor ``get_settings()`` with LRU cache.
    - Safe, structured logging (no secrets).
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, SecretStr, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cloudmcp.config.document import LogLevel
from cloudmcp.config.toml_codec import validation_details
from cloudmcp.domain.exceptions import ConfigValidate
from cloudmcp.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)

__all__ = ["Settings", "get_settings"]


class Settings(BaseSettings):
    """Environment overrides and sidecar/dispatcher tuning knobs."""

    # ---------------------------
    # Document overrides
    # ---------------------------
    server_name: str | None = Field(
        default=None,
        description="Overrides system.server_name.",
        validation_alias="SERVER_NAME",
    )
    log_level: LogLevel | None = Field(
        default=None,
        description="Overrides system.log_level (debug|info|warn|error).",
        validation_alias="LOG_LEVEL",
    )
    enable_metrics: bool | None = Field(
        default=None,
        description="Overrides system.enable_metrics.",
        validation_alias="ENABLE_METRICS",
    )
    metrics_port: int | None = Field(
        default=None,
        ge=0,
        le=65535,
        description="Overrides system.metrics_port; 0 lets the OS pick a port.",
        validation_alias="METRICS_PORT",
    )
    config_path: Path | None = Field(
        default=None,
        description="Explicit configuration file path.",
        validation_alias="CLOUDMCP_CONFIG_PATH",
    )

    # ---------------------------
    # Sidecar
    # ---------------------------
    metrics_host: str = Field(
        default="0.0.0.0",
        description="Interface the metrics/health sidecar binds to.",
        validation_alias="METRICS_HOST",
    )
    metrics_auth_username: str | None = Field(
        default=None,
        validation_alias="METRICS_AUTH_USERNAME",
    )
    metrics_auth_password: SecretStr | None = Field(
        default=None,
        validation_alias="METRICS_AUTH_PASSWORD",
    )
    metrics_tls_enabled: bool = Field(default=False, validation_alias="METRICS_TLS_ENABLED")
    metrics_tls_cert_file: Path | None = Field(
        default=None, validation_alias="METRICS_TLS_CERT_FILE"
    )
    metrics_tls_key_file: Path | None = Field(default=None, validation_alias="METRICS_TLS_KEY_FILE")
    metrics_rate_limit_enabled: bool = Field(
        default=True, validation_alias="METRICS_RATE_LIMIT_ENABLED"
    )
    metrics_rate_limit_per_second: float = Field(
        default=10.0,
        gt=0,
        le=10_000,
        description="Token refill rate of the sidecar's shared bucket.",
        validation_alias="METRICS_RATE_LIMIT_PER_SECOND",
    )
    metrics_rate_limit_burst: int = Field(
        default=20,
        ge=1,
        le=100_000,
        description="Bucket capacity (requests admitted back-to-back).",
        validation_alias="METRICS_RATE_LIMIT_BURST",
    )
    metrics_shutdown_timeout_s: float = Field(
        default=30.0, gt=0, le=600, validation_alias="METRICS_SHUTDOWN_TIMEOUT_S"
    )
    health_check_timeout_s: float = Field(
        default=5.0,
        gt=0,
        le=120,
        description="Per-component bound of deep-health checks.",
        validation_alias="HEALTH_CHECK_TIMEOUT_S",
    )

    # ---------------------------
    # Dispatcher
    # ---------------------------
    daemon_mode: bool = Field(
        default=False,
        description="Run the sidecar only; do not serve JSON-RPC on stdio.",
        validation_alias="DAEMON_MODE",
    )
    dispatch_max_in_flight: int = Field(
        default=8, ge=1, le=1024, validation_alias="DISPATCH_MAX_IN_FLIGHT"
    )
    dispatch_shutdown_timeout_s: float = Field(
        default=10.0, gt=0, le=600, validation_alias="DISPATCH_SHUTDOWN_TIMEOUT_S"
    )

    model_config = SettingsConfigDict(extra="ignore", case_sensitive=False, env_ignore_empty=True)

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            return "warn" if lowered == "warning" else lowered
        return value

    @model_validator(mode="after")
    def _validate_sidecar_security(self) -> Settings:
        """Require both TLS files when TLS is enabled.

        Returns:
            Settings: The validated settings instance.
        """
        has_files = bool(self.metrics_tls_cert_file and self.metrics_tls_key_file)
        if self.metrics_tls_enabled and not has_files:
            raise ValueError(
                "METRICS_TLS_CERT_FILE and METRICS_TLS_KEY_FILE are required when TLS is enabled"
            )
        return self

    @property
    def basic_auth_configured(self) -> bool:
        return bool(
            self.metrics_auth_username
            and self.metrics_auth_password
            and self.metrics_auth_password.get_secret_value()
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton ``Settings`` instance.

    Returns:
        Settings: Validated environment settings.

    Raises:
        ConfigValidate: If the environment holds invalid values.
    """
    try:
        settings = Settings()
    except ValidationError as exc:
        raise ConfigValidate(
            "Invalid environment configuration", details={"errors": validation_details(exc)}
        ) from exc
    logger.info(
        "settings_initialized",
        extra={
            "extra": {
                "daemon_mode": settings.daemon_mode,
                "config_path_set": settings.config_path is not None,
                "overrides": {
                    "server_name": settings.server_name is not None,
                    "log_level": settings.log_level,
                    "enable_metrics": settings.enable_metrics,
                    "metrics_port": settings.metrics_port,
                },
                "sidecar": {
                    "host": settings.metrics_host,
                    "basic_auth": settings.basic_auth_configured,
                    "tls": settings.metrics_tls_enabled,
                    "rate_limit": {
                        "enabled": settings.metrics_rate_limit_enabled,
                        "per_second": settings.metrics_rate_limit_per_second,
                        "burst": settings.metrics_rate_limit_burst,
                    },
                },
            }
        },
    )
    return settings
