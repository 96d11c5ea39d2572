# src/cloudmcp/config/document.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Configuration Document Models.

Summary:
    Typed records for the on-disk configuration: ``SystemSettings``, named
    ``AccountRecord`` entries and the ``ConfigDocument`` that ties them
    together. Validation lives on the models so every load, mutation and
    save enforces the same invariants.

On-disk shape (TOML):
    [system]
    server_name = "CloudMCP"
    log_level = "info"
    enable_metrics = true
    metrics_port = 8080
    default_account = "primary"
    log_file = ""
    log_max_size = 10
    log_max_backups = 5
    log_max_age = 30

    [account.primary]
    token = "..."
    label = "Primary"
    apiurl = "https://api.linode.com/v4"

Layer:
    config
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Final, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from cloudmcp.domain.exceptions import ConfigValidate

if TYPE_CHECKING:
    from cloudmcp.config.settings import Settings

__all__ = [
    "DEFAULT_API_URL",
    "DEFAULT_METRICS_PORT",
    "DEFAULT_SERVER_NAME",
    "AccountRecord",
    "ConfigDocument",
    "LogLevel",
    "SystemSettings",
    "default_document",
    "resolve_system_settings",
    "validation_details",
]

DEFAULT_SERVER_NAME: Final[str] = "CloudMCP"
DEFAULT_METRICS_PORT: Final[int] = 8080
DEFAULT_API_URL: Final[str] = "https://api.linode.com/v4"

LogLevel = Literal["debug", "info", "warn", "error"]


class SystemSettings(BaseModel):
    """Process-wide settings stored in the ``[system]`` table."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    server_name: str = Field(default=DEFAULT_SERVER_NAME, description="Server label.")
    log_level: LogLevel = Field(default="info")
    enable_metrics: bool = Field(default=True)
    metrics_port: int = Field(default=DEFAULT_METRICS_PORT, ge=0, le=65535)
    default_account: str = Field(default="")
    log_file: str = Field(default="")
    log_max_size: int = Field(default=10, ge=1, description="Rotation size in MB.")
    log_max_backups: int = Field(default=5, ge=0)
    log_max_age: int = Field(default=30, ge=0, description="Backup age in days.")

    @field_validator("server_name")
    @classmethod
    def _server_name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("server_name must not be empty")
        return value.strip()

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            return "warn" if lowered == "warning" else lowered
        return value


class AccountRecord(BaseModel):
    """Credentials and metadata of one named provider account.

    A record is either complete (token and label set) or fully unset.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    token: str = Field(default="")
    label: str = Field(default="")
    apiurl: str = Field(default="")

    @model_validator(mode="after")
    def _token_and_label_together(self) -> AccountRecord:
        if bool(self.token) != bool(self.label):
            raise ValueError("token and label must both be set or both be empty")
        return self

    @property
    def is_set(self) -> bool:
        return bool(self.token and self.label)

    @property
    def effective_api_url(self) -> str:
        return self.apiurl or DEFAULT_API_URL


class ConfigDocument(BaseModel):
    """System settings plus the name-ordered account map."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    system: SystemSettings = Field(default_factory=SystemSettings)
    accounts: dict[str, AccountRecord] = Field(default_factory=dict, alias="account")

    @model_validator(mode="after")
    def _default_account_exists(self) -> ConfigDocument:
        self.accounts = dict(sorted(self.accounts.items()))
        default = self.system.default_account
        if default and default not in self.accounts:
            raise ValueError(f"default_account '{default}' does not name a configured account")
        return self

    @property
    def default_account(self) -> str:
        return self.system.default_account

    def to_toml_dict(self) -> dict[str, Any]:
        """Return the plain mapping written to disk."""
        data: dict[str, Any] = {"system": self.system.model_dump()}
        if self.accounts:
            data["account"] = {name: rec.model_dump() for name, rec in self.accounts.items()}
        return data


def default_document() -> ConfigDocument:
    """Synthesize the defaults document (no accounts, empty default account)."""
    return ConfigDocument()


def resolve_system_settings(system: SystemSettings, settings: Settings) -> SystemSettings:
    """Apply environment overrides to ``system`` without touching the document.

    Args:
        system: Settings loaded from disk.
        settings: Environment-derived overrides; unset fields are ignored.

    Returns:
        SystemSettings: New, validated settings used at runtime.

    Raises:
        ConfigValidate: If an override violates a field rule (e.g. a blank
            ``SERVER_NAME``).
    """
    overrides: dict[str, Any] = {}
    if settings.server_name:
        overrides["server_name"] = settings.server_name
    if settings.log_level:
        overrides["log_level"] = settings.log_level
    if settings.enable_metrics is not None:
        overrides["enable_metrics"] = settings.enable_metrics
    if settings.metrics_port is not None:
        overrides["metrics_port"] = settings.metrics_port
    if not overrides:
        return system.model_copy(deep=True)
    try:
        return SystemSettings.model_validate({**system.model_dump(), **overrides})
    except ValidationError as exc:
        errors = validation_details(exc)
        fields = ", ".join(sorted({err["loc"] for err in errors}))
        raise ConfigValidate(
            f"Invalid configuration override: {fields}", details={"errors": errors}
        ) from exc


def validation_details(exc: ValidationError) -> list[dict[str, Any]]:
    """Return pydantic errors stripped of input values."""
    return [
        {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
        for err in exc.errors(include_input=False, include_url=False)
    ]
