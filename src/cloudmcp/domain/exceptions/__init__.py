# src/cloudmcp/domain/exceptions/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Domain exception hierarchy (re-exports)."""

from __future__ import annotations

from cloudmcp.domain.exceptions.base import DomainError
from cloudmcp.domain.exceptions.config import (
    AccountError,
    AccountExists,
    AccountInvalid,
    AccountMissing,
    ConfigError,
    ConfigIO,
    ConfigParse,
    ConfigPathUnsafe,
    ConfigValidate,
    DefaultAccountLocked,
)
from cloudmcp.domain.exceptions.dispatch import (
    Cancelled,
    DispatchError,
    HandlerFailed,
    RequestInvalid,
    RequestMalformed,
    RequestMethodUnknown,
    RequestParamsInvalid,
    ServerShuttingDown,
)
from cloudmcp.domain.exceptions.registry import (
    RegistryError,
    ToolDuplicate,
    ToolInvalid,
    ToolUnknown,
)
from cloudmcp.domain.exceptions.sidecar import (
    AlreadyRunning,
    BindFailed,
    InvalidPort,
    NotRunning,
    RateLimited,
    ShutdownTimeout,
    SidecarError,
    TLSConfig,
    Unauthorized,
)
from cloudmcp.domain.exceptions.tokens import (
    TokenError,
    TokenFormat,
    TokenLength,
    TokenMissing,
)

__all__ = [
    "AccountError",
    "AccountExists",
    "AccountInvalid",
    "AccountMissing",
    "AlreadyRunning",
    "BindFailed",
    "Cancelled",
    "ConfigError",
    "ConfigIO",
    "ConfigParse",
    "ConfigPathUnsafe",
    "ConfigValidate",
    "DefaultAccountLocked",
    "DispatchError",
    "DomainError",
    "HandlerFailed",
    "InvalidPort",
    "NotRunning",
    "RateLimited",
    "RegistryError",
    "RequestInvalid",
    "RequestMalformed",
    "RequestMethodUnknown",
    "RequestParamsInvalid",
    "ServerShuttingDown",
    "ShutdownTimeout",
    "SidecarError",
    "TLSConfig",
    "TokenError",
    "TokenFormat",
    "TokenLength",
    "TokenMissing",
    "ToolDuplicate",
    "ToolInvalid",
    "ToolUnknown",
    "Unauthorized",
]
