# src/cloudmcp/domain/exceptions/sidecar.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Metrics/Health Sidecar Exceptions.

Synopsis:
    Lifecycle and request errors of the HTTP sidecar. Each class carries the
    HTTP status it maps to when user-visible.

Layer:
    domain/exceptions
"""

from __future__ import annotations

from cloudmcp.domain.exceptions.base import DomainError

__all__ = [
    "AlreadyRunning",
    "BindFailed",
    "InvalidPort",
    "NotRunning",
    "RateLimited",
    "ShutdownTimeout",
    "SidecarError",
    "TLSConfig",
    "Unauthorized",
]


class SidecarError(DomainError):
    """Base class for sidecar errors.

    Attributes:
        http_status: HTTP status used when the error is user-visible.
    """

    code = "SIDECAR_ERROR"
    http_status: int = 500


class AlreadyRunning(SidecarError):
    """``start()`` was called on a running server."""

    code = "ALREADY_RUNNING"
    http_status = 409


class NotRunning(SidecarError):
    """``stop()`` was called on a stopped server."""

    code = "NOT_RUNNING"
    http_status = 409


class TLSConfig(SidecarError):
    """TLS is enabled but the certificate or key cannot be loaded."""

    code = "TLS_CONFIG"
    http_status = 500


class BindFailed(SidecarError):
    """The listener could not bind to the configured address."""

    code = "BIND_FAILED"
    http_status = 500


class Unauthorized(SidecarError):
    """Basic credentials are missing or wrong on a protected path."""

    code = "UNAUTHORIZED"
    http_status = 401


class RateLimited(SidecarError):
    """The shared token bucket is empty."""

    code = "RATE_LIMITED"
    http_status = 429


class ShutdownTimeout(SidecarError):
    """Graceful shutdown exceeded its deadline and the listener was force-closed."""

    code = "SHUTDOWN_TIMEOUT"
    http_status = 504


class InvalidPort(SidecarError):
    """The configured port is outside ``[0, 65535]``."""

    code = "INVALID_PORT"
    http_status = 500
