# src/cloudmcp/adapters/schemas/http/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""HTTP Schemas package (Adapters Layer).

Purpose:
    Response models of the metrics/health sidecar.

Layer:
    adapters/schemas/http
"""

from __future__ import annotations

from cloudmcp.adapters.schemas.http.health import (
    ComponentHealthHTTP,
    EndpointMap,
    HealthStatusHTTP,
    ServiceInfoHTTP,
)

__all__ = ["ComponentHealthHTTP", "EndpointMap", "HealthStatusHTTP", "ServiceInfoHTTP"]
