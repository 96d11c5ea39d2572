# src/cloudmcp/adapters/routers/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Routers Package Export (Adapters Layer).

Purpose:
    Re-export the sidecar routers so the app factory is decoupled from the
    router file layout.

Layer:
    adapters/routers
"""

from __future__ import annotations

from cloudmcp.adapters.routers.health_router import router as health_router
from cloudmcp.adapters.routers.metrics_router import router as metrics_router
from cloudmcp.adapters.routers.root_router import router as root_router

__all__ = ["health_router", "metrics_router", "root_router"]
