# src/cloudmcp/application/services/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Application services."""

from __future__ import annotations

from cloudmcp.application.services.health_service import ComponentCheck, HealthService

__all__ = ["ComponentCheck", "HealthService"]
