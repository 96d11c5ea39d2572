# src/cloudmcp/infrastructure/observability/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Prometheus metrics for the broker and its sidecar."""

from __future__ import annotations

from cloudmcp.infrastructure.observability.metrics import MetricsProvider

__all__ = ["MetricsProvider"]
