# src/cloudmcp/infrastructure/middleware/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Starlette middleware used by the metrics/health sidecar."""
