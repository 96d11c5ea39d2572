# src/cloudmcp/adapters/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Adapters layer: HTTP routes, schemas and the sidecar app factory."""
