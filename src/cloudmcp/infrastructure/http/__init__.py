# src/cloudmcp/infrastructure/http/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""HTTP server plumbing for the metrics/health sidecar."""
