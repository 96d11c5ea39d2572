# src/cloudmcp/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""CloudMCP broker.

Exposes cloud-provider operations to tool-calling agents over a line-framed
JSON-RPC session on stdio, with a Prometheus/health HTTP sidecar.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
