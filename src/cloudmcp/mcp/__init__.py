# src/cloudmcp/mcp/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Line-framed JSON-RPC tool-call session: protocol, registry, dispatcher, tools."""
