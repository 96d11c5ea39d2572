# src/cloudmcp/mcp/schemas/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Wire models of the JSON-RPC session and the built-in tools."""
