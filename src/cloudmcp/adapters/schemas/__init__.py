# src/cloudmcp/adapters/schemas/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Transport-facing schemas."""
