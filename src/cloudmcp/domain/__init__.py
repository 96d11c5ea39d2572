# src/cloudmcp/domain/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Domain layer: entities, protocols and error types with no I/O."""
