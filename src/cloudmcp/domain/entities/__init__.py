# src/cloudmcp/domain/entities/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Domain entities (transport-agnostic value objects)."""
