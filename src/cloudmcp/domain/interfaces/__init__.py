# src/cloudmcp/domain/interfaces/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Domain-level protocols implemented outside the domain."""
