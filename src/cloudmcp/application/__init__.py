# src/cloudmcp/application/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Application layer: services orchestrating domain entities."""
