# src/cloudmcp/infrastructure/logging/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Structured logging package."""

from __future__ import annotations

from cloudmcp.infrastructure.logging.logger import configure_root_logging, get_json_logger

__all__ = ["configure_root_logging", "get_json_logger"]
