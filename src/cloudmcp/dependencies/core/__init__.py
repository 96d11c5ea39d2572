# src/cloudmcp/dependencies/core/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Core bootstrap exports."""

from __future__ import annotations

from cloudmcp.dependencies.core.bootstrap import BootstrapState, ProviderFactory, bootstrap

__all__ = ["BootstrapState", "ProviderFactory", "bootstrap"]
