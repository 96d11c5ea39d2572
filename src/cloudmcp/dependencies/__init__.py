# src/cloudmcp/dependencies/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Composition root: wiring of infrastructure, services and transports."""
