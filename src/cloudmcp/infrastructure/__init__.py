# src/cloudmcp/infrastructure/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Infrastructure layer: I/O, concurrency, observability and HTTP plumbing."""
