# src/cloudmcp/infrastructure/concurrency/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Clock, cancellation and locking primitives shared by every component."""

from __future__ import annotations

from cloudmcp.infrastructure.concurrency.cancellation import (
    CancellationToken,
    Clock,
    SystemClock,
)
from cloudmcp.infrastructure.concurrency.rwlock import ReaderPreferredLock

__all__ = ["CancellationToken", "Clock", "ReaderPreferredLock", "SystemClock"]
