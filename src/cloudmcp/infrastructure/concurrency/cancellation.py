# src/cloudmcp/infrastructure/concurrency/cancellation.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Clock and hierarchical cancellation token.

Summary:
    ``Clock`` abstracts monotonic time and wall-clock timestamps so rate
    limiting and health reporting can be driven deterministically in tests.
    ``CancellationToken`` is a tree of cancellation scopes: cancelling a
    token cancels every descendant, never its parent.

Design:
    * Tokens are asyncio-native. ``cancel()`` must be called on the event
      loop thread; worker threads may read ``cancelled`` at any time.
    * Children register with their parent and must be ``detach()``-ed when
      their scope ends so long sessions do not accumulate dead tokens.
    * Waiting helpers raise :class:`~cloudmcp.domain.exceptions.Cancelled`
      which the dispatcher maps to JSON-RPC ``-32000``.

Usage:
    root = CancellationToken()
    request_token = root.child()
    try:
        await request_token.guard(do_io())
    finally:
        request_token.detach()
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable
from datetime import UTC, datetime
from typing import Protocol, TypeVar

from cloudmcp.domain.exceptions import Cancelled

__all__ = ["CancellationToken", "Clock", "SystemClock"]

T = TypeVar("T")


class Clock(Protocol):
    """Time source used by rate limiting, timing and health timestamps."""

    def monotonic(self) -> float:
        """Return a monotonic timestamp in seconds."""

    def now(self) -> datetime:
        """Return the current timezone-aware UTC time."""


class SystemClock:
    """Clock backed by :func:`time.monotonic` and the system UTC time."""

    def monotonic(self) -> float:
        return time.monotonic()

    def now(self) -> datetime:
        return datetime.now(tz=UTC)


class CancellationToken:
    """Hierarchical, idempotent cancellation scope.

    Attributes:
        reason: Reason passed to the first :meth:`cancel` call, or ``None``.
    """

    def __init__(self, parent: CancellationToken | None = None) -> None:
        self._parent = parent
        self._children: set[CancellationToken] = set()
        self._event = asyncio.Event()
        self._timer: asyncio.TimerHandle | None = None
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        """Whether this token (or an ancestor) has been cancelled."""
        return self.reason is not None

    def cancel(self, reason: str = "cancelled") -> None:
        """Cancel this token and all of its descendants.

        Repeated calls keep the first reason.

        Args:
            reason: Short, human-readable cause (e.g. ``"signal"``).
        """
        if self.reason is not None:
            return
        self.reason = reason
        self._event.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        for child in list(self._children):
            child.cancel(reason)

    def child(self) -> CancellationToken:
        """Create a child token cancelled together with this one."""
        token = CancellationToken(parent=self)
        if self.cancelled:
            token.cancel(self.reason or "cancelled")
        else:
            self._children.add(token)
        return token

    def with_timeout(self, seconds: float) -> CancellationToken:
        """Create a child token that cancels itself after ``seconds``.

        Must be called from a running event loop.
        """
        token = self.child()
        if not token.cancelled:
            loop = asyncio.get_running_loop()
            token._timer = loop.call_later(seconds, token.cancel, "timeout")
        return token

    def detach(self) -> None:
        """Unlink this token from its parent and drop any pending timer."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._parent is not None:
            self._parent._children.discard(self)
            self._parent = None

    def raise_if_cancelled(self) -> None:
        """Raise :class:`Cancelled` if the token has been cancelled."""
        if self.reason is not None:
            raise Cancelled()

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        await self._event.wait()

    async def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless cancelled first.

        Raises:
            Cancelled: If the token is cancelled before the delay elapses.
        """
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except TimeoutError:
            return
        raise Cancelled()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` but abandon it as soon as the token is cancelled.

        Raises:
            Cancelled: If the token fires before ``awaitable`` completes. The
                abandoned work is cancelled and awaited.
        """
        if self.cancelled and asyncio.iscoroutine(awaitable):
            awaitable.close()
        self.raise_if_cancelled()
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not work.done():
                work.cancel()
                await asyncio.gather(work, return_exceptions=True)
        if work in done:
            return work.result()
        raise Cancelled()
