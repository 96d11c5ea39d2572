# src/cloudmcp/mcp/stdio.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Asyncio streams over the process's standard input and output.

The dispatcher owns stdout for the life of the session; log output goes to
stderr (see ``configure_root_logging``).
"""

from __future__ import annotations

import asyncio
import sys
from typing import IO

from cloudmcp.mcp.protocol import MAX_FRAME_BYTES

__all__ = ["open_stdio"]


async def open_stdio(
    stdin: IO[bytes] | IO[str] | None = None,
    stdout: IO[bytes] | IO[str] | None = None,
    *,
    limit: int = MAX_FRAME_BYTES,
) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Wrap the standard streams in an asyncio reader/writer pair.

    Args:
        stdin: Input pipe; defaults to ``sys.stdin``.
        stdout: Output pipe; defaults to ``sys.stdout``.
        limit: Reader buffer limit. Longer lines are reported to the
            dispatcher as oversized frames.

    Returns:
        tuple[asyncio.StreamReader, asyncio.StreamWriter]: The stream pair.
    """
    loop = asyncio.get_running_loop()

    reader = asyncio.StreamReader(limit=limit)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), stdin or sys.stdin)

    transport, protocol = await loop.connect_write_pipe(
        asyncio.streams.FlowControlMixin, stdout or sys.stdout
    )
    writer = asyncio.StreamWriter(transport, protocol, None, loop)
    return reader, writer
