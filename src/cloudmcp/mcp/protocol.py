# src/cloudmcp/mcp/protocol.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Tool-call protocol constants and frame decoding.

Summary:
    JSON-RPC 2.0 error codes, supported protocol versions and the decoder
    that turns one newline-delimited frame into a validated request.

Design:
    * Decoding never raises anything but dispatch errors, each carrying the
      JSON-RPC code of the response it produces.
    * When a frame is structurally invalid but its ``id`` is recoverable,
      the id is attached to the error so the response can echo it.
"""

from __future__ import annotations

import json
from typing import Any, Final

from pydantic import ValidationError

from cloudmcp.domain.exceptions import RequestInvalid, RequestMalformed
from cloudmcp.mcp.schemas.messages import JsonRpcRequest

__all__ = [
    "INTERNAL_ERROR",
    "INVALID_PARAMS",
    "INVALID_REQUEST",
    "LATEST_PROTOCOL_VERSION",
    "MAX_FRAME_BYTES",
    "METHOD_NOT_FOUND",
    "PARSE_ERROR",
    "REQUEST_CANCELLED",
    "SUPPORTED_PROTOCOL_VERSIONS",
    "decode_frame",
    "negotiate_protocol_version",
    "recover_id",
]

PARSE_ERROR: Final[int] = -32700
INVALID_REQUEST: Final[int] = -32600
METHOD_NOT_FOUND: Final[int] = -32601
INVALID_PARAMS: Final[int] = -32602
INTERNAL_ERROR: Final[int] = -32603
REQUEST_CANCELLED: Final[int] = -32000

LATEST_PROTOCOL_VERSION: Final[str] = "2025-06-18"
SUPPORTED_PROTOCOL_VERSIONS: Final[tuple[str, ...]] = (
    "2025-06-18",
    "2025-03-26",
    "2024-11-05",
    "0.1.0",
)

# Longest accepted frame, newline excluded.
MAX_FRAME_BYTES: Final[int] = 1024 * 1024


def negotiate_protocol_version(requested: Any) -> str:
    """Echo ``requested`` when supported, else answer with the latest version."""
    if isinstance(requested, str) and requested in SUPPORTED_PROTOCOL_VERSIONS:
        return requested
    return LATEST_PROTOCOL_VERSION


def recover_id(payload: Any) -> int | str | None:
    """Return the request id of ``payload`` if it is a usable JSON-RPC id."""
    if not isinstance(payload, dict):
        return None
    candidate = payload.get("id")
    if isinstance(candidate, bool):
        return None
    if isinstance(candidate, int | str):
        return candidate
    return None


def decode_frame(line: bytes) -> JsonRpcRequest:
    """Decode one frame into a request.

    Args:
        line: Frame bytes, with or without the trailing newline.

    Returns:
        JsonRpcRequest: Validated request or notification.

    Raises:
        RequestMalformed: The frame is not JSON.
        RequestInvalid: The frame is JSON but not a JSON-RPC request. The
            recoverable id, if any, is in ``details["id"]``.
    """
    try:
        payload = json.loads(line)
    except ValueError as exc:
        raise RequestMalformed("Parse error") from exc
    try:
        return JsonRpcRequest.model_validate(payload)
    except ValidationError as exc:
        raise RequestInvalid("Invalid Request", details={"id": recover_id(payload)}) from exc
