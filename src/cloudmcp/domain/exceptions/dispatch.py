# src/cloudmcp/domain/exceptions/dispatch.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Dispatcher Exceptions.

Synopsis:
    Errors produced while decoding and executing JSON-RPC requests. Each
    class carries the JSON-RPC ``rpc_code`` it maps to on the wire.

Layer:
    domain/exceptions
"""

from __future__ import annotations

from typing import Any

from cloudmcp.domain.exceptions.base import DomainError

__all__ = [
    "Cancelled",
    "DispatchError",
    "HandlerFailed",
    "RequestInvalid",
    "RequestMalformed",
    "RequestMethodUnknown",
    "RequestParamsInvalid",
    "ServerShuttingDown",
]


class DispatchError(DomainError):
    """Base class for dispatcher errors.

    Attributes:
        rpc_code: JSON-RPC error code used in the response envelope.
    """

    code = "DISPATCH_ERROR"
    rpc_code: int = -32603


class RequestMalformed(DispatchError):
    """The frame is not valid JSON."""

    code = "REQUEST_MALFORMED"
    rpc_code = -32700


class RequestInvalid(DispatchError):
    """The frame is JSON but not a valid JSON-RPC request object."""

    code = "REQUEST_INVALID"
    rpc_code = -32600


class RequestMethodUnknown(DispatchError):
    """The method is neither a protocol method nor handled by the broker."""

    code = "REQUEST_METHOD_UNKNOWN"
    rpc_code = -32601


class RequestParamsInvalid(DispatchError):
    """Request or tool parameters are missing or of the wrong type."""

    code = "REQUEST_PARAMS_INVALID"
    rpc_code = -32602


class HandlerFailed(DispatchError):
    """A tool handler failed; the message is safe to return to the client."""

    code = "HANDLER_FAILED"
    rpc_code = -32603


class Cancelled(DispatchError):
    """The operation observed cancellation before completing."""

    code = "CANCELLED"
    rpc_code = -32000

    def __init__(
        self, message: str = "cancelled", *, details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(message, details=details)


class ServerShuttingDown(DispatchError):
    """The session is draining and no longer accepts requests."""

    code = "SERVER_SHUTTING_DOWN"
    rpc_code = -32000

    def __init__(
        self, message: str = "server shutting down", *, details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(message, details=details)
