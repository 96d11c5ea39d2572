# src/cloudmcp/mcp/dispatcher.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""
Tool-Call Dispatcher (MCP Layer)

Purpose:
    Serve JSON-RPC 2.0 over one newline-framed duplex stream: decode frames
    in arrival order, run each request as its own task, and write responses
    through a single writer.

Design:
    * One reader, one writer. Only the writer touches the output stream, so
      every line on the wire is a complete response.
    * A semaphore caps in-flight requests; the reader takes a slot before it
      reads the next frame, so reading pauses while the cap is reached.
    * Every request runs under a child of the session token. Cancelling the
      session (signal or ``shutdown``) cancels every handler, which answers
      ``-32000 cancelled``. Frames read while draining are answered with
      ``-32000 server shutting down``.
    * Each id is answered at most once. A request reusing an id that is in
      flight or already answered is rejected with ``-32600`` and a null id.
    * Handler failures are mapped to JSON-RPC codes here; credentials never
      appear in messages (domain errors carry redacted forms only).

Usage:
    dispatcher = Dispatcher(registry, server_name="CloudMCP")
    await dispatcher.serve(reader, writer, token)

Layer:
    mcp
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Final, Protocol

from pydantic import ValidationError

from cloudmcp import __version__
from cloudmcp.config.toml_codec import validation_details
from cloudmcp.domain.exceptions import (
    AccountError,
    Cancelled,
    DispatchError,
    DomainError,
    HandlerFailed,
    RequestInvalid,
    RequestMalformed,
    RequestMethodUnknown,
    RequestParamsInvalid,
    ServerShuttingDown,
    TokenError,
    ToolUnknown,
)
from cloudmcp.infrastructure.concurrency.cancellation import CancellationToken, Clock, SystemClock
from cloudmcp.infrastructure.logging.logger import get_json_logger
from cloudmcp.infrastructure.observability.metrics import MetricsProvider
from cloudmcp.mcp.protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    MAX_FRAME_BYTES,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    decode_frame,
    negotiate_protocol_version,
)
from cloudmcp.mcp.registry import ToolRegistry
from cloudmcp.mcp.schemas.messages import CallToolResult, JsonRpcRequest, JsonRpcResponse, RequestId

__all__ = ["AnsweredIds", "Dispatcher", "LineWriter"]

logger = get_json_logger(__name__)

_NEWLINE: Final[bytes] = b"\n"
_CANCEL_GRACE_S: Final[float] = 1.0
_LATE_FRAME_GRACE_S: Final[float] = 0.25
_OUTBOX_SIZE: Final[int] = 256

MethodHandler = Callable[[Mapping[str, Any], CancellationToken], Awaitable[Any]]


class LineWriter(Protocol):
    """Output side of the stream (satisfied by :class:`asyncio.StreamWriter`)."""

    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...

    def close(self) -> None: ...


class _Oversized:
    """Marker for a frame dropped for exceeding the size limit."""


_OVERSIZED: Final[_Oversized] = _Oversized()


class AnsweredIds:
    """Request ids answered during one session.

    Integer ids answered as a contiguous run collapse into a ``[start, next)``
    range, so a client numbering requests 1, 2, 3... costs constant memory.
    String ids and gaps in the run are kept individually.
    """

    def __init__(self) -> None:
        self._start: int | None = None
        self._next = 0
        self._loose: set[RequestId] = set()

    def __contains__(self, request_id: object) -> bool:
        if isinstance(request_id, int) and not isinstance(request_id, bool):
            if self._start is not None and self._start <= request_id < self._next:
                return True
        return request_id in self._loose

    def __len__(self) -> int:
        run = 0 if self._start is None else self._next - self._start
        return run + len(self._loose)

    @property
    def stored(self) -> int:
        """Ids held individually (the memory cost)."""
        return len(self._loose)

    def add(self, request_id: RequestId) -> None:
        if request_id in self:
            return
        if not isinstance(request_id, int) or isinstance(request_id, bool):
            self._loose.add(request_id)
            return
        if self._start is None:
            self._start, self._next = request_id, request_id + 1
        elif request_id == self._next:
            self._next += 1
        elif request_id == self._start - 1:
            self._start -= 1
        else:
            self._loose.add(request_id)
        while self._next in self._loose:
            self._loose.discard(self._next)
            self._next += 1
        while self._start - 1 in self._loose:
            self._loose.discard(self._start - 1)
            self._start -= 1

    def clear(self) -> None:
        self._start = None
        self._next = 0
        self._loose.clear()


class Dispatcher:
    """JSON-RPC session over a reader/writer pair.

    Args:
        registry: Tool catalog served by ``tools/list`` and ``tools/call``.
        server_name: Label reported by ``initialize``.
        metrics: Optional provider recording tool executions.
        max_in_flight: Concurrency cap on request tasks.
        shutdown_timeout: Seconds to wait for in-flight requests when the
            session ends before cancelling them.
        max_frame_bytes: Longest accepted frame, newline excluded.
        clock: Time source for execution durations.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        server_name: str,
        metrics: MetricsProvider | None = None,
        max_in_flight: int = 8,
        shutdown_timeout: float = 10.0,
        max_frame_bytes: int = MAX_FRAME_BYTES,
        clock: Clock | None = None,
    ) -> None:
        if max_in_flight < 1:
            raise ValueError("max_in_flight must be >= 1")
        self._registry = registry
        self._server_name = server_name
        self._metrics = metrics
        self._max_in_flight = max_in_flight
        self._shutdown_timeout = shutdown_timeout
        self._max_frame_bytes = max_frame_bytes
        self._clock = clock or SystemClock()
        self._methods: dict[str, MethodHandler] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._tools_list,
            "tools/call": self._tools_call,
        }
        self._in_flight: dict[RequestId, tuple[asyncio.Task[None], CancellationToken]] = {}
        self._responded = AnsweredIds()
        self._outbox: asyncio.Queue[bytes | None] | None = None
        self._slots: asyncio.Semaphore | None = None
        self._draining = False

    @property
    def draining(self) -> bool:
        return self._draining

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    # ------------------------------------------------------------------ #
    # Session
    # ------------------------------------------------------------------ #

    async def serve(
        self, reader: asyncio.StreamReader, writer: LineWriter, token: CancellationToken
    ) -> None:
        """Run the session until EOF or until ``token`` is cancelled.

        On exit, in-flight requests are given ``shutdown_timeout`` seconds to
        finish, pending responses are flushed and ``writer`` is closed.
        """
        self._in_flight.clear()
        self._responded.clear()
        self._draining = False
        self._outbox = asyncio.Queue(maxsize=_OUTBOX_SIZE)
        self._slots = asyncio.Semaphore(self._max_in_flight)
        writer_task = asyncio.create_task(self._write_loop(writer), name="dispatcher-writer")
        logger.info(
            "dispatcher_started",
            extra={
                "extra": {
                    "server_name": self._server_name,
                    "tools": self._registry.count(),
                    "max_in_flight": self._max_in_flight,
                }
            },
        )
        try:
            await self._read_loop(reader, token)
        finally:
            self._draining = True
            await self._drain(reader, token)
            await self._outbox.put(None)
            await writer_task
            logger.info(
                "dispatcher_stopped",
                extra={
                    "extra": {
                        "reason": token.reason or "eof",
                        "responses": len(self._responded),
                    }
                },
            )

    async def _read_loop(self, reader: asyncio.StreamReader, token: CancellationToken) -> None:
        assert self._slots is not None
        while not token.cancelled:
            try:
                await token.guard(self._slots.acquire())
            except Cancelled:
                return
            try:
                frame = await token.guard(self._next_frame(reader))
            except Cancelled:
                self._slots.release()
                return
            if frame is None:
                self._slots.release()
                return
            if not await self._accept(frame, token):
                self._slots.release()

    async def _next_frame(self, reader: asyncio.StreamReader) -> bytes | _Oversized | None:
        """Read one frame; ``None`` at EOF."""
        try:
            line = await reader.readuntil(_NEWLINE)
        except asyncio.IncompleteReadError as exc:
            return exc.partial or None
        except asyncio.LimitOverrunError as exc:
            await self._skip_line(reader, exc.consumed)
            return _OVERSIZED
        if len(line) - 1 > self._max_frame_bytes:
            return _OVERSIZED
        return line

    @staticmethod
    async def _skip_line(reader: asyncio.StreamReader, consumed: int) -> None:
        """Discard buffered input through the next newline (or EOF)."""
        while True:
            try:
                await reader.readexactly(consumed)
                await reader.readuntil(_NEWLINE)
                return
            except asyncio.IncompleteReadError:
                return
            except asyncio.LimitOverrunError as exc:
                consumed = exc.consumed

    async def _accept(self, frame: bytes | _Oversized, token: CancellationToken) -> bool:
        """Handle one frame. Returns True when a request task now owns the slot."""
        if isinstance(frame, _Oversized):
            logger.warning("frame_oversized", extra={"extra": {"limit": self._max_frame_bytes}})
            await self._emit(JsonRpcResponse.failure(None, PARSE_ERROR, "Parse error"))
            return False
        if not frame.strip():
            return False

        try:
            request = decode_frame(frame)
        except RequestMalformed as exc:
            await self._emit(JsonRpcResponse.failure(None, exc.rpc_code, exc.message))
            return False
        except RequestInvalid as exc:
            request_id = exc.details.get("id")
            if request_id is not None and self._id_in_use(request_id):
                request_id = None
            await self._emit(JsonRpcResponse.failure(request_id, exc.rpc_code, exc.message))
            return False

        if request.is_notification:
            self._notify(request)
            return False

        if request.id is None:
            await self._emit(
                JsonRpcResponse.failure(
                    None, INVALID_REQUEST, "Invalid Request", {"reason": "null request id"}
                )
            )
            return False
        if self._id_in_use(request.id):
            logger.warning("request_id_duplicate", extra={"extra": {"method": request.method}})
            await self._emit(
                JsonRpcResponse.failure(
                    None, INVALID_REQUEST, "Invalid Request", {"reason": "duplicate request id"}
                )
            )
            return False

        if request.method == "shutdown":
            await self._emit(JsonRpcResponse.success(request.id, {}))
            logger.info("shutdown_requested")
            token.cancel("shutdown requested")
            return False

        handler = self._methods.get(request.method)
        if handler is None:
            exc = RequestMethodUnknown(
                f"Method not found: {request.method}", details={"method": request.method}
            )
            await self._emit(
                JsonRpcResponse.failure(request.id, exc.rpc_code, exc.message, exc.details)
            )
            return False

        request_token = token.child()
        task = asyncio.create_task(
            self._run(request, handler, request_token), name=f"request-{request.id}"
        )
        self._in_flight[request.id] = (task, request_token)
        return True

    def _id_in_use(self, request_id: RequestId) -> bool:
        return request_id in self._in_flight or request_id in self._responded

    def _notify(self, request: JsonRpcRequest) -> None:
        params = request.params or {}
        if request.method == "notifications/cancelled":
            target = params.get("requestId")
            entry = self._in_flight.get(target) if isinstance(target, int | str) else None
            if entry is not None:
                entry[1].cancel(str(params.get("reason") or "cancelled by client"))
            logger.info(
                "request_cancel_notified",
                extra={"extra": {"request_id": target, "found": entry is not None}},
            )
            return
        if request.method != "notifications/initialized":
            logger.debug("notification_ignored", extra={"extra": {"method": request.method}})

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    async def _run(
        self, request: JsonRpcRequest, handler: MethodHandler, token: CancellationToken
    ) -> None:
        assert request.id is not None and self._slots is not None
        try:
            try:
                result = await handler(request.params or {}, token)
                response = JsonRpcResponse.success(request.id, result)
            except asyncio.CancelledError:
                response = self._failure(request.id, Cancelled())
            except Exception as exc:
                response = self._failure(request.id, exc, method=request.method)
            await self._emit(response)
        finally:
            token.detach()
            self._in_flight.pop(request.id, None)
            self._slots.release()

    def _failure(
        self, request_id: RequestId, exc: Exception, *, method: str | None = None
    ) -> JsonRpcResponse:
        """Map a handler exception onto a JSON-RPC error response."""
        if isinstance(exc, ValidationError):
            return JsonRpcResponse.failure(
                request_id, INVALID_PARAMS, "Invalid params", {"errors": validation_details(exc)}
            )
        if isinstance(exc, ToolUnknown):
            return JsonRpcResponse.failure(request_id, METHOD_NOT_FOUND, exc.message, exc.details)
        if isinstance(exc, DispatchError):
            data = exc.details or None
            return JsonRpcResponse.failure(request_id, exc.rpc_code, exc.message, data)
        if isinstance(exc, AccountError | TokenError):
            return JsonRpcResponse.failure(
                request_id, INVALID_PARAMS, exc.message, {"code": exc.code, **exc.details}
            )
        if isinstance(exc, DomainError):
            logger.warning(
                "request_failed",
                extra={"extra": {"method": method, "code": exc.code, "error": exc.message}},
            )
            return JsonRpcResponse.failure(
                request_id, INTERNAL_ERROR, exc.message, {"code": exc.code}
            )
        logger.exception(
            "request_handler_crashed",
            extra={"extra": {"method": method, "error_type": type(exc).__name__}},
        )
        failed = HandlerFailed("Internal error")
        return JsonRpcResponse.failure(request_id, failed.rpc_code, failed.message)

    async def _initialize(self, params: Mapping[str, Any], token: CancellationToken) -> Any:
        version = negotiate_protocol_version(params.get("protocolVersion"))
        client = params.get("clientInfo")
        logger.info(
            "session_initialized",
            extra={
                "extra": {
                    "protocol_version": version,
                    "client": client.get("name") if isinstance(client, dict) else None,
                }
            },
        )
        return {
            "protocolVersion": version,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": self._server_name, "version": __version__},
        }

    async def _ping(self, params: Mapping[str, Any], token: CancellationToken) -> Any:
        return {}

    async def _tools_list(self, params: Mapping[str, Any], token: CancellationToken) -> Any:
        return {"tools": [descriptor.to_wire() for descriptor in self._registry.enumerate()]}

    async def _tools_call(self, params: Mapping[str, Any], token: CancellationToken) -> Any:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise RequestParamsInvalid("Invalid params: 'name' must be a non-empty string")
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise RequestParamsInvalid("Invalid params: 'arguments' must be an object")

        descriptor = self._registry.lookup(name)
        started = self._clock.monotonic()
        status = "error"
        try:
            result = await token.guard(descriptor.handler(token, arguments))
            status = "error" if result.is_error else "success"
            return CallToolResult.from_result(result).to_wire()
        except (Cancelled, asyncio.CancelledError):
            status = "cancelled"
            raise
        finally:
            elapsed = self._clock.monotonic() - started
            if self._metrics is not None:
                self._metrics.record_tool_execution(name, status, elapsed)
            logger.info(
                "tool_executed",
                extra={
                    "extra": {
                        "tool": name,
                        "status": status,
                        "duration_ms": round(elapsed * 1000.0, 3),
                    }
                },
            )

    # ------------------------------------------------------------------ #
    # Output and shutdown
    # ------------------------------------------------------------------ #

    async def _emit(self, response: JsonRpcResponse) -> None:
        """Queue ``response`` for the writer, at most once per id."""
        assert self._outbox is not None
        if response.id is not None:
            if response.id in self._responded:
                logger.warning("response_duplicate_dropped", extra={"extra": {"id": response.id}})
                return
            self._responded.add(response.id)
        await self._outbox.put(response.encode() + _NEWLINE)

    async def _write_loop(self, writer: LineWriter) -> None:
        assert self._outbox is not None
        broken = False
        while True:
            line = await self._outbox.get()
            if line is None:
                break
            if broken:
                continue
            try:
                writer.write(line)
                await writer.drain()
            except (ConnectionError, OSError) as exc:
                broken = True
                logger.warning(
                    "dispatcher_output_closed",
                    extra={"extra": {"error_type": type(exc).__name__}},
                )
        try:
            writer.close()
        except OSError as exc:
            logger.debug("dispatcher_close_failed", extra={"extra": {"error": str(exc)}})

    async def _drain(self, reader: asyncio.StreamReader, token: CancellationToken) -> None:
        """Wait for in-flight requests, answering late frames with 'shutting down'."""
        rejecter = (
            asyncio.create_task(self._reject_frames(reader), name="dispatcher-rejecter")
            if token.cancelled
            else None
        )
        try:
            pending = {task for task, _ in self._in_flight.values()}
            if pending:
                _, pending = await asyncio.wait(pending, timeout=self._shutdown_timeout)
            if pending:
                logger.warning(
                    "dispatcher_drain_timeout",
                    extra={"extra": {"pending": len(pending), "timeout_s": self._shutdown_timeout}},
                )
                for _, request_token in list(self._in_flight.values()):
                    request_token.cancel("shutdown timeout")
                _, pending = await asyncio.wait(pending, timeout=_CANCEL_GRACE_S)
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
        finally:
            if rejecter is not None:
                # Buffered frames are answered before the rejecter stops; an open but
                # idle stream only gets the grace period.
                await asyncio.wait({rejecter}, timeout=_LATE_FRAME_GRACE_S)
                rejecter.cancel()
                await asyncio.gather(rejecter, return_exceptions=True)

    async def _reject_frames(self, reader: asyncio.StreamReader) -> None:
        while True:
            frame = await self._next_frame(reader)
            if frame is None:
                return
            if isinstance(frame, _Oversized) or not frame.strip():
                continue
            try:
                request = decode_frame(frame)
            except DispatchError:
                continue
            if request.is_notification or request.id is None:
                continue
            refused = ServerShuttingDown()
            request_id = None if self._id_in_use(request.id) else request.id
            await self._emit(JsonRpcResponse.failure(request_id, refused.rpc_code, refused.message))
