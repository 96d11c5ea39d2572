# tests/unit/mcp/test_dispatcher.py
from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from typing import Any

import pytest

from cloudmcp.domain.entities.tool import ToolDescriptor, ToolResult
from cloudmcp.domain.exceptions import AccountExists, ConfigIO
from cloudmcp.infrastructure.concurrency.cancellation import CancellationToken
from cloudmcp.infrastructure.observability.metrics import MetricsProvider
from cloudmcp.mcp.capabilities.health_check import HealthCheckTool
from cloudmcp.mcp.capabilities.hello import hello_tool
from cloudmcp.mcp.dispatcher import AnsweredIds, Dispatcher
from cloudmcp.mcp.registry import ToolRegistry

SCHEMA = {"type": "object", "properties": {}}


def _frame(obj: Mapping[str, Any]) -> bytes:
    return json.dumps(obj).encode("utf-8") + b"\n"


def _call(request_id: int, name: str, arguments: Any = None) -> bytes:
    params: dict[str, Any] = {"name": name}
    if arguments is not None:
        params["arguments"] = arguments
    return _frame({"jsonrpc": "2.0", "id": request_id, "method": "tools/call", "params": params})


def _tool(name: str, handler: Any) -> ToolDescriptor:
    return ToolDescriptor(name, f"Test tool named {name}", SCHEMA, handler)


def _registry(metrics: MetricsProvider, *extra: ToolDescriptor) -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(hello_tool())
    registry.register(
        HealthCheckTool(server_name="TestCloud", tool_names=registry.names, metrics=metrics)
        .descriptor()
    )
    registry.register_all(extra)
    return registry


async def _serve(
    data: bytes,
    collector: Any,
    registry: ToolRegistry,
    *,
    token: CancellationToken | None = None,
    limit: int = 2**16,
    **kwargs: Any,
) -> Dispatcher:
    reader = asyncio.StreamReader(limit=limit)
    reader.feed_data(data)
    reader.feed_eof()
    kwargs.setdefault("max_frame_bytes", limit)
    dispatcher = Dispatcher(registry, server_name="TestCloud", **kwargs)
    await asyncio.wait_for(
        dispatcher.serve(reader, collector, token or CancellationToken()), timeout=5
    )
    return dispatcher


# ---------------------------------------------------------------------------
# Session scenarios
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_initialize_handshake(collector: Any, metrics: MetricsProvider) -> None:
    frame = (
        b'{"jsonrpc":"2.0","id":1,"method":"initialize","params":{"protocolVersion":"0.1.0",'
        b'"clientInfo":{"name":"pytest","version":"1"}}}\n'
    )
    await _serve(frame, collector, _registry(metrics))

    (response,) = collector.responses()
    assert response["id"] == 1
    assert response["result"]["serverInfo"]["name"] == "TestCloud"
    assert "tools" in response["result"]["capabilities"]
    assert response["result"]["protocolVersion"] == "0.1.0"
    assert collector.closed is True


@pytest.mark.anyio
async def test_tools_list_is_sorted(collector: Any, metrics: MetricsProvider) -> None:
    await _serve(
        b'{"jsonrpc":"2.0","id":2,"method":"tools/list","params":{}}\n',
        collector,
        _registry(metrics),
    )
    tools = collector.by_id()[2]["result"]["tools"]
    assert [t["name"] for t in tools] == ["health_check", "hello"]
    assert tools[1]["inputSchema"]["type"] == "object"
    assert tools[1]["description"]


@pytest.mark.anyio
async def test_hello_call(collector: Any, metrics: MetricsProvider) -> None:
    registry = _registry(metrics)
    await _serve(_call(3, "hello", {"name": "World"}), collector, registry, metrics=metrics)

    result = collector.by_id()[3]["result"]
    assert result["content"][0]["type"] == "text"
    assert result["content"][0]["text"].startswith("Hello, World!")
    assert not result.get("isError", False)
    assert (
        metrics.registry.get_sample_value(
            "cloudmcp_tool_executions_total", {"tool": "hello", "status": "success"}
        )
        == 1.0
    )


@pytest.mark.anyio
async def test_unknown_tool(collector: Any, metrics: MetricsProvider) -> None:
    await _serve(_call(4, "no_such"), collector, _registry(metrics))
    error = collector.by_id()[4]["error"]
    assert error["code"] == -32601
    assert error["data"]["toolName"] == "no_such"


@pytest.mark.anyio
async def test_malformed_frame_then_valid_request(
    collector: Any, metrics: MetricsProvider
) -> None:
    await _serve(
        b'not json\n{"jsonrpc":"2.0","id":5,"method":"tools/list"}\n',
        collector,
        _registry(metrics),
    )
    first, second = collector.responses()
    assert first["id"] is None
    assert first["error"]["code"] == -32700
    assert second["id"] == 5
    assert len(second["result"]["tools"]) == 2


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_notifications_get_no_response(collector: Any, metrics: MetricsProvider) -> None:
    data = (
        b'{"jsonrpc":"2.0","method":"notifications/initialized"}\n'
        b'{"jsonrpc":"2.0","method":"notifications/whatever","params":{"x":1}}\n'
        b"\n"
        b'{"jsonrpc":"2.0","id":"p","method":"ping"}\n'
    )
    await _serve(data, collector, _registry(metrics))
    assert collector.responses() == [{"jsonrpc": "2.0", "id": "p", "result": {}}]


@pytest.mark.anyio
async def test_invalid_requests(collector: Any, metrics: MetricsProvider) -> None:
    data = (
        b'{"jsonrpc":"1.0","id":9,"method":"ping"}\n'
        b'{"jsonrpc":"2.0","id":null,"method":"ping"}\n'
        b'{"jsonrpc":"2.0","id":10,"method":"bogus"}\n'
    )
    await _serve(data, collector, _registry(metrics))
    responses = collector.responses()

    assert responses[0] == {
        "jsonrpc": "2.0",
        "id": 9,
        "error": {"code": -32600, "message": "Invalid Request"},
    }
    assert responses[1]["id"] is None
    assert responses[1]["error"]["code"] == -32600
    assert responses[2]["error"]["code"] == -32601
    assert responses[2]["error"]["data"] == {"method": "bogus"}


@pytest.mark.anyio
async def test_duplicate_request_id(collector: Any, metrics: MetricsProvider) -> None:
    data = _frame({"jsonrpc": "2.0", "id": 1, "method": "ping"}) * 2
    await _serve(data, collector, _registry(metrics))

    responses = collector.responses()
    assert len(responses) == 2
    ok = [r for r in responses if r["id"] == 1]
    dup = [r for r in responses if r["id"] is None]
    assert ok[0]["result"] == {}
    assert dup[0]["error"]["code"] == -32600
    assert dup[0]["error"]["data"] == {"reason": "duplicate request id"}


@pytest.mark.anyio
@pytest.mark.parametrize(
    "params",
    [{"name": 5}, {"name": ""}, {"name": "hello", "arguments": [1]}, {}],
)
async def test_tools_call_param_validation(
    collector: Any, metrics: MetricsProvider, params: dict[str, Any]
) -> None:
    frame = _frame({"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": params})
    await _serve(frame, collector, _registry(metrics))
    assert collector.by_id()[1]["error"]["code"] == -32602


@pytest.mark.anyio
async def test_tool_argument_validation_error(collector: Any, metrics: MetricsProvider) -> None:
    await _serve(_call(1, "hello", {"name": 123}), collector, _registry(metrics))
    error = collector.by_id()[1]["error"]
    assert error["code"] == -32602
    assert error["message"] == "Invalid params"
    assert error["data"]["errors"][0]["loc"] == "name"


# ---------------------------------------------------------------------------
# Handler outcomes
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_handler_crash_is_internal_error(collector: Any, metrics: MetricsProvider) -> None:
    async def crash(token: Any, arguments: Any) -> ToolResult:
        raise RuntimeError("secret stack detail")

    registry = _registry(metrics, _tool("crash_tool", crash))
    await _serve(_call(1, "crash_tool") + _call(2, "hello"), collector, registry)

    by_id = collector.by_id()
    assert by_id[1]["error"] == {"code": -32603, "message": "Internal error"}
    assert "secret" not in json.dumps(by_id[1])
    assert "result" in by_id[2]


@pytest.mark.anyio
async def test_domain_errors_are_mapped(collector: Any, metrics: MetricsProvider) -> None:
    async def exists(token: Any, arguments: Any) -> ToolResult:
        raise AccountExists("Account 'a' already exists", details={"account": "a"})

    async def io_failure(token: Any, arguments: Any) -> ToolResult:
        raise ConfigIO("Cannot write configuration file")

    registry = _registry(metrics, _tool("exists_tool", exists), _tool("io_tool", io_failure))
    await _serve(_call(1, "exists_tool") + _call(2, "io_tool"), collector, registry)

    by_id = collector.by_id()
    assert by_id[1]["error"] == {
        "code": -32602,
        "message": "Account 'a' already exists",
        "data": {"code": "ACCOUNT_EXISTS", "account": "a"},
    }
    assert by_id[2]["error"]["code"] == -32603
    assert by_id[2]["error"]["data"] == {"code": "CONFIG_IO"}


@pytest.mark.anyio
async def test_tool_level_error_result(collector: Any, metrics: MetricsProvider) -> None:
    async def soft_fail(token: Any, arguments: Any) -> ToolResult:
        return ToolResult.text("instance not found", is_error=True)

    registry = _registry(metrics, _tool("soft_fail", soft_fail))
    await _serve(_call(1, "soft_fail"), collector, registry, metrics=metrics)

    assert collector.by_id()[1]["result"]["isError"] is True
    assert (
        metrics.registry.get_sample_value(
            "cloudmcp_tool_executions_total", {"tool": "soft_fail", "status": "error"}
        )
        == 1.0
    )


# ---------------------------------------------------------------------------
# Cancellation and shutdown
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_cancel_notification_cancels_request(
    collector: Any, metrics: MetricsProvider
) -> None:
    async def stuck(token: CancellationToken, arguments: Any) -> ToolResult:
        await token.sleep(30)
        return ToolResult.text("unreachable")

    registry = _registry(metrics, _tool("stuck_tool", stuck))
    data = _call(1, "stuck_tool") + _frame(
        {"jsonrpc": "2.0", "method": "notifications/cancelled", "params": {"requestId": 1}}
    )
    await _serve(data, collector, registry, metrics=metrics)

    assert collector.by_id()[1]["error"] == {"code": -32000, "message": "cancelled"}
    assert (
        metrics.registry.get_sample_value(
            "cloudmcp_tool_executions_total", {"tool": "stuck_tool", "status": "cancelled"}
        )
        == 1.0
    )


@pytest.mark.anyio
async def test_shutdown_method(collector: Any, metrics: MetricsProvider) -> None:
    async def stuck(token: Any, arguments: Any) -> ToolResult:
        await asyncio.sleep(30)
        return ToolResult.text("unreachable")

    registry = _registry(metrics, _tool("stuck_tool", stuck))
    token = CancellationToken()
    data = (
        _call(1, "stuck_tool")
        + _frame({"jsonrpc": "2.0", "id": 2, "method": "shutdown"})
        + _frame({"jsonrpc": "2.0", "id": 3, "method": "ping"})
    )
    dispatcher = await _serve(data, collector, registry, token=token)

    by_id = collector.by_id()
    assert by_id[2]["result"] == {}
    assert by_id[1]["error"]["code"] == -32000
    assert by_id[3]["error"] == {"code": -32000, "message": "server shutting down"}
    assert token.reason == "shutdown requested"
    assert dispatcher.draining is True
    assert dispatcher.in_flight == 0


@pytest.mark.anyio
async def test_request_after_shutdown_is_refused_when_idle(
    collector: Any, metrics: MetricsProvider
) -> None:
    data = _frame({"jsonrpc": "2.0", "id": 2, "method": "shutdown"}) + _frame(
        {"jsonrpc": "2.0", "id": 3, "method": "ping"}
    )
    dispatcher = await _serve(data, collector, _registry(metrics))

    by_id = collector.by_id()
    assert by_id[2]["result"] == {}
    assert by_id[3]["error"] == {"code": -32000, "message": "server shutting down"}
    assert dispatcher.in_flight == 0


@pytest.mark.anyio
async def test_request_after_shutdown_is_refused_on_open_stream(
    collector: Any, metrics: MetricsProvider
) -> None:
    reader = asyncio.StreamReader()
    reader.feed_data(
        _frame({"jsonrpc": "2.0", "id": "s", "method": "shutdown"})
        + _frame({"jsonrpc": "2.0", "id": "late", "method": "tools/list"})
    )
    dispatcher = Dispatcher(_registry(metrics), server_name="TestCloud")

    await asyncio.wait_for(dispatcher.serve(reader, collector, CancellationToken()), timeout=5)

    by_id = collector.by_id()
    assert by_id["late"]["error"]["message"] == "server shutting down"
    assert collector.closed is True


@pytest.mark.anyio
async def test_eof_waits_for_in_flight_requests(collector: Any, metrics: MetricsProvider) -> None:
    async def slow(token: Any, arguments: Any) -> ToolResult:
        await asyncio.sleep(0.05)
        return ToolResult.text("done")

    registry = _registry(metrics, _tool("slow_tool", slow))
    await _serve(_call(1, "slow_tool"), collector, registry)

    assert collector.by_id()[1]["result"]["content"][0]["text"] == "done"


@pytest.mark.anyio
async def test_eof_drain_timeout_cancels_stragglers(
    collector: Any, metrics: MetricsProvider
) -> None:
    async def stuck(token: Any, arguments: Any) -> ToolResult:
        await asyncio.sleep(30)
        return ToolResult.text("unreachable")

    registry = _registry(metrics, _tool("stuck_tool", stuck))
    await _serve(_call(1, "stuck_tool"), collector, registry, shutdown_timeout=0.05)

    assert collector.by_id()[1]["error"]["code"] == -32000


@pytest.mark.anyio
async def test_root_token_cancel_stops_session(collector: Any, metrics: MetricsProvider) -> None:
    reader = asyncio.StreamReader()
    token = CancellationToken()
    dispatcher = Dispatcher(_registry(metrics), server_name="TestCloud")
    serving = asyncio.create_task(dispatcher.serve(reader, collector, token))

    reader.feed_data(_frame({"jsonrpc": "2.0", "id": 1, "method": "ping"}))
    await asyncio.sleep(0.05)
    token.cancel("signal SIGTERM")
    await asyncio.wait_for(serving, timeout=2)

    assert collector.by_id()[1]["result"] == {}
    assert collector.closed is True


# ---------------------------------------------------------------------------
# Limits and output
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_oversized_frame_is_skipped(collector: Any, metrics: MetricsProvider) -> None:
    big = b'{"jsonrpc":"2.0","id":1,"method":"ping","params":{"pad":"' + b"x" * 200 + b'"}}\n'
    ping = b'{"jsonrpc":"2.0","id":2,"method":"ping"}\n'
    await _serve(big + ping, collector, _registry(metrics), limit=64)

    first, second = collector.responses()
    assert first["id"] is None
    assert first["error"]["code"] == -32700
    assert second == {"jsonrpc": "2.0", "id": 2, "result": {}}


@pytest.mark.anyio
async def test_max_in_flight_is_respected(collector: Any, metrics: MetricsProvider) -> None:
    active = 0
    peak = 0

    async def busy(token: Any, arguments: Any) -> ToolResult:
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1
        return ToolResult.text("ok")

    registry = _registry(metrics, _tool("busy_tool", busy))
    data = b"".join(_call(i, "busy_tool") for i in range(1, 7))
    await _serve(data, collector, registry, max_in_flight=2)

    assert peak <= 2
    assert sorted(collector.by_id()) == [1, 2, 3, 4, 5, 6]


def test_max_in_flight_must_be_positive(metrics: MetricsProvider) -> None:
    with pytest.raises(ValueError):
        Dispatcher(_registry(metrics), server_name="x", max_in_flight=0)


class _BrokenWriter:
    def __init__(self) -> None:
        self.closed = False

    def write(self, data: bytes) -> None:
        raise BrokenPipeError("stdout closed")

    async def drain(self) -> None:
        return None

    def close(self) -> None:
        self.closed = True


@pytest.mark.anyio
async def test_broken_output_does_not_crash_session(metrics: MetricsProvider) -> None:
    writer = _BrokenWriter()
    data = _frame({"jsonrpc": "2.0", "id": 1, "method": "ping"}) + _call(2, "hello")
    await _serve(data, writer, _registry(metrics))
    assert writer.closed is True


@pytest.mark.anyio
async def test_answered_ids_stay_rejected_over_a_long_session(
    collector: Any, metrics: MetricsProvider
) -> None:
    data = b"".join(_frame({"jsonrpc": "2.0", "id": n, "method": "ping"}) for n in range(1, 301))
    data += _frame({"jsonrpc": "2.0", "id": 7, "method": "ping"})
    dispatcher = await _serve(data, collector, _registry(metrics), max_in_flight=4)

    responses = collector.responses()
    assert len(responses) == 301
    assert sum(1 for r in responses if r["id"] is None) == 1
    assert dispatcher._responded.stored == 0


def test_answered_ids_collapse_contiguous_runs() -> None:
    seen = AnsweredIds()
    for request_id in (5, 7, 6, 4, "abc", 10):
        seen.add(request_id)

    assert len(seen) == 6
    assert seen.stored == 2
    assert all(i in seen for i in (4, 5, 6, 7, 10, "abc"))
    assert 3 not in seen
    assert 8 not in seen
    assert "7" not in seen
    assert True not in seen

    seen.add(9)
    seen.add(8)
    assert seen.stored == 1
    assert 10 in seen

    seen.clear()
    assert len(seen) == 0
    assert 5 not in seen
