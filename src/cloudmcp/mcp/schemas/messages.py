# src/cloudmcp/mcp/schemas/messages.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""JSON-RPC Message Schemas.

Purpose:
- Define the request, response and error envelopes exchanged on the
  line-framed session, plus the ``tools/call`` result shape.

Layer: adapters/mcp

Notes:
- Ids are strict JSON integers or strings; booleans and floats are not ids.
- A request without an ``id`` member is a notification and gets no response.
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, model_validator

from cloudmcp.domain.entities.tool import TextContent, ToolResult

__all__ = [
    "CallToolResult",
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "RequestId",
    "TextContentBlock",
]

RequestId = StrictInt | StrictStr


class JsonRpcError(BaseModel):
    """Error member of a failed response."""

    model_config = ConfigDict(extra="forbid")

    code: int = Field(..., description="JSON-RPC error code.")
    message: str = Field(..., description="Short, credential-free message.")
    data: dict[str, Any] | None = Field(default=None, description="Machine-readable context.")


class JsonRpcRequest(BaseModel):
    """Request or notification received from the client."""

    model_config = ConfigDict(extra="ignore")

    jsonrpc: Literal["2.0"]
    id: RequestId | None = None
    method: str = Field(..., min_length=1)
    params: dict[str, Any] | None = None

    @property
    def is_notification(self) -> bool:
        return "id" not in self.model_fields_set


class JsonRpcResponse(BaseModel):
    """Response envelope; exactly one of ``result`` / ``error`` is set."""

    model_config = ConfigDict(extra="forbid")

    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId | None
    result: Any | None = None
    error: JsonRpcError | None = None

    @model_validator(mode="after")
    def _exactly_one_outcome(self) -> JsonRpcResponse:
        if (self.result is None) == (self.error is None):
            raise ValueError("exactly one of result or error must be set")
        return self

    @classmethod
    def success(cls, request_id: RequestId | None, result: Any) -> JsonRpcResponse:
        return cls(id=request_id, result=result)

    @classmethod
    def failure(
        cls,
        request_id: RequestId | None,
        code: int,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> JsonRpcResponse:
        return cls(id=request_id, error=JsonRpcError(code=code, message=message, data=data))

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON object written on the stream."""
        wire: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            wire["error"] = self.error.model_dump(exclude_none=True)
        else:
            wire["result"] = self.result
        return wire

    def encode(self) -> bytes:
        """Serialize as one compact JSON line (without the trailing newline)."""
        return json.dumps(
            self.to_wire(), separators=(",", ":"), ensure_ascii=False, default=str
        ).encode("utf-8")


class TextContentBlock(BaseModel):
    """Wire form of :class:`~cloudmcp.domain.entities.tool.TextContent`."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["text"] = "text"
    text: str


class CallToolResult(BaseModel):
    """Wire form of a ``tools/call`` result."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    content: list[TextContentBlock] = Field(default_factory=list)
    is_error: bool | None = Field(default=None, alias="isError")

    @classmethod
    def from_result(cls, result: ToolResult) -> CallToolResult:
        return cls(
            content=[TextContentBlock(text=block.text) for block in result.content],
            is_error=True if result.is_error else None,
        )

    def to_result(self) -> ToolResult:
        return ToolResult(
            content=tuple(TextContent(text=block.text) for block in self.content),
            is_error=bool(self.is_error),
        )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
