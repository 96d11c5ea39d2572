# src/cloudmcp/infrastructure/http/errors.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Sidecar error envelopes and exception handlers."""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.responses import Response

__all__ = ["error_envelope", "handle_http_exception", "handle_unhandled_exception"]


def error_envelope(
    *,
    code: str,
    http_status: int,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    err: dict[str, Any] = {
        "code": code,
        "http_status": http_status,
        "message": message,
    }
    if details is not None:
        err["details"] = details
    return {"error": err}


async def handle_http_exception(request: Request, exc: HTTPException) -> Response:
    code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
    payload = error_envelope(
        code=code,
        http_status=exc.status_code,
        message=exc.detail if isinstance(exc.detail, str) else "HTTP error",
    )
    return JSONResponse(status_code=exc.status_code, content=payload, headers=exc.headers)


async def handle_unhandled_exception(request: Request, exc: Exception) -> Response:
    payload = error_envelope(
        code="INTERNAL_ERROR",
        http_status=500,
        message="Internal server error",
    )
    return JSONResponse(status_code=500, content=payload)
