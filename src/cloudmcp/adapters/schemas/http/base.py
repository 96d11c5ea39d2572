# src/cloudmcp/adapters/schemas/http/base.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""
Base HTTP Schema (Adapters Layer)

Purpose:
    Canonical Pydantic base for sidecar response schemas: strict config and
    deterministic JSON encoding (enum values, ISO-8601 UTC timestamps).

Layer: adapters/schemas/http
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class BaseHTTPSchema(BaseModel):
    """Base class for all HTTP-facing schemas."""

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        use_enum_values=True,
        ser_json_inf_nan="null",
    )

    def model_dump_http(self, **kwargs: Any) -> dict[str, Any]:
        """Return a JSON-serializable dict suitable for HTTP responses.

        Args:
            **kwargs: Extra ``model_dump`` options.

        Returns:
            dict[str, Any]: JSON-mode dump, ``None`` fields omitted.
        """
        kwargs.setdefault("exclude_none", True)
        return self.model_dump(mode="json", by_alias=True, **kwargs)
