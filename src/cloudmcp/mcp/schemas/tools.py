# src/cloudmcp/mcp/schemas/tools.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""MCP Schemas: Built-in Tool Arguments.

Purpose:
- Define the ``arguments`` models of the built-in tools. Each model's JSON
  Schema is advertised as the tool's ``inputSchema`` by ``tools/list``.

Layer: adapters/mcp
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "AccountAddParams",
    "AccountNameParams",
    "AccountUpdateParams",
    "HelloParams",
    "NoParams",
]

_ACCOUNT_NAME_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,63}$"


class NoParams(BaseModel):
    """Arguments of tools that take none."""

    model_config = ConfigDict(extra="ignore", title="NoArguments")


class HelloParams(BaseModel):
    """Arguments of ``hello``."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(
        default="World",
        description="Name to include in the greeting (optional).",
    )


class AccountNameParams(BaseModel):
    """Arguments naming one configured account."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(
        ...,
        pattern=_ACCOUNT_NAME_PATTERN,
        description="Account name as it appears in the configuration file.",
    )


class AccountAddParams(AccountNameParams):
    """Arguments of ``account_add``."""

    token: str = Field(..., min_length=1, description="Provider API token (hex).")
    label: str = Field(..., min_length=1, description="Human-readable account label.")
    apiurl: str = Field(
        default="",
        description="API base URL; empty means the provider default.",
    )


class AccountUpdateParams(AccountNameParams):
    """Arguments of ``account_update``; omitted fields keep their current value."""

    token: str | None = Field(default=None, min_length=1, description="New API token (hex).")
    label: str | None = Field(default=None, min_length=1, description="New account label.")
    apiurl: str | None = Field(default=None, description="New API base URL.")
