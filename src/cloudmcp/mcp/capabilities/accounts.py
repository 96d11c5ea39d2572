# src/cloudmcp/mcp/capabilities/accounts.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""MCP Capabilities: account_list / account_add / account_update /
account_remove / account_set_default

Purpose:
    Manage the named provider accounts of the configuration file from the
    tool-call session.

Design:
    * Manager calls do file I/O under an exclusive lock, so they run in a
      worker thread (``asyncio.to_thread``) to keep the event loop free.
    * Tokens are checked against the ``LINODE_TOKEN`` rule before anything
      is persisted. Results and errors only ever carry the redacted form.
    * Manager errors (``AccountExists``, ``AccountMissing``...) propagate
      unchanged; the dispatcher maps them to ``-32602``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any, Final

from cloudmcp.config.document import AccountRecord
from cloudmcp.config.manager import ConfigManager
from cloudmcp.domain.entities.tool import ToolDescriptor, ToolResult
from cloudmcp.infrastructure.concurrency.cancellation import CancellationToken
from cloudmcp.infrastructure.logging.logger import get_json_logger
from cloudmcp.infrastructure.security.token_validator import TokenValidator, redact_token
from cloudmcp.mcp.schemas.tools import (
    AccountAddParams,
    AccountNameParams,
    AccountUpdateParams,
    NoParams,
)

__all__ = ["TOKEN_KIND", "AccountTools"]

logger = get_json_logger(__name__)

TOKEN_KIND: Final[str] = "LINODE_TOKEN"


class AccountTools:
    """Account-management tools bound to one configuration manager.

    Args:
        manager: Live configuration manager.
        validator: Token validator; defaults to the built-in rule table.
    """

    def __init__(self, manager: ConfigManager, *, validator: TokenValidator | None = None) -> None:
        self._manager = manager
        self._validator = validator or TokenValidator()

    def _check_token(self, token: str) -> None:
        result = self._validator.validate_kind(TOKEN_KIND, token)
        if not result.valid:
            logger.warning("account_token_rejected", extra={"extra": result.log_fields()})
        result.raise_for_status()

    async def list_accounts(
        self, token: CancellationToken, arguments: Mapping[str, Any]
    ) -> ToolResult:
        """Return every account with its token redacted."""
        NoParams.model_validate(arguments)
        snapshot = await asyncio.to_thread(self._manager.snapshot)
        default = snapshot.default_account
        return ToolResult.json(
            {
                "defaultAccount": default,
                "configFile": str(self._manager.path),
                "accounts": [
                    {
                        "name": name,
                        "label": record.label,
                        "token": redact_token(record.token),
                        "apiUrl": record.effective_api_url,
                        "default": name == default,
                    }
                    for name, record in snapshot.accounts.items()
                ],
            }
        )

    async def add_account(
        self, token: CancellationToken, arguments: Mapping[str, Any]
    ) -> ToolResult:
        params = AccountAddParams.model_validate(arguments)
        self._check_token(params.token)
        record = AccountRecord(token=params.token, label=params.label, apiurl=params.apiurl)
        token.raise_if_cancelled()
        await asyncio.to_thread(self._manager.add_account, params.name, record)
        return ToolResult.text(
            f"Account '{params.name}' ({params.label}) added. "
            f"Token {redact_token(params.token)}, API URL {record.effective_api_url}."
        )

    async def update_account(
        self, token: CancellationToken, arguments: Mapping[str, Any]
    ) -> ToolResult:
        """Update the given fields of an account; omitted fields are kept."""
        params = AccountUpdateParams.model_validate(arguments)
        current = await asyncio.to_thread(self._manager.get_account, params.name)
        if params.token is not None:
            self._check_token(params.token)
        record = AccountRecord(
            token=current.token if params.token is None else params.token,
            label=current.label if params.label is None else params.label,
            apiurl=current.apiurl if params.apiurl is None else params.apiurl,
        )
        token.raise_if_cancelled()
        await asyncio.to_thread(self._manager.update_account, params.name, record)
        return ToolResult.text(
            f"Account '{params.name}' updated. "
            f"Label {record.label}, API URL {record.effective_api_url}."
        )

    async def remove_account(
        self, token: CancellationToken, arguments: Mapping[str, Any]
    ) -> ToolResult:
        params = AccountNameParams.model_validate(arguments)
        token.raise_if_cancelled()
        await asyncio.to_thread(self._manager.remove_account, params.name)
        return ToolResult.text(f"Account '{params.name}' removed.")

    async def set_default_account(
        self, token: CancellationToken, arguments: Mapping[str, Any]
    ) -> ToolResult:
        params = AccountNameParams.model_validate(arguments)
        token.raise_if_cancelled()
        await asyncio.to_thread(self._manager.set_default_account, params.name)
        return ToolResult.text(f"Default account is now '{params.name}'.")

    def descriptors(self) -> list[ToolDescriptor]:
        """Return the descriptors of all account tools."""
        return [
            ToolDescriptor(
                name="account_list",
                description="List configured provider accounts with redacted tokens",
                input_schema=NoParams.model_json_schema(),
                handler=self.list_accounts,
            ),
            ToolDescriptor(
                name="account_add",
                description="Add a provider account to the CloudMCP configuration file",
                input_schema=AccountAddParams.model_json_schema(),
                handler=self.add_account,
            ),
            ToolDescriptor(
                name="account_update",
                description="Update the token, label or API URL of a configured account",
                input_schema=AccountUpdateParams.model_json_schema(),
                handler=self.update_account,
            ),
            ToolDescriptor(
                name="account_remove",
                description="Remove a provider account (the default account cannot be removed)",
                input_schema=AccountNameParams.model_json_schema(),
                handler=self.remove_account,
            ),
            ToolDescriptor(
                name="account_set_default",
                description="Make a configured account the default account",
                input_schema=AccountNameParams.model_json_schema(),
                handler=self.set_default_account,
            ),
        ]
