# src/cloudmcp/infrastructure/security/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Credential validation and redaction."""

from __future__ import annotations

from cloudmcp.infrastructure.security.token_validator import (
    DEFAULT_RULES,
    CredentialFormat,
    FailureReason,
    TokenRule,
    TokenValidationResult,
    TokenValidator,
    redact_token,
    safe_log_fields,
)

__all__ = [
    "DEFAULT_RULES",
    "CredentialFormat",
    "FailureReason",
    "TokenRule",
    "TokenValidationResult",
    "TokenValidator",
    "redact_token",
    "safe_log_fields",
]
