# src/cloudmcp/domain/exceptions/tokens.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Token Validation Exceptions.

Messages only ever carry the redacted form of the credential.
"""

from __future__ import annotations

from cloudmcp.domain.exceptions.base import DomainError

__all__ = ["TokenError", "TokenFormat", "TokenLength", "TokenMissing"]


class TokenError(DomainError):
    """Base class for credential validation errors."""

    code = "TOKEN_ERROR"


class TokenFormat(TokenError):
    """The credential does not match its declared format."""

    code = "TOKEN_FORMAT"


class TokenLength(TokenError):
    """The credential length is outside the declared range."""

    code = "TOKEN_LENGTH"


class TokenMissing(TokenError):
    """A required credential is empty or absent."""

    code = "TOKEN_MISSING"
