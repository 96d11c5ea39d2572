# src/cloudmcp/domain/exceptions/config.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Configuration Store Exceptions.

Synopsis:
    Errors raised while loading, validating, mutating and persisting the
    configuration document. Mutator errors never alter the live document.

Layer:
    domain/exceptions
"""

from __future__ import annotations

from cloudmcp.domain.exceptions.base import DomainError

__all__ = [
    "AccountError",
    "AccountExists",
    "AccountInvalid",
    "AccountMissing",
    "ConfigError",
    "ConfigIO",
    "ConfigParse",
    "ConfigPathUnsafe",
    "ConfigValidate",
    "DefaultAccountLocked",
]


class ConfigError(DomainError):
    """Base class for configuration errors."""

    code = "CONFIG_ERROR"


class ConfigParse(ConfigError):
    """The configuration file is not valid TOML."""

    code = "CONFIG_PARSE"


class ConfigValidate(ConfigError):
    """The configuration content violates a document invariant."""

    code = "CONFIG_VALIDATE"


class ConfigPathUnsafe(ConfigError):
    """The configuration path traverses outside the allowed roots."""

    code = "CONFIG_PATH_UNSAFE"


class ConfigIO(ConfigError):
    """Reading or writing the configuration file failed."""

    code = "CONFIG_IO"


class AccountError(ConfigError):
    """Base class for account mutator errors (caller mistakes)."""

    code = "ACCOUNT_ERROR"


class AccountExists(AccountError):
    """An account with the given name is already configured."""

    code = "ACCOUNT_EXISTS"


class AccountMissing(AccountError):
    """No account with the given name is configured."""

    code = "ACCOUNT_MISSING"


class AccountInvalid(AccountError):
    """The account record is incomplete (empty token or label)."""

    code = "ACCOUNT_INVALID"


class DefaultAccountLocked(AccountError):
    """The default account cannot be removed."""

    code = "DEFAULT_ACCOUNT_LOCKED"
