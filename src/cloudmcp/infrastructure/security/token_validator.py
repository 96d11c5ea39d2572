# src/cloudmcp/infrastructure/security/token_validator.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Credential validation and redaction.

Summary:
    Decide whether a credential string matches its declared format and
    length range, and produce a display-safe form of it. Nothing in this
    module ever returns, logs or raises with the raw credential.

Design:
    * Rules are declared per credential kind (``LINODE_TOKEN``, ...). The
      default table mirrors the kinds the broker knows how to consume.
    * Length bounds are compared with branch-free integer arithmetic so the
      time taken does not depend on which side of a bound the length falls.
    * Redaction keeps at most the first and last four characters.

Usage:
    validator = TokenValidator()
    result = validator.validate_kind("LINODE_TOKEN", token)
    if not result.valid:
        logger.warning("token_invalid", extra={"extra": result.log_fields()})
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Final

from cloudmcp.domain.exceptions import TokenFormat, TokenLength, TokenMissing

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


class CredentialFormat(StrEnum):
    """Accepted credential alphabets."""

    HEX = "hex"
    ALPHANUMERIC = "alphanumeric-plus"
    BASE64 = "base64"
    JWT = "jwt"


class FailureReason(StrEnum):
    """Why a credential was rejected."""

    MISSING = "missing-required"
    LENGTH = "length-out-of-range"
    FORMAT = "format-mismatch"


_PATTERNS: Final[dict[CredentialFormat, re.Pattern[str]]] = {
    CredentialFormat.HEX: re.compile(r"[0-9a-fA-F]+"),
    CredentialFormat.ALPHANUMERIC: re.compile(r"[A-Za-z0-9_\-.]+"),
    CredentialFormat.BASE64: re.compile(r"[A-Za-z0-9+/]*={0,2}"),
}
_JWT_SEGMENT: Final[re.Pattern[str]] = re.compile(r"[A-Za-z0-9_\-]+=*")


@dataclass(frozen=True)
class TokenRule:
    """Validation rule for one credential kind.

    Attributes:
        kind: Credential kind, usually the environment variable name.
        format: Required alphabet.
        min_length: Minimum accepted length (inclusive).
        max_length: Maximum accepted length (inclusive).
        allow_empty: Whether an empty value is acceptable.
    """

    kind: str
    format: CredentialFormat
    min_length: int
    max_length: int
    allow_empty: bool = False


DEFAULT_RULES: Final[Mapping[str, TokenRule]] = {
    rule.kind: rule
    for rule in (
        TokenRule("LINODE_TOKEN", CredentialFormat.HEX, 32, 128),
        TokenRule("AWS_ACCESS_KEY_ID", CredentialFormat.ALPHANUMERIC, 16, 32),
        TokenRule("AWS_SECRET_ACCESS_KEY", CredentialFormat.ALPHANUMERIC, 32, 64),
        TokenRule("GITHUB_TOKEN", CredentialFormat.ALPHANUMERIC, 40, 255),
        TokenRule("TEST_TOKEN", CredentialFormat.HEX, 16, 256, allow_empty=True),
    )
}


@dataclass(frozen=True)
class TokenValidationResult:
    """Outcome of validating one credential.

    Attributes:
        valid: Whether the credential satisfied the rule.
        redacted: Display-safe form of the credential.
        length: Length of the credential.
        format: Format the credential was checked against.
        kind: Credential kind of the rule used.
        reason: Failure reason when ``valid`` is false.
    """

    valid: bool
    redacted: str
    length: int
    format: CredentialFormat
    kind: str
    reason: FailureReason | None = None

    def log_fields(self) -> dict[str, Any]:
        """Return structured, credential-free fields for logging."""
        fields: dict[str, Any] = {
            "kind": self.kind,
            "valid": self.valid,
            "redacted": self.redacted,
            "length": self.length,
            "format": self.format.value,
        }
        if self.reason is not None:
            fields["reason"] = self.reason.value
        return fields

    def raise_for_status(self) -> None:
        """Raise the matching token error if the credential was rejected.

        Raises:
            TokenMissing: Required credential was empty.
            TokenLength: Length outside the rule's range.
            TokenFormat: Alphabet mismatch.
        """
        if self.valid:
            return
        details = self.log_fields()
        if self.reason is FailureReason.MISSING:
            raise TokenMissing(f"{self.kind} is required", details=details)
        if self.reason is FailureReason.LENGTH:
            raise TokenLength(
                f"{self.kind} has invalid length {self.length} ({self.redacted})", details=details
            )
        raise TokenFormat(
            f"{self.kind} is not valid {self.format.value} ({self.redacted})", details=details
        )


def redact_token(token: str) -> str:
    """Return a display-safe form of ``token``.

    Rules:
        * empty -> ``[EMPTY]``
        * up to 4 chars -> ``[REDACTED]``
        * up to 8 chars -> first 2 kept, rest masked
        * up to 16 chars -> first 3 and last 3 kept
        * longer -> first 4 and last 4 kept

    Args:
        token: Credential to redact.

    Returns:
        str: Redacted form.
    """
    n = len(token)
    if n == 0:
        return "[EMPTY]"
    if n <= 4:
        return "[REDACTED]"
    if n <= 8:
        return token[:2] + "*" * (n - 2)
    if n <= 16:
        return token[:3] + "*" * (n - 6) + token[-3:]
    return token[:4] + "*" * (n - 8) + token[-4:]


def safe_log_fields(token: str, *, kind: str | None = None) -> dict[str, Any]:
    """Return log fields describing ``token`` without exposing it."""
    fields: dict[str, Any] = {"redacted": redact_token(token), "length": len(token)}
    if kind:
        fields["kind"] = kind
    return fields


def _length_in_range(length: int, min_length: int, max_length: int) -> bool:
    # Sign bits of (length - min) and (max - length); no data-dependent branch.
    below = ((length - min_length) >> 63) & 1
    above = ((max_length - length) >> 63) & 1
    return (below | above) == 0


def _matches_format(token: str, fmt: CredentialFormat) -> bool:
    if fmt is CredentialFormat.JWT:
        parts = token.split(".")
        return len(parts) == 3 and all(_JWT_SEGMENT.fullmatch(p) for p in parts)
    if _PATTERNS[fmt].fullmatch(token) is None:
        return False
    if fmt is CredentialFormat.BASE64:
        return len(token) % 4 == 0
    return True


class TokenValidator:
    """Validate credentials against per-kind rules."""

    def __init__(self, rules: Mapping[str, TokenRule] | None = None) -> None:
        self._rules: dict[str, TokenRule] = dict(DEFAULT_RULES if rules is None else rules)

    @property
    def rules(self) -> Mapping[str, TokenRule]:
        return dict(self._rules)

    def rule_for(self, kind: str) -> TokenRule:
        """Return the rule registered for ``kind``.

        Raises:
            KeyError: If no rule is registered.
        """
        return self._rules[kind]

    def validate(self, token: str, rule: TokenRule) -> TokenValidationResult:
        """Validate ``token`` against ``rule``.

        Checks run in order: presence, length, then format.
        """
        length = len(token)
        redacted = redact_token(token)

        def _result(reason: FailureReason | None) -> TokenValidationResult:
            return TokenValidationResult(
                valid=reason is None,
                redacted=redacted,
                length=length,
                format=rule.format,
                kind=rule.kind,
                reason=reason,
            )

        if length == 0:
            return _result(None if rule.allow_empty else FailureReason.MISSING)
        if not _length_in_range(length, rule.min_length, rule.max_length):
            return _result(FailureReason.LENGTH)
        if not _matches_format(token, rule.format):
            return _result(FailureReason.FORMAT)
        return _result(None)

    def validate_kind(self, kind: str, token: str) -> TokenValidationResult:
        """Validate ``token`` with the rule registered for ``kind``."""
        return self.validate(token, self.rule_for(kind))

    def validate_environment(
        self, environ: Mapping[str, str] | None = None
    ) -> dict[str, TokenValidationResult]:
        """Validate every configured credential kind present in ``environ``.

        Args:
            environ: Environment mapping; defaults to :data:`os.environ`.

        Returns:
            dict[str, TokenValidationResult]: Results keyed by kind, only for
            kinds that are set.
        """
        env = os.environ if environ is None else environ
        return {
            kind: self.validate(env[kind], rule)
            for kind, rule in self._rules.items()
            if kind in env
        }

    def audit_report(self, environ: Mapping[str, str] | None = None) -> dict[str, dict[str, Any]]:
        """Summarize every configured kind, present or not, with redacted values."""
        env = os.environ if environ is None else environ
        report: dict[str, dict[str, Any]] = {}
        for kind, rule in self._rules.items():
            if kind not in env:
                report[kind] = {"present": False, "required": not rule.allow_empty}
                continue
            fields = self.validate(env[kind], rule).log_fields()
            fields["present"] = True
            fields["required"] = not rule.allow_empty
            report[kind] = fields
        return report
