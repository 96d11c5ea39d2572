# tests/unit/infrastructure/test_token_validator.py
from __future__ import annotations

import timeit

import pytest

from cloudmcp.domain.exceptions import TokenFormat, TokenLength, TokenMissing
from cloudmcp.infrastructure.security.token_validator import (
    CredentialFormat,
    FailureReason,
    TokenRule,
    TokenValidator,
    _length_in_range,
    redact_token,
    safe_log_fields,
)

LINODE = "abcdef123456789012345678901234567890abcd"


@pytest.mark.parametrize(
    "token, expected",
    [
        ("", "[EMPTY]"),
        ("abcd", "[REDACTED]"),
        ("abcde", "ab***"),
        ("abcdefgh", "ab******"),
        ("abcdefghi", "abc***ghi"),
        ("abcdefghijklmnop", "abc**********nop"),
        ("abcdefghijklmnopq", "abcd*********nopq"),
    ],
)
def test_redaction_boundaries(token: str, expected: str) -> None:
    assert redact_token(token) == expected
    assert len(redact_token(token)) == len(expected)


def test_redaction_never_reveals_middle() -> None:
    redacted = redact_token(LINODE)
    assert redacted.startswith("abcd") and redacted.endswith("abcd")
    assert "1234567890" not in redacted


def test_valid_linode_token() -> None:
    result = TokenValidator().validate_kind("LINODE_TOKEN", LINODE)
    assert result.valid
    assert result.reason is None
    assert result.length == len(LINODE)
    assert result.format is CredentialFormat.HEX
    result.raise_for_status()


@pytest.mark.parametrize(
    "token, reason, error",
    [
        ("", FailureReason.MISSING, TokenMissing),
        ("abc123", FailureReason.LENGTH, TokenLength),
        ("a" * 129, FailureReason.LENGTH, TokenLength),
        ("z" * 40, FailureReason.FORMAT, TokenFormat),
    ],
)
def test_rejections_carry_reason_and_redacted_details(
    token: str, reason: FailureReason, error: type[Exception]
) -> None:
    result = TokenValidator().validate_kind("LINODE_TOKEN", token)
    assert not result.valid
    assert result.reason is reason

    with pytest.raises(error) as excinfo:
        result.raise_for_status()
    if token:
        assert token not in str(excinfo.value)
        assert token not in repr(excinfo.value.details)  # type: ignore[attr-defined]


def test_checks_run_presence_then_length_then_format() -> None:
    # Too short and not hex: length wins.
    result = TokenValidator().validate_kind("LINODE_TOKEN", "zz")
    assert result.reason is FailureReason.LENGTH


def test_allow_empty_rule() -> None:
    result = TokenValidator().validate_kind("TEST_TOKEN", "")
    assert result.valid
    assert result.redacted == "[EMPTY]"


@pytest.mark.parametrize(
    "fmt, good, bad",
    [
        (CredentialFormat.ALPHANUMERIC, "AKIA_test-key.01", "has space!"),
        (CredentialFormat.BASE64, "QUJDRA==", "QUJDRA="),
        (CredentialFormat.JWT, "eyJh.eyJz.c2ln", "eyJh.eyJz"),
    ],
)
def test_formats(fmt: CredentialFormat, good: str, bad: str) -> None:
    rule = TokenRule("CUSTOM", fmt, 1, 64)
    validator = TokenValidator({"CUSTOM": rule})
    assert validator.validate(good, rule).valid
    assert validator.validate(bad, rule).reason is FailureReason.FORMAT


def test_unknown_kind_raises_key_error() -> None:
    with pytest.raises(KeyError):
        TokenValidator().validate_kind("NOPE", LINODE)


def test_validate_environment_and_audit_report() -> None:
    env = {"LINODE_TOKEN": LINODE, "GITHUB_TOKEN": "short", "UNRELATED": "x"}
    validator = TokenValidator()

    results = validator.validate_environment(env)
    assert set(results) == {"LINODE_TOKEN", "GITHUB_TOKEN"}
    assert results["LINODE_TOKEN"].valid
    assert results["GITHUB_TOKEN"].reason is FailureReason.LENGTH

    report = validator.audit_report(env)
    assert report["AWS_ACCESS_KEY_ID"] == {"present": False, "required": True}
    assert report["LINODE_TOKEN"]["present"] is True
    assert LINODE not in str(report)


def test_log_fields_and_safe_log_fields_are_credential_free() -> None:
    fields = TokenValidator().validate_kind("LINODE_TOKEN", LINODE).log_fields()
    assert fields["kind"] == "LINODE_TOKEN"
    assert fields["format"] == "hex"
    assert LINODE not in str(fields)

    assert safe_log_fields(LINODE, kind="LINODE_TOKEN") == {
        "redacted": redact_token(LINODE),
        "length": 40,
        "kind": "LINODE_TOKEN",
    }


@pytest.mark.parametrize(
    "length, expected",
    [(31, False), (32, True), (33, True), (127, True), (128, True), (129, False), (0, False)],
)
def test_length_range_boundaries(length: int, expected: bool) -> None:
    assert _length_in_range(length, 32, 128) is expected


def test_length_range_handles_degenerate_and_huge_bounds() -> None:
    assert _length_in_range(5, 5, 5) is True
    assert _length_in_range(4, 5, 5) is False
    assert _length_in_range(6, 5, 5) is False
    assert _length_in_range(2**40, 0, 2**41) is True
    assert _length_in_range(2**41 + 1, 0, 2**41) is False


@pytest.mark.parametrize(
    "length, reason",
    [(31, FailureReason.LENGTH), (32, None), (128, None), (129, FailureReason.LENGTH)],
)
def test_validator_length_boundaries(length: int, reason: FailureReason | None) -> None:
    result = TokenValidator().validate_kind("LINODE_TOKEN", "a" * length)
    assert result.reason is reason


def test_length_check_timing_does_not_depend_on_outcome() -> None:
    def best(length: int) -> float:
        return min(
            timeit.repeat(lambda: _length_in_range(length, 32, 128), number=20_000, repeat=7)
        )

    inside, below, above = best(64), best(1), best(4096)
    slowest, fastest = max(inside, below, above), min(inside, below, above)
    assert slowest / fastest < 3.0
