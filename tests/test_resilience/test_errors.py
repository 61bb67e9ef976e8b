"""Tests for truthpack load error classification."""

from __future__ import annotations

import json

import pytest
from circuitbreaker import CircuitBreaker, CircuitBreakerError
from pydantic import ValidationError

from truthgate.resilience.errors import (
    ErrorClass,
    classify_error,
    is_retryable,
)
from truthgate.truthpack.schemas import RoutesDocument


def _validation_error() -> ValidationError:
    try:
        RoutesDocument.model_validate({"routes": [{}]})
    except ValidationError as exc:
        return exc
    raise AssertionError("expected a ValidationError")


# ── classify_error ───────────────────────────────────────────


def test_classify_circuit_breaker_error() -> None:
    """CircuitBreakerError → CIRCUIT_OPEN."""
    err = CircuitBreakerError(CircuitBreaker(name="test"))
    assert classify_error(err) == ErrorClass.CIRCUIT_OPEN


def test_classify_timeout_error_type() -> None:
    """TimeoutError instance → TIMEOUT (no string matching)."""
    assert classify_error(TimeoutError()) == ErrorClass.TIMEOUT


@pytest.mark.parametrize(
    "error",
    [
        json.JSONDecodeError("Expecting value", "{", 1),
        UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"),
    ],
)
def test_classify_corrupt(error: Exception) -> None:
    """Unparseable documents → CORRUPT."""
    assert classify_error(error) == ErrorClass.CORRUPT


def test_classify_schema_violation_as_corrupt() -> None:
    assert classify_error(_validation_error()) == ErrorClass.CORRUPT


def test_classify_missing_file() -> None:
    """FileNotFoundError → MISSING."""
    assert classify_error(FileNotFoundError("routes.json")) == ErrorClass.MISSING


def test_classify_busy_file_as_transient() -> None:
    assert classify_error(BlockingIOError()) == ErrorClass.TRANSIENT
    assert classify_error(OSError("I/O error")) == ErrorClass.TRANSIENT


def test_classify_permission_denied_as_unknown() -> None:
    """PermissionError will not fix itself → UNKNOWN."""
    assert classify_error(PermissionError("denied")) == ErrorClass.UNKNOWN


def test_classify_string_fallback_timeout() -> None:
    """'timed out' in message → TIMEOUT."""
    err = Exception("read timed out after 5s")
    assert classify_error(err) == ErrorClass.TIMEOUT


def test_classify_string_fallback_busy() -> None:
    """'resource busy' in message → TRANSIENT."""
    err = Exception("device or resource busy")
    assert classify_error(err) == ErrorClass.TRANSIENT


def test_classify_unknown() -> None:
    """Unrecognized exception → UNKNOWN."""
    err = Exception("something completely unexpected")
    assert classify_error(err) == ErrorClass.UNKNOWN


# ── is_retryable ─────────────────────────────────────────────


def test_is_retryable_true_for_transient() -> None:
    """TRANSIENT and TIMEOUT are retryable."""
    assert is_retryable(BlockingIOError()) is True
    assert is_retryable(TimeoutError()) is True


def test_is_retryable_false_for_permanent() -> None:
    """CORRUPT, MISSING and UNKNOWN are not retryable."""
    assert is_retryable(json.JSONDecodeError("x", "", 0)) is False
    assert is_retryable(FileNotFoundError()) is False
    assert is_retryable(Exception("mystery")) is False
