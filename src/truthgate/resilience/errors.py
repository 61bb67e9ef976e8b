"""Error classification for truthpack snapshot loads.

Classifies exceptions by category to enable:
- Structured logging (which failures are transient vs permanent)
- Retry decisions (only transient and timeout failures are retried)
- Clear fail-closed reasons in evidence details
"""

from __future__ import annotations

import asyncio
import json
from enum import Enum

from circuitbreaker import CircuitBreakerError
from pydantic import ValidationError


class ErrorClass(Enum):
    TRANSIENT = "transient"  # EAGAIN, busy file, interrupted read: retryable
    TIMEOUT = "timeout"  # deadline exceeded: retryable
    MISSING = "missing"  # file vanished between listing and reading
    CORRUPT = "corrupt"  # invalid JSON or schema: do NOT retry
    CIRCUIT_OPEN = "circuit_open"  # breaker open: fail fast
    UNKNOWN = "unknown"  # unclassified: do NOT retry


def classify_error(error: BaseException) -> ErrorClass:
    """Classify a snapshot load failure.

    Checks concrete exception types first, falls back to string
    matching for wrapped or untyped exceptions.
    """
    if isinstance(error, CircuitBreakerError):
        return ErrorClass.CIRCUIT_OPEN
    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return ErrorClass.TIMEOUT
    if isinstance(error, (json.JSONDecodeError, ValidationError, UnicodeDecodeError)):
        return ErrorClass.CORRUPT
    if isinstance(error, (FileNotFoundError, NotADirectoryError)):
        return ErrorClass.MISSING
    if isinstance(error, (BlockingIOError, InterruptedError)):
        return ErrorClass.TRANSIENT
    if isinstance(error, PermissionError):
        return ErrorClass.UNKNOWN
    if isinstance(error, OSError):
        return ErrorClass.TRANSIENT

    msg = str(error).lower()
    if "timeout" in msg or "timed out" in msg:
        return ErrorClass.TIMEOUT
    if "circuit" in msg and "open" in msg:
        return ErrorClass.CIRCUIT_OPEN
    if "temporarily unavailable" in msg or "resource busy" in msg:
        return ErrorClass.TRANSIENT

    return ErrorClass.UNKNOWN


_RETRYABLE = frozenset({
    ErrorClass.TRANSIENT,
    ErrorClass.TIMEOUT,
})


def is_retryable(error: BaseException) -> bool:
    """Return True if the error category supports retry."""
    return classify_error(error) in _RETRYABLE
