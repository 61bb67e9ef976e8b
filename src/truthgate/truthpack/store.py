"""Truthpack store interface and the on-disk implementation.

The firewall only ever reads the truthpack. Implementations satisfy
the TruthpackStore protocol structurally (no inheritance); the
in-memory double in ``truthpack.fakes`` is used by tests and by
embedding applications that already hold the facts in memory.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Protocol

from circuitbreaker import (  # pyright: ignore[reportUnknownVariableType]
    CircuitBreaker,
    CircuitBreakerError,
)
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from truthgate.constants import (
    CB_STORE_FAILURE_THRESHOLD,
    CB_STORE_RECOVERY_TIMEOUT,
    STORE_RETRY_ATTEMPTS,
    STORE_RETRY_INITIAL_WAIT,
    STORE_RETRY_MAX_WAIT,
)
from truthgate.exceptions import ConfigurationError, SnapshotUnavailableError
from truthgate.resilience.errors import classify_error, is_retryable
from truthgate.resilience.single_flight import SingleFlight
from truthgate.truthpack.schemas import CATEGORY_MODELS, TruthpackSnapshot

logger = logging.getLogger(__name__)

# mtime_ns per category file; None when the file is absent
type _Signature = tuple[tuple[str, int | None], ...]


class TruthpackStore(Protocol):
    async def load(self) -> TruthpackSnapshot: ...


class FileTruthpackStore:
    """Reads ``<category>.json`` documents from a truthpack directory.

    - The directory must exist at construction time; a firewall with
      no ground truth is a configuration error, not a degraded mode.
    - A missing category file is an empty category.
    - The parsed snapshot is cached and reused until any category
      file's mtime changes, so a regenerated truthpack is picked up
      on the next load with a new snapshot id.
    - Concurrent loads are collapsed into one disk read.
    - Reads retry transient OS errors with jittered backoff and run
      behind a circuit breaker that opens after repeated failures.
    """

    def __init__(
        self,
        root: Path,
        *,
        retry_attempts: int = STORE_RETRY_ATTEMPTS,
        failure_threshold: int = CB_STORE_FAILURE_THRESHOLD,
        recovery_timeout: int = CB_STORE_RECOVERY_TIMEOUT,
    ) -> None:
        if not root.is_dir():
            msg = f"Truthpack directory not found: {root}"
            raise ConfigurationError(msg)
        self._root = root
        self._retry_attempts = retry_attempts
        self._breaker = CircuitBreaker(  # pyright: ignore[reportUnknownMemberType]
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            expected_exception=_counts_as_store_failure,
            name=f"truthpack_{root}",
        )
        self._flight = SingleFlight[TruthpackSnapshot]()
        self._cached: TruthpackSnapshot | None = None
        self._cached_signature: _Signature | None = None

    @property
    def root(self) -> Path:
        return self._root

    async def load(self) -> TruthpackSnapshot:
        """Return the current snapshot, reading from disk only if changed."""
        return await self._flight.do("snapshot", self._load_if_changed)

    def invalidate(self) -> None:
        """Drop the cached snapshot so the next load re-reads disk."""
        self._cached = None
        self._cached_signature = None

    async def _load_if_changed(self) -> TruthpackSnapshot:
        signature = await asyncio.to_thread(self._signature)
        if self._cached is not None and signature == self._cached_signature:
            return self._cached

        if self._breaker.opened:  # pyright: ignore[reportUnknownMemberType]
            raise SnapshotUnavailableError(
                f"Truthpack circuit open for {self._root}",
                cause=CircuitBreakerError(self._breaker),  # pyright: ignore[reportUnknownArgumentType]
            )

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._retry_attempts),
                wait=wait_exponential_jitter(
                    multiplier=STORE_RETRY_INITIAL_WAIT,
                    max=STORE_RETRY_MAX_WAIT,
                ),
                retry=retry_if_exception(is_retryable),
                reraise=True,
            ):
                with attempt:
                    with self._breaker:  # pyright: ignore[reportUnknownMemberType]
                        snapshot = await asyncio.to_thread(self._read_all)
        except Exception as exc:
            error_class = classify_error(exc)
            logger.warning(
                "event=truthpack_load_failed root=%s class=%s error=%s",
                self._root,
                error_class.value,
                exc,
            )
            raise SnapshotUnavailableError(
                f"Cannot load truthpack from {self._root}: {exc}",
                cause=exc,
            ) from exc

        self._cached = snapshot
        self._cached_signature = signature
        logger.info(
            "event=truthpack_loaded root=%s snapshot_id=%s routes=%d env=%d",
            self._root,
            snapshot.snapshot_id,
            len(snapshot.routes.routes),
            len(snapshot.env.variables),
        )
        return snapshot

    def _signature(self) -> _Signature:
        entries: list[tuple[str, int | None]] = []
        for category in CATEGORY_MODELS:
            path = self._root / f"{category}.json"
            try:
                entries.append((category, path.stat().st_mtime_ns))
            except FileNotFoundError:
                entries.append((category, None))
        return tuple(entries)

    def _read_all(self) -> TruthpackSnapshot:
        if not self._root.is_dir():
            msg = f"Truthpack directory disappeared: {self._root}"
            raise FileNotFoundError(msg)
        documents: dict[str, Any] = {}
        for category, model in CATEGORY_MODELS.items():
            path = self._root / f"{category}.json"
            if not path.is_file():
                continue
            raw = json.loads(path.read_text(encoding="utf-8"))
            documents[category] = model.model_validate(raw)
        return TruthpackSnapshot(**documents)


def _counts_as_store_failure(
    thrown_type: type, thrown_value: BaseException
) -> bool:
    """Every load error except cancellation counts toward opening the circuit."""
    return not issubclass(thrown_type, asyncio.CancelledError)
