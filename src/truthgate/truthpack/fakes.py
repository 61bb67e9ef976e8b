"""In-memory truthpack store for tests and embedding applications."""

from __future__ import annotations

import asyncio
from typing import Any

from truthgate.exceptions import SnapshotUnavailableError
from truthgate.truthpack.schemas import TruthpackSnapshot


class InMemoryTruthpackStore:
    """Serves a snapshot held in memory.

    ``replace`` swaps the snapshot between requests. ``delay`` and
    ``fail_with`` simulate a slow or broken backing store.
    """

    def __init__(
        self,
        snapshot: TruthpackSnapshot | None = None,
        *,
        delay: float = 0.0,
        fail_with: BaseException | None = None,
    ) -> None:
        self._snapshot = snapshot or TruthpackSnapshot()
        self.delay = delay
        self.fail_with = fail_with
        self.load_count = 0

    @classmethod
    def from_documents(cls, **documents: Any) -> InMemoryTruthpackStore:
        """Build from raw category dicts, e.g. ``routes={"routes": [...]}``."""
        return cls(TruthpackSnapshot.model_validate(documents))

    async def load(self) -> TruthpackSnapshot:
        self.load_count += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise SnapshotUnavailableError(
                f"In-memory store failure: {self.fail_with}",
                cause=self.fail_with,
            )
        return self._snapshot

    def replace(self, snapshot: TruthpackSnapshot) -> None:
        self._snapshot = snapshot
