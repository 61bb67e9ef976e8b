"""Read-only access to the project truthpack (ground-truth snapshot)."""

from truthgate.truthpack.fakes import InMemoryTruthpackStore
from truthgate.truthpack.schemas import TruthpackSnapshot
from truthgate.truthpack.store import FileTruthpackStore, TruthpackStore

__all__ = [
    "FileTruthpackStore",
    "InMemoryTruthpackStore",
    "TruthpackSnapshot",
    "TruthpackStore",
]
