"""Tests for the on-disk truthpack store."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path

import pytest

from truthgate.exceptions import ConfigurationError, SnapshotUnavailableError
from truthgate.resilience.errors import ErrorClass, classify_error
from truthgate.truthpack.store import FileTruthpackStore


def test_missing_directory_is_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        FileTruthpackStore(tmp_path / "absent")


async def test_loads_all_categories(truthpack_dir: Path) -> None:
    snapshot = await FileTruthpackStore(truthpack_dir).load()
    assert len(snapshot.routes.routes) == 5
    assert {v.name for v in snapshot.env.variables} == {
        "DATABASE_URL",
        "API_BASE_URL",
    }
    assert snapshot.manifest.dependencies


async def test_missing_category_file_is_empty(truthpack_dir: Path) -> None:
    (truthpack_dir / "contracts.json").unlink()
    (truthpack_dir / "manifest.json").unlink()
    snapshot = await FileTruthpackStore(truthpack_dir).load()
    assert snapshot.contracts.endpoints == []
    assert snapshot.manifest.files == []


async def test_snapshot_cached_until_files_change(truthpack_dir: Path) -> None:
    store = FileTruthpackStore(truthpack_dir)
    first = await store.load()
    assert await store.load() is first

    env_path = truthpack_dir / "env.json"
    data = json.loads(env_path.read_text())
    data["variables"].append({"name": "NEW_VAR"})
    env_path.write_text(json.dumps(data))
    stat = env_path.stat()
    os.utime(env_path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))

    second = await store.load()
    assert second is not first
    assert second.snapshot_id != first.snapshot_id


async def test_invalidate_forces_reread(truthpack_dir: Path) -> None:
    store = FileTruthpackStore(truthpack_dir)
    first = await store.load()
    store.invalidate()
    second = await store.load()
    assert second is not first
    assert second.snapshot_id == first.snapshot_id


async def test_concurrent_loads_share_one_read(truthpack_dir: Path) -> None:
    store = FileTruthpackStore(truthpack_dir)
    snapshots = await asyncio.gather(*(store.load() for _ in range(10)))
    assert all(s is snapshots[0] for s in snapshots)


async def test_corrupt_file_fails_without_retry(truthpack_dir: Path) -> None:
    (truthpack_dir / "routes.json").write_text("{not json")
    store = FileTruthpackStore(truthpack_dir)
    with pytest.raises(SnapshotUnavailableError) as exc_info:
        await store.load()
    assert exc_info.value.cause is not None
    assert classify_error(exc_info.value.cause) == ErrorClass.CORRUPT


async def test_schema_violation_is_corrupt(truthpack_dir: Path) -> None:
    (truthpack_dir / "routes.json").write_text(
        json.dumps({"routes": [{"method": "GET"}]})
    )
    with pytest.raises(SnapshotUnavailableError) as exc_info:
        await FileTruthpackStore(truthpack_dir).load()
    assert exc_info.value.cause is not None
    assert classify_error(exc_info.value.cause) == ErrorClass.CORRUPT


async def test_circuit_opens_after_repeated_failures(truthpack_dir: Path) -> None:
    (truthpack_dir / "env.json").write_text("{broken")
    store = FileTruthpackStore(
        truthpack_dir, failure_threshold=2, recovery_timeout=60
    )
    for _ in range(2):
        with pytest.raises(SnapshotUnavailableError):
            await store.load()

    with pytest.raises(SnapshotUnavailableError) as exc_info:
        await store.load()
    assert exc_info.value.cause is not None
    assert classify_error(exc_info.value.cause) == ErrorClass.CIRCUIT_OPEN


async def test_retry_policy_is_not_deprecated(
    truthpack_dir: Path, recwarn: pytest.WarningsRecorder
) -> None:
    await FileTruthpackStore(truthpack_dir).load()
    deprecations = [
        w for w in recwarn if issubclass(w.category, DeprecationWarning)
        and "initial" in str(w.message)
    ]
    assert deprecations == []
