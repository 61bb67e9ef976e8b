"""Resolve claims against a pinned truthpack snapshot.

``resolve_all`` is the only I/O-bound stage of the pipeline: it loads
the snapshot under a timeout and then delegates to the pure
``resolve_against``. When the snapshot cannot be loaded every claim
resolves to not-found (fail-closed), unless the resolver was built
with ``fail_open=True``.
"""

from __future__ import annotations

import asyncio
import logging
import posixpath
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

from truthgate.constants import (
    DEFAULT_EVIDENCE_TIMEOUT_SECONDS,
    ClaimType,
    Confidence,
    EvidenceSource,
)
from truthgate.exceptions import SnapshotUnavailableError
from truthgate.firewall.claims import package_name
from truthgate.firewall.models import Claim, Evidence
from truthgate.resilience.errors import classify_error
from truthgate.truthpack.schemas import RouteEntry, TruthpackSnapshot
from truthgate.truthpack.store import TruthpackStore

logger = logging.getLogger(__name__)

UNAVAILABLE_SNAPSHOT_ID = "unavailable"

NODE_BUILTIN_MODULES = frozenset({
    "fs", "path", "os", "crypto", "http", "https", "url", "util",
    "stream", "buffer", "events", "child_process", "cluster",
    "dns", "net", "readline", "tls", "zlib", "assert", "async_hooks",
    "fs/promises", "path/posix", "path/win32", "querystring",
    "timers", "timers/promises", "perf_hooks", "worker_threads",
    "v8", "vm", "inspector", "trace_events", "string_decoder",
})

PYTHON_BUILTIN_MODULES = frozenset(sys.stdlib_module_names)

_RESOLVE_SUFFIXES: tuple[str, ...] = (
    "", ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".json", ".py",
    "/index.ts", "/index.tsx", "/index.js", "/index.jsx", "/__init__.py",
)

_PARAM_PREFIXES = (":", "[", "{")


@dataclass(frozen=True)
class EvidenceResolution:
    """Evidence for a batch of claims plus the snapshot it was checked against."""

    evidence: tuple[Evidence, ...]
    snapshot_id: str
    degraded: bool = False
    error: str | None = None


class EvidenceResolver:
    def __init__(
        self,
        store: TruthpackStore,
        timeout_seconds: float = DEFAULT_EVIDENCE_TIMEOUT_SECONDS,
        fail_open: bool = False,
    ) -> None:
        self._store = store
        self._timeout = timeout_seconds
        self._fail_open = fail_open

    async def resolve_all(self, claims: Sequence[Claim]) -> EvidenceResolution:
        """Load the snapshot (bounded) and resolve every claim against it."""
        try:
            snapshot = await asyncio.wait_for(
                self._store.load(), timeout=self._timeout
            )
        except Exception as exc:
            cause = exc.cause if isinstance(exc, SnapshotUnavailableError) else None
            error_class = classify_error(cause or exc)
            logger.warning(
                "event=evidence_degraded class=%s fail_open=%s claims=%d error=%s",
                error_class.value,
                self._fail_open,
                len(claims),
                str(exc) or type(exc).__name__,
            )
            return EvidenceResolution(
                evidence=tuple(
                    _unverified(c, self._fail_open, error_class.value)
                    for c in claims
                ),
                snapshot_id=UNAVAILABLE_SNAPSHOT_ID,
                degraded=True,
                error=f"{error_class.value}: {str(exc) or type(exc).__name__}",
            )

        evidence = resolve_against(claims, snapshot)
        found = sum(1 for e in evidence if e.found)
        logger.debug(
            "event=evidence_resolved total=%d found=%d snapshot_id=%s",
            len(evidence),
            found,
            snapshot.snapshot_id,
        )
        return EvidenceResolution(
            evidence=evidence, snapshot_id=snapshot.snapshot_id
        )


def resolve_against(
    claims: Sequence[Claim], snapshot: TruthpackSnapshot
) -> tuple[Evidence, ...]:
    """Pure resolution: exactly one evidence record per claim, in claim order."""
    return tuple(resolve_claim(claim, snapshot) for claim in claims)


def resolve_claim(claim: Claim, snapshot: TruthpackSnapshot) -> Evidence:
    match claim.type:
        case ClaimType.API_ENDPOINT:
            return _resolve_route(claim, snapshot)
        case ClaimType.ENV_VARIABLE:
            return _resolve_env(claim, snapshot)
        case ClaimType.IMPORT | ClaimType.PACKAGE_DEPENDENCY:
            return _resolve_module(claim, snapshot)
        case ClaimType.TYPE_REFERENCE:
            return _resolve_type(claim, snapshot)
        case ClaimType.FILE_REFERENCE:
            return _resolve_file(claim, snapshot)
        case _:
            return Evidence(claim_id=claim.id, found=False)


# ── Routes ───────────────────────────────────────────────


def path_matches(claimed: str, defined: str) -> bool:
    """Segment-wise match; ``:x``, ``[x]``, ``{x}`` and ``*`` match one
    segment, a trailing ``**`` matches the rest."""
    if claimed == defined:
        return True
    claimed_parts = [p for p in claimed.split("/") if p]
    defined_parts = [p for p in defined.split("/") if p]

    if defined_parts and defined_parts[-1] == "**":
        prefix = defined_parts[:-1]
        if len(claimed_parts) < len(prefix):
            return False
        claimed_parts = claimed_parts[: len(prefix)]
        defined_parts = prefix

    if len(claimed_parts) != len(defined_parts):
        return False
    for c, d in zip(claimed_parts, defined_parts, strict=True):
        if d.startswith(_PARAM_PREFIXES) or d in ("*", "**"):
            continue
        if c.startswith(":"):
            continue
        if c != d:
            return False
    return True


def _route_path(value: str) -> str:
    if value.startswith(("http://", "https://")):
        return urlsplit(value).path or "/"
    return value


def _resolve_route(claim: Claim, snapshot: TruthpackSnapshot) -> Evidence:
    claimed = _route_path(claim.value)
    matches: list[RouteEntry] = [
        r for r in snapshot.routes.routes if path_matches(claimed, r.path)
    ]
    if not matches:
        return Evidence(
            claim_id=claim.id, found=False, source=EvidenceSource.ROUTES
        )

    exact = [r for r in matches if r.path == claimed]
    route = exact[0] if exact else matches[0]
    methods = sorted({r.method.upper() for r in matches if r.path == route.path})

    roles: set[str] = set()
    auth_required = False
    for r in matches:
        if r.path != route.path or r.auth is None:
            continue
        auth_required = auth_required or r.auth.required
        roles.update(r.auth.roles)
    for resource in snapshot.auth.protected_resources:
        if path_matches(claimed, resource.path):
            roles.update(resource.required_roles)
            auth_required = True

    details: dict[str, Any] = {
        "matched_route": route.path,
        "methods": methods,
        "handler": route.handler,
        "file": route.file,
        "line": route.line,
        "exact_match": bool(exact),
        "auth_required": auth_required,
        "required_roles": sorted(roles),
    }
    contract = next(
        (
            ep
            for ep in snapshot.contracts.endpoints
            if path_matches(claimed, ep.path)
        ),
        None,
    )
    if contract is not None:
        details["contract"] = contract.model_dump(mode="json")

    return Evidence(
        claim_id=claim.id,
        found=True,
        source=EvidenceSource.ROUTES,
        details=details,
        confidence=(
            Confidence.EVIDENCE_EXACT if exact
            else Confidence.EVIDENCE_PARAMETERIZED
        ),
    )


# ── Env ──────────────────────────────────────────────────


def _resolve_env(claim: Claim, snapshot: TruthpackSnapshot) -> Evidence:
    for variable in snapshot.env.variables:
        if variable.name == claim.value:
            return Evidence(
                claim_id=claim.id,
                found=True,
                source=EvidenceSource.ENV,
                details={
                    "required": variable.required,
                    "sensitive": variable.sensitive,
                    "type": variable.type,
                },
                confidence=Confidence.EVIDENCE_EXACT,
            )
    return Evidence(claim_id=claim.id, found=False, source=EvidenceSource.ENV)


# ── Modules ──────────────────────────────────────────────


def is_builtin_module(specifier: str) -> bool:
    name = specifier.removeprefix("node:")
    if name in NODE_BUILTIN_MODULES:
        return True
    return name.split(".", 1)[0] in PYTHON_BUILTIN_MODULES and "/" not in name


def _resolve_module(claim: Claim, snapshot: TruthpackSnapshot) -> Evidence:
    specifier = claim.value
    manifest = snapshot.manifest

    if specifier.startswith("."):
        resolved = _match_manifest_file(
            _join_relative(claim.file, specifier), manifest.files
        )
        if resolved is not None:
            return Evidence(
                claim_id=claim.id,
                found=True,
                source=EvidenceSource.MANIFEST,
                details={"kind": "relative", "resolved": resolved},
                confidence=Confidence.EVIDENCE_SUFFIXED,
            )
        return Evidence(
            claim_id=claim.id, found=False, source=EvidenceSource.MANIFEST
        )

    if is_builtin_module(specifier):
        return Evidence(
            claim_id=claim.id,
            found=True,
            source=EvidenceSource.MANIFEST,
            details={"kind": "builtin"},
            confidence=Confidence.EVIDENCE_EXACT,
        )

    package = package_name(specifier)
    # "lodash.debounce" is an npm package; "pydantic.fields" is a Python module
    candidates = {package, specifier.split("/", 1)[0]}
    if package is not None and candidates & set(manifest.dependencies):
        return Evidence(
            claim_id=claim.id,
            found=True,
            source=EvidenceSource.MANIFEST,
            details={"kind": "dependency", "package": package},
            confidence=Confidence.EVIDENCE_EXACT,
        )
    return Evidence(claim_id=claim.id, found=False, source=EvidenceSource.MANIFEST)


def _join_relative(importer: str, specifier: str) -> str:
    base = posixpath.dirname(importer.replace("\\", "/"))
    if "/" not in specifier and not specifier.startswith(("./", "../")):
        # Python relative import: ".models" or "..pkg.mod"
        stripped = specifier.lstrip(".")
        for _ in range(len(specifier) - len(stripped) - 1):
            base = posixpath.dirname(base)
        specifier = stripped.replace(".", "/")
    return posixpath.normpath(posixpath.join(base, specifier))


def _match_manifest_file(candidate: str, files: Sequence[str]) -> str | None:
    candidate = candidate.removeprefix("./")
    if candidate == ".." or candidate.startswith("../"):
        # climbs above the project root
        return None
    known = {f.replace("\\", "/").removeprefix("./") for f in files}
    for suffix in _RESOLVE_SUFFIXES:
        if candidate + suffix in known:
            return candidate + suffix
    return None


# ── Types and files ──────────────────────────────────────


def _resolve_type(claim: Claim, snapshot: TruthpackSnapshot) -> Evidence:
    contracts = snapshot.contracts
    names = {t.name for t in contracts.types}
    for ep in contracts.endpoints:
        names.update(n for n in (ep.request_type, ep.response_type) if n)
    if claim.value in names:
        return Evidence(
            claim_id=claim.id,
            found=True,
            source=EvidenceSource.CONTRACTS,
            details={"type": claim.value},
            confidence=Confidence.EVIDENCE_EXACT,
        )
    return Evidence(
        claim_id=claim.id, found=False, source=EvidenceSource.CONTRACTS
    )


def _resolve_file(claim: Claim, snapshot: TruthpackSnapshot) -> Evidence:
    resolved = _match_manifest_file(
        _join_relative(claim.file, claim.value), snapshot.manifest.files
    )
    if resolved is None:
        return Evidence(
            claim_id=claim.id, found=False, source=EvidenceSource.MANIFEST
        )
    return Evidence(
        claim_id=claim.id,
        found=True,
        source=EvidenceSource.MANIFEST,
        details={"resolved": resolved},
        confidence=Confidence.EVIDENCE_SUFFIXED,
    )


def _unverified(claim: Claim, fail_open: bool, reason: str) -> Evidence:
    if fail_open:
        return Evidence(
            claim_id=claim.id,
            found=True,
            details={"unverified": True, "reason": reason},
        )
    return Evidence(
        claim_id=claim.id,
        found=False,
        details={"unverified": True, "reason": reason},
    )
