"""Frozen, identity-less value types shared across the firewall pipeline.

These are the vocabulary of the firewall. Every stage consumes and
produces these types; none of them is mutated after construction.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from truthgate.constants import (
    ClaimType,
    Decision,
    EvidenceSource,
    FirewallMode,
    IntentScope,
    IntentType,
    Severity,
)

if TYPE_CHECKING:
    from truthgate.firewall.unblock import UnblockPlan


def _frozen_mapping(data: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(data or {}))


@dataclass(frozen=True)
class ClaimLocation:
    """Where in the candidate content a claim was found (1-based)."""

    file: str
    line: int
    column: int
    length: int


@dataclass(frozen=True)
class Claim:
    """A single factual assertion found in candidate content."""

    id: str
    type: ClaimType
    value: str
    context: str
    confidence: float  # 0.0 to 1.0
    location: ClaimLocation | None = None

    @property
    def file(self) -> str:
        return self.location.file if self.location else ""


@dataclass(frozen=True)
class Evidence:
    """Verification outcome for exactly one claim."""

    claim_id: str
    found: bool
    source: EvidenceSource | None = None
    details: Mapping[str, Any] = field(default_factory=lambda: _frozen_mapping(None))
    confidence: float = 0.0

    def __post_init__(self) -> None:
        if not isinstance(self.details, MappingProxyType):
            object.__setattr__(self, "details", _frozen_mapping(self.details))


@dataclass(frozen=True)
class Intent:
    type: IntentType
    target: str
    scope: IntentScope
    description: str
    confidence: float
    valid: bool = True


@dataclass(frozen=True)
class IntentValidation:
    """Outcome of intent classification for one request."""

    valid: bool
    intent: Intent
    warnings: tuple[str, ...] = ()
    suggestions: tuple[str, ...] = ()
    mission_drift: tuple[str, ...] = ()


@dataclass(frozen=True)
class PolicyContext:
    """Read-only bundle handed to every rule."""

    claims: tuple[Claim, ...]
    evidence: tuple[Evidence, ...]
    intent: IntentValidation | None = None
    target: str = ""
    _index: Mapping[str, Evidence] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "_index",
            MappingProxyType({e.claim_id: e for e in self.evidence}),
        )

    def evidence_for(self, claim: Claim) -> Evidence | None:
        return self._index.get(claim.id)

    def is_verified(self, claim: Claim) -> bool:
        evidence = self.evidence_for(claim)
        return evidence is not None and evidence.found

    def claims_of(self, *types: ClaimType) -> list[Claim]:
        return [c for c in self.claims if c.type in types]


@dataclass(frozen=True)
class PolicyViolation:
    policy: str
    severity: Severity
    message: str
    claim: Claim | None = None
    suggestion: str | None = None


@dataclass(frozen=True)
class FirewallRequest:
    """A proposed change submitted for evaluation."""

    action: str
    target: str
    content: str
    context: Mapping[str, Any] = field(default_factory=lambda: _frozen_mapping(None))
    agent_id: str = "unknown"

    def __post_init__(self) -> None:
        if not isinstance(self.context, MappingProxyType):
            object.__setattr__(self, "context", _frozen_mapping(self.context))

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> FirewallRequest:
        """Build a request from a tool-call payload.

        Missing or mistyped fields become empty strings so the intent
        validator can report them as warnings instead of the caller
        seeing an exception.
        """
        context = payload.get("context")
        return cls(
            action=str(payload.get("action") or ""),
            target=str(payload.get("target") or payload.get("path") or ""),
            content=str(payload.get("content") or ""),
            context=context if isinstance(context, Mapping) else {},
            agent_id=str(payload.get("agent_id") or "unknown"),
        )


@dataclass(frozen=True)
class FirewallResult:
    decision: Decision
    violations: tuple[PolicyViolation, ...]
    intent: IntentValidation
    mode: FirewallMode
    snapshot_id: str
    audit_id: str
    claims: tuple[Claim, ...] = ()
    evidence: tuple[Evidence, ...] = ()
    unblock_plan: UnblockPlan | None = None
    evidence_degraded: bool = False
    duration_ms: float = 0.0

    @property
    def allowed(self) -> bool:
        return self.decision != Decision.BLOCK

    @property
    def would_block(self) -> bool:
        """True if enforce mode would block this change."""
        return any(v.severity == Severity.ERROR for v in self.violations)


@dataclass(frozen=True)
class QuickCheckResult:
    safe: bool
    violation: PolicyViolation | None
    claims_checked: int
    snapshot_id: str
    duration_ms: float = 0.0
