"""Map policy violations to issues for downstream autofix tooling."""

from __future__ import annotations

import hashlib
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from truthgate.constants import Severity
from truthgate.firewall.models import Claim, PolicyViolation

ISSUE_SOURCE = "policy-violation"


class IssueType(StrEnum):
    GHOST_ENV = "ghost-env"
    GHOST_ROUTE = "ghost-route"
    AUTH_GAP = "auth-gap"
    CONTRACT_DRIFT = "contract-drift"
    SCOPE_EXPLOSION = "scope-explosion"
    UNSAFE_SIDE_EFFECT = "unsafe-side-effect"
    GHOST_IMPORT = "ghost-import"
    GHOST_FILE = "ghost-file"
    GHOST_TYPE = "ghost-type"
    LOW_CONFIDENCE = "low-confidence"
    EXCESSIVE_CLAIMS = "excessive-claims"
    POLICY_ERROR = "policy-error"


class IssueSeverity(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class Issue:
    id: str
    type: IssueType
    severity: IssueSeverity
    message: str
    policy: str
    source: str = ISSUE_SOURCE
    suggestion: str | None = None
    file: str | None = None
    line: int | None = None
    claim: Claim | None = None


def issue_type_for(policy: str) -> IssueType:
    name = policy.lower()
    if "env" in name:
        return IssueType.GHOST_ENV
    if "route" in name or "endpoint" in name:
        return IssueType.GHOST_ROUTE
    if "auth" in name:
        return IssueType.AUTH_GAP
    try:
        return IssueType(name)
    except ValueError:
        return IssueType.POLICY_ERROR


def severity_for(severity: Severity) -> IssueSeverity:
    if severity == Severity.ERROR:
        return IssueSeverity.HIGH
    if severity == Severity.WARNING:
        return IssueSeverity.MEDIUM
    return IssueSeverity.LOW


def violations_to_issues(violations: Sequence[PolicyViolation]) -> list[Issue]:
    """One issue per violation, with ids stable across identical inputs."""
    issues: list[Issue] = []
    for index, violation in enumerate(violations):
        claim = violation.claim
        location = claim.location if claim else None
        digest = hashlib.sha1(
            f"{index}|{violation.policy}|{violation.message}".encode()
        ).hexdigest()[:12]
        issues.append(
            Issue(
                id=f"issue-{index}-{digest}",
                type=issue_type_for(violation.policy),
                severity=severity_for(violation.severity),
                message=violation.message or "Policy violation",
                policy=violation.policy,
                suggestion=violation.suggestion,
                file=location.file or None if location else None,
                line=location.line if location else None,
                claim=claim,
            )
        )
    return issues
