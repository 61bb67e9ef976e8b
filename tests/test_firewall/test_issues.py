"""Tests for violation → issue mapping."""

from __future__ import annotations

import pytest

from truthgate.constants import ClaimType, Severity
from truthgate.firewall.issues import (
    ISSUE_SOURCE,
    IssueSeverity,
    IssueType,
    issue_type_for,
    violations_to_issues,
)
from truthgate.firewall.models import Claim, ClaimLocation, PolicyViolation


@pytest.mark.parametrize(
    ("policy", "expected"),
    [
        ("ghost-env", IssueType.GHOST_ENV),
        ("ghost-route", IssueType.GHOST_ROUTE),
        ("auth-drift", IssueType.AUTH_GAP),
        ("contract-drift", IssueType.CONTRACT_DRIFT),
        ("scope-explosion", IssueType.SCOPE_EXPLOSION),
        ("unsafe-side-effect", IssueType.UNSAFE_SIDE_EFFECT),
        ("ghost-import", IssueType.GHOST_IMPORT),
        ("ghost-file", IssueType.GHOST_FILE),
        ("ghost-type", IssueType.GHOST_TYPE),
        ("low-confidence", IssueType.LOW_CONFIDENCE),
        ("excessive-claims", IssueType.EXCESSIVE_CLAIMS),
        ("custom-endpoint-check", IssueType.GHOST_ROUTE),
        ("naming", IssueType.POLICY_ERROR),
    ],
)
def test_issue_type_for(policy: str, expected: IssueType) -> None:
    assert issue_type_for(policy) == expected


def test_violations_to_issues() -> None:
    claim = Claim(
        id="claim-1",
        type=ClaimType.ENV_VARIABLE,
        value="API_KEY",
        context="process.env.API_KEY",
        confidence=0.9,
        location=ClaimLocation(file="src/app.ts", line=7, column=3, length=7),
    )
    violations = [
        PolicyViolation(
            "ghost-env", Severity.ERROR, "GHOST ENV: API_KEY", claim, "Add it"
        ),
        PolicyViolation("scope-explosion", Severity.WARNING, "too big"),
        PolicyViolation("broken", Severity.INFO, ""),
    ]
    issues = violations_to_issues(violations)

    assert [i.severity for i in issues] == [
        IssueSeverity.HIGH,
        IssueSeverity.MEDIUM,
        IssueSeverity.LOW,
    ]
    first = issues[0]
    assert first.type == IssueType.GHOST_ENV
    assert first.file == "src/app.ts"
    assert first.line == 7
    assert first.claim == claim
    assert first.suggestion == "Add it"
    assert first.source == ISSUE_SOURCE
    assert issues[1].file is None
    assert issues[2].message == "Policy violation"
    assert len({i.id for i in issues}) == 3


def test_issue_ids_are_deterministic() -> None:
    violations = [PolicyViolation("ghost-route", Severity.ERROR, "m")]
    assert violations_to_issues(violations) == violations_to_issues(violations)
