"""Tests for the policy engine."""

from __future__ import annotations

import pytest

from truthgate.constants import MAX_POLICIES, Severity
from truthgate.firewall.models import PolicyContext, PolicyViolation
from truthgate.firewall.policy import Policy, PolicyEngine, sanitize_message


def _policy(
    name: str,
    violation: PolicyViolation | None = None,
    severity: Severity = Severity.ERROR,
) -> Policy:
    return Policy(
        name=name,
        description=f"{name} policy",
        severity=severity,
        evaluate=lambda _ctx: violation,
    )


EMPTY = PolicyContext(claims=(), evidence=())


class TestRegistration:
    def test_add_and_remove(self) -> None:
        engine = PolicyEngine([_policy("a"), _policy("b")])
        assert engine.names == ("a", "b")
        assert engine.remove_policy("a")
        assert not engine.remove_policy("a")
        assert engine.names == ("b",)

    def test_duplicate_name_rejected(self) -> None:
        engine = PolicyEngine([_policy("a")])
        with pytest.raises(ValueError, match="already registered"):
            engine.add_policy(_policy("a"))

    def test_unnamed_policy_rejected(self) -> None:
        with pytest.raises(ValueError, match="must have a name"):
            PolicyEngine([_policy("  ")])

    def test_non_callable_rejected(self) -> None:
        bad = Policy(
            name="bad",
            description="",
            severity=Severity.ERROR,
            evaluate="nope",  # type: ignore[arg-type]
        )
        with pytest.raises(ValueError, match="callable"):
            PolicyEngine([bad])

    def test_invalid_severity_rejected(self) -> None:
        with pytest.raises(ValueError, match="Invalid severity"):
            PolicyEngine([_policy("a", severity="fatal")])  # type: ignore[arg-type]

    def test_policy_cap(self) -> None:
        engine = PolicyEngine(_policy(f"p{i}") for i in range(MAX_POLICIES))
        with pytest.raises(ValueError, match="Maximum policies"):
            engine.add_policy(_policy("one-too-many"))


class TestEvaluate:
    def test_runs_every_policy(self) -> None:
        first = PolicyViolation("a", Severity.ERROR, "first")
        second = PolicyViolation("b", Severity.WARNING, "second")
        engine = PolicyEngine(
            [_policy("a", first), _policy("none"), _policy("b", second)]
        )
        assert engine.evaluate(EMPTY) == [first, second]

    def test_raising_policy_becomes_info(self) -> None:
        def explode(_ctx: PolicyContext) -> PolicyViolation | None:
            raise KeyError("missing")

        engine = PolicyEngine(
            [
                Policy("boom", "", Severity.ERROR, explode),
                _policy("after", PolicyViolation("after", Severity.ERROR, "x")),
            ]
        )
        violations = engine.evaluate(EMPTY)
        assert [v.policy for v in violations] == ["boom", "after"]
        assert violations[0].severity == Severity.INFO
        assert violations[0].message.startswith("Policy boom failed to evaluate")

    def test_invalid_violation_severity_becomes_warning(self) -> None:
        odd = PolicyViolation("a", "fatal", "m")  # type: ignore[arg-type]
        violations = PolicyEngine([_policy("a", odd)]).evaluate(EMPTY)
        assert violations[0].severity == Severity.WARNING

    def test_messages_are_sanitized(self) -> None:
        noisy = PolicyViolation(
            "a", Severity.ERROR, "<script>" + "x" * 600, suggestion="<b>fix</b>"
        )
        (violation,) = PolicyEngine([_policy("a", noisy)]).evaluate(EMPTY)
        assert "<" not in violation.message
        assert len(violation.message) <= 500
        assert violation.suggestion == "bfix/b"


def test_sanitize_message_non_string() -> None:
    assert sanitize_message(None) == ""
    assert sanitize_message("a<b>c") == "abc"
