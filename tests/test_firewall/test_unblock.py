"""Tests for unblock plan generation."""

from __future__ import annotations

from truthgate.constants import ClaimType, Severity, StepAction
from truthgate.firewall.models import Claim, ClaimLocation, PolicyViolation
from truthgate.firewall.unblock import UnblockPlanner, UnblockStep, estimate_effort


def _claim(value: str, claim_type: ClaimType = ClaimType.API_ENDPOINT) -> Claim:
    return Claim(
        id=f"claim-{value}",
        type=claim_type,
        value=value,
        context=value,
        confidence=0.9,
        location=ClaimLocation(file="src/app.ts", line=3, column=1, length=len(value)),
    )


def _violation(
    policy: str, claim: Claim | None = None, suggestion: str | None = None
) -> PolicyViolation:
    return PolicyViolation(
        policy=policy,
        severity=Severity.ERROR,
        message=f"{policy} violation",
        claim=claim,
        suggestion=suggestion,
    )


def test_ghost_route_template() -> None:
    plan = UnblockPlanner().plan([_violation("ghost-route", _claim("/api/x"))])
    assert [s.action for s in plan.steps] == [
        StepAction.VERIFY,
        StepAction.ADD,
        StepAction.RUN,
    ]
    assert [s.order for s in plan.steps] == [1, 2, 3]
    assert plan.steps[0].target == "/api/x"
    assert plan.steps[2].command == "truthpack generate --scope routes"
    assert all(s.claim_id == "claim-/api/x" for s in plan.steps)
    assert plan.estimated_effort == "minor"
    assert not plan.can_auto_fix


def test_ghost_env_template() -> None:
    plan = UnblockPlanner().plan(
        [_violation("ghost-env", _claim("API_KEY", ClaimType.ENV_VARIABLE))]
    )
    targets = [s.target for s in plan.steps]
    assert targets == [".env.example", ".env", "truthpack"]
    assert "API_KEY" in plan.steps[0].description


def test_steps_are_numbered_across_violations() -> None:
    plan = UnblockPlanner().plan(
        [
            _violation("ghost-route", _claim("/api/x")),
            _violation("unsafe-side-effect", _claim("eval", ClaimType.FUNCTION_CALL)),
        ]
    )
    assert [s.order for s in plan.steps] == [1, 2, 3, 4]
    assert plan.steps[-1].target == "src/app.ts"
    assert plan.estimated_effort == "moderate"


def test_unknown_policy_falls_back_to_suggestion() -> None:
    plan = UnblockPlanner().plan(
        [_violation("custom-rule", suggestion="Rename the helper")]
    )
    (step,) = plan.steps
    assert step.action == StepAction.VERIFY
    assert step.description == "Rename the helper"
    assert step.claim_id is None


def test_empty_plan() -> None:
    plan = UnblockPlanner().plan([])
    assert plan.steps == ()
    assert plan.estimated_effort == "trivial"
    assert not plan.can_auto_fix


def test_estimate_effort_thresholds() -> None:
    def steps(manual: int, auto: int = 0) -> list[UnblockStep]:
        return [
            UnblockStep(order=i, action=StepAction.VERIFY, target="t", description="d")
            for i in range(manual)
        ] + [
            UnblockStep(
                order=i,
                action=StepAction.RUN,
                target="t",
                description="d",
                auto_fixable=True,
            )
            for i in range(auto)
        ]

    assert estimate_effort(steps(0, 3)) == "trivial"
    assert estimate_effort(steps(2)) == "minor"
    assert estimate_effort(steps(5)) == "moderate"
    assert estimate_effort(steps(6)) == "significant"


def test_markdown_rendering() -> None:
    plan = UnblockPlanner().plan([_violation("ghost-route", _claim("/api/x"))])
    text = plan.to_markdown()
    assert text.startswith("## Unblock plan\n")
    assert "Estimated effort: **minor**" in text
    assert "1. **verify** `/api/x`" in text
    assert "   - run: `truthpack generate --scope routes`" in text


def test_ghost_import_and_file_templates() -> None:
    plan = UnblockPlanner().plan(
        [
            _violation("ghost-import", _claim("left-pad", ClaimType.IMPORT)),
            _violation(
                "ghost-file", _claim("./data/seed.json", ClaimType.FILE_REFERENCE)
            ),
        ]
    )
    assert [s.action for s in plan.steps] == [
        StepAction.VERIFY,
        StepAction.RUN,
        StepAction.ADD,
        StepAction.RUN,
    ]
    assert plan.steps[1].command == "truthpack generate --scope manifest"
    assert plan.steps[2].target == "./data/seed.json"


def test_ghost_type_uses_suggestion() -> None:
    plan = UnblockPlanner().plan(
        [
            _violation(
                "ghost-type",
                _claim("Invoice", ClaimType.TYPE_REFERENCE),
                suggestion="Import Invoice from the billing module",
            )
        ]
    )
    (step,) = plan.steps
    assert step.action == StepAction.ADD
    assert step.description == "Import Invoice from the billing module"
