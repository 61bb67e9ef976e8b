"""Turn policy violations into an ordered remediation plan.

Pure derivation from violations: rule-specific templates first, the
violation's own suggestion as the fallback. No I/O, nothing executed.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from truthgate.constants import RuleName, StepAction
from truthgate.firewall.models import PolicyViolation


@dataclass(frozen=True)
class UnblockStep:
    order: int
    action: StepAction
    target: str
    description: str
    claim_id: str | None = None
    command: str | None = None
    auto_fixable: bool = False


@dataclass(frozen=True)
class UnblockPlan:
    steps: tuple[UnblockStep, ...]
    estimated_effort: str  # trivial | minor | moderate | significant
    can_auto_fix: bool

    def to_markdown(self) -> str:
        lines = [
            "## Unblock plan",
            "",
            f"Estimated effort: **{self.estimated_effort}**"
            + (" (auto-fixable)" if self.can_auto_fix else ""),
            "",
        ]
        for step in self.steps:
            marker = " _(auto)_" if step.auto_fixable else ""
            lines.append(
                f"{step.order}. **{step.action.value}** `{step.target}`: "
                f"{step.description}{marker}"
            )
            if step.command:
                lines.append(f"   - run: `{step.command}`")
        return "\n".join(lines) + "\n"


@dataclass(frozen=True)
class _Template:
    action: StepAction
    target: str
    description: str
    command: str | None = None
    auto_fixable: bool = False


def _templates(violation: PolicyViolation) -> list[_Template]:
    value = violation.claim.value if violation.claim else "unknown"
    match violation.policy:
        case RuleName.GHOST_ROUTE:
            return [
                _Template(StepAction.VERIFY, value, f'Check whether route "{value}" should exist'),
                _Template(StepAction.ADD, "route handler", f'Create the route handler for "{value}" if needed'),
                _Template(
                    StepAction.RUN,
                    "truthpack",
                    "Regenerate the routes truthpack after creating the route",
                    command="truthpack generate --scope routes",
                    auto_fixable=True,
                ),
            ]
        case RuleName.GHOST_ENV:
            return [
                _Template(StepAction.ADD, ".env.example", f'Declare "{value}" in .env.example with a description'),
                _Template(StepAction.ADD, ".env", f'Set a value for "{value}" in .env'),
                _Template(
                    StepAction.RUN,
                    "truthpack",
                    "Regenerate the env truthpack so the variable is registered",
                    command="truthpack generate --scope env",
                    auto_fixable=True,
                ),
            ]
        case RuleName.AUTH_DRIFT:
            return [
                _Template(StepAction.VERIFY, value, "Confirm the change does not remove or bypass authentication"),
                _Template(
                    StepAction.MODIFY,
                    value,
                    violation.suggestion or "Restore the auth middleware or guard",
                ),
            ]
        case RuleName.CONTRACT_DRIFT:
            return [
                _Template(
                    StepAction.MODIFY,
                    value,
                    violation.suggestion or "Align the call with the recorded API contract",
                ),
                _Template(
                    StepAction.RUN,
                    "truthpack",
                    "Regenerate the contracts truthpack if the contract changed",
                    command="truthpack generate --scope contracts",
                    auto_fixable=True,
                ),
            ]
        case RuleName.SCOPE_EXPLOSION:
            return [
                _Template(
                    StepAction.VERIFY,
                    "change scope",
                    violation.suggestion
                    or "Review the change and split it into smaller, verified pieces",
                ),
            ]
        case RuleName.UNSAFE_SIDE_EFFECT:
            return [
                _Template(
                    StepAction.MODIFY,
                    violation.claim.file if violation.claim and violation.claim.file else value,
                    violation.suggestion or "Replace the dangerous construct with a safer alternative",
                ),
            ]
        case RuleName.GHOST_IMPORT:
            return [
                _Template(
                    StepAction.VERIFY,
                    value,
                    violation.suggestion or f'Check that "{value}" is a real module',
                ),
                _Template(
                    StepAction.RUN,
                    "truthpack",
                    "Regenerate the manifest truthpack after adding the dependency",
                    command="truthpack generate --scope manifest",
                    auto_fixable=True,
                ),
            ]
        case RuleName.GHOST_FILE:
            return [
                _Template(StepAction.ADD, value, f'Create "{value}" or fix the reference'),
                _Template(
                    StepAction.RUN,
                    "truthpack",
                    "Regenerate the manifest truthpack so the file is known",
                    command="truthpack generate --scope manifest",
                    auto_fixable=True,
                ),
            ]
        case RuleName.GHOST_TYPE:
            return [
                _Template(
                    StepAction.ADD,
                    value,
                    violation.suggestion or f'Define or import the type "{value}"',
                ),
            ]
        case _:
            return [
                _Template(
                    StepAction.VERIFY,
                    violation.policy,
                    violation.suggestion or "Review and fix the violation manually",
                ),
            ]


def estimate_effort(steps: Sequence[UnblockStep]) -> str:
    manual = sum(1 for s in steps if not s.auto_fixable)
    if manual == 0:
        return "trivial"
    if manual <= 2:
        return "minor"
    if manual <= 5:
        return "moderate"
    return "significant"


class UnblockPlanner:
    def plan(self, violations: Sequence[PolicyViolation]) -> UnblockPlan:
        steps: list[UnblockStep] = []
        for violation in violations:
            claim_id = violation.claim.id if violation.claim else None
            for template in _templates(violation):
                steps.append(
                    UnblockStep(
                        order=len(steps) + 1,
                        action=template.action,
                        target=template.target,
                        description=template.description,
                        claim_id=claim_id,
                        command=template.command,
                        auto_fixable=template.auto_fixable,
                    )
                )
        return UnblockPlan(
            steps=tuple(steps),
            estimated_effort=estimate_effort(steps),
            can_auto_fix=bool(steps) and all(s.auto_fixable for s in steps),
        )
