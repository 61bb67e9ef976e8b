"""Policy engine: runs every policy over a PolicyContext.

Policies never short-circuit each other. A policy that raises is
reported as an ``info`` violation naming it, and evaluation continues.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from truthgate.constants import MAX_MESSAGE_LENGTH, MAX_POLICIES, Severity
from truthgate.firewall.models import PolicyContext, PolicyViolation

logger = logging.getLogger(__name__)

type PolicyEvaluator = Callable[[PolicyContext], PolicyViolation | None]


@dataclass(frozen=True)
class Policy:
    name: str
    description: str
    severity: Severity
    evaluate: PolicyEvaluator


def sanitize_message(message: object) -> str:
    if not isinstance(message, str):
        return ""
    return message[:MAX_MESSAGE_LENGTH].replace("<", "").replace(">", "")


class PolicyEngine:
    """Holds an ordered policy list and evaluates it against a context."""

    def __init__(self, policies: Iterable[Policy] = ()) -> None:
        self._policies: list[Policy] = []
        for policy in policies:
            self.add_policy(policy)

    @property
    def policies(self) -> tuple[Policy, ...]:
        return tuple(self._policies)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(p.name for p in self._policies)

    def add_policy(self, policy: Policy) -> None:
        """Append a policy.

        Raises ValueError for an unnamed policy, an invalid severity, a
        non-callable evaluator, a duplicate name, or too many policies.
        """
        if not isinstance(policy.name, str) or not policy.name.strip():
            msg = "Policy must have a name"
            raise ValueError(msg)
        if policy.severity not in Severity:
            msg = f"Invalid severity for policy {policy.name}: {policy.severity}"
            raise ValueError(msg)
        if not callable(policy.evaluate):
            msg = f"Policy {policy.name} must have a callable evaluate"
            raise ValueError(msg)
        if policy.name in self.names:
            msg = f"Policy already registered: {policy.name}"
            raise ValueError(msg)
        if len(self._policies) >= MAX_POLICIES:
            msg = f"Maximum policies ({MAX_POLICIES}) reached"
            raise ValueError(msg)
        self._policies.append(policy)

    def remove_policy(self, name: str) -> bool:
        before = len(self._policies)
        self._policies = [p for p in self._policies if p.name != name]
        return len(self._policies) < before

    def evaluate(self, context: PolicyContext) -> list[PolicyViolation]:
        violations: list[PolicyViolation] = []
        for policy in self._policies:
            try:
                violation = policy.evaluate(context)
            except Exception as exc:
                logger.warning(
                    "event=policy_failed policy=%s error=%s", policy.name, exc
                )
                violations.append(
                    PolicyViolation(
                        policy=policy.name,
                        severity=Severity.INFO,
                        message=sanitize_message(
                            f"Policy {policy.name} failed to evaluate: {exc}"
                        ),
                    )
                )
                continue
            if violation is not None:
                violations.append(_sanitize(violation, policy))
        return violations


def _sanitize(violation: PolicyViolation, policy: Policy) -> PolicyViolation:
    severity = violation.severity
    if severity not in Severity:
        severity = Severity.WARNING
    return PolicyViolation(
        policy=sanitize_message(violation.policy or policy.name),
        severity=Severity(severity),
        message=sanitize_message(violation.message),
        claim=violation.claim,
        suggestion=(
            sanitize_message(violation.suggestion)
            if violation.suggestion
            else None
        ),
    )
