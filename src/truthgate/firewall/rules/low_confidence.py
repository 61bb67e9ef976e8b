"""Warn when most of a change could only be read with low confidence."""

from __future__ import annotations

from dataclasses import dataclass

from truthgate.constants import RuleName, Severity
from truthgate.firewall.models import PolicyContext, PolicyViolation
from truthgate.firewall.rules.base import BaseRule, RuleConfig


@dataclass(frozen=True)
class LowConfidenceConfig(RuleConfig):
    severity: Severity = Severity.WARNING
    min_confidence: float = 0.5
    max_low_ratio: float = 0.3
    # Below this many claims the ratio is too noisy to act on
    min_claims: int = 4


class LowConfidenceRule(BaseRule[LowConfidenceConfig]):
    name = RuleName.LOW_CONFIDENCE
    description = "Warn about changes dominated by low-confidence claims"
    config_type = LowConfidenceConfig

    def evaluate(self, context: PolicyContext) -> PolicyViolation | None:
        total = len(context.claims)
        if total < self.config.min_claims:
            return None
        low = [
            c for c in context.claims
            if c.confidence < self.config.min_confidence
        ]
        if len(low) <= total * self.config.max_low_ratio:
            return None
        return self.create_violation(
            f"LOW CONFIDENCE: {len(low)} of {total} claims have low confidence",
            low[0],
            "Claims in comments or templated strings are hard to verify; "
            "move them into code or spell out the literal values",
        )
