"""Warn when a single change carries too many unverified claims."""

from __future__ import annotations

from dataclasses import dataclass

from truthgate.constants import ClaimType, RuleName, Severity
from truthgate.firewall.models import PolicyContext, PolicyViolation
from truthgate.firewall.rules.base import BaseRule, RuleConfig


@dataclass(frozen=True)
class ExcessiveClaimsConfig(RuleConfig):
    severity: Severity = Severity.WARNING
    max_unverified: int = 10
    # Claim types the truthpack can verify; function calls never resolve
    counted_types: tuple[str, ...] = (
        ClaimType.API_ENDPOINT,
        ClaimType.ENV_VARIABLE,
        ClaimType.IMPORT,
        ClaimType.PACKAGE_DEPENDENCY,
        ClaimType.TYPE_REFERENCE,
        ClaimType.FILE_REFERENCE,
    )


class ExcessiveClaimsRule(BaseRule[ExcessiveClaimsConfig]):
    name = RuleName.EXCESSIVE_CLAIMS
    description = "Warn when a change has too many unverified claims"
    config_type = ExcessiveClaimsConfig

    def evaluate(self, context: PolicyContext) -> PolicyViolation | None:
        unverified = [
            c for c in context.claims
            if c.type in self.config.counted_types and not context.is_verified(c)
        ]
        if len(unverified) <= self.config.max_unverified:
            return None
        return self.create_violation(
            f"EXCESSIVE CLAIMS: {len(unverified)} unverified claims in one change",
            unverified[0],
            "Split the change into smaller pieces that can each be verified",
        )
