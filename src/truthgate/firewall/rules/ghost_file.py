"""Warn about references to files the manifest does not know."""

from __future__ import annotations

from dataclasses import dataclass

from truthgate.constants import ClaimType, RuleName, Severity
from truthgate.firewall.models import PolicyContext, PolicyViolation
from truthgate.firewall.rules.base import BaseRule, RuleConfig, aggregate


@dataclass(frozen=True)
class GhostFileConfig(RuleConfig):
    severity: Severity = Severity.WARNING


class GhostFileRule(BaseRule[GhostFileConfig]):
    name = RuleName.GHOST_FILE
    description = "Warn about references to non-existent files"
    config_type = GhostFileConfig

    def evaluate(self, context: PolicyContext) -> PolicyViolation | None:
        ghosts = [
            claim
            for claim in context.claims_of(ClaimType.FILE_REFERENCE)
            if not self.is_allowed(claim.value) and not context.is_verified(claim)
        ]
        if not ghosts:
            return None
        return self.create_violation(
            "GHOST FILE: File(s) not found in the manifest: "
            + aggregate([c.value for c in ghosts]),
            ghosts[0],
            "Create the file before referencing it, or fix the path",
        )
