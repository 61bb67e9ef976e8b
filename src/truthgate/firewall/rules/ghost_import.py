"""Warn about imports that resolve to neither a dependency nor a project file."""

from __future__ import annotations

from dataclasses import dataclass

from truthgate.constants import ClaimType, RuleName, Severity
from truthgate.firewall.models import PolicyContext, PolicyViolation
from truthgate.firewall.rules.base import BaseRule, RuleConfig, aggregate


@dataclass(frozen=True)
class GhostImportConfig(RuleConfig):
    severity: Severity = Severity.WARNING


class GhostImportRule(BaseRule[GhostImportConfig]):
    name = RuleName.GHOST_IMPORT
    description = "Warn about imports that cannot be verified"
    config_type = GhostImportConfig

    def evaluate(self, context: PolicyContext) -> PolicyViolation | None:
        ghosts = [
            claim
            for claim in context.claims_of(
                ClaimType.IMPORT, ClaimType.PACKAGE_DEPENDENCY
            )
            if not self.is_allowed(claim.value) and not context.is_verified(claim)
        ]
        if not ghosts:
            return None

        first = ghosts[0]
        if first.value.startswith("."):
            suggestion = (
                f'Check the path "{first.value}" or create the module, '
                "then regenerate the manifest truthpack"
            )
        else:
            suggestion = (
                f'Add "{first.value}" to the project dependencies or fix the '
                "import, then regenerate the manifest truthpack"
            )
        return self.create_violation(
            "GHOST IMPORT: Module(s) not found in the manifest: "
            + aggregate([c.value for c in ghosts]),
            first,
            suggestion,
        )
