"""Warn about type references that no contract or import accounts for."""

from __future__ import annotations

import re
from dataclasses import dataclass

from truthgate.constants import ClaimType, RuleName, Severity
from truthgate.firewall.models import Claim, PolicyContext, PolicyViolation
from truthgate.firewall.rules.base import BaseRule, RuleConfig, aggregate


@dataclass(frozen=True)
class GhostTypeConfig(RuleConfig):
    severity: Severity = Severity.WARNING
    # A type named on an import line of the same change is not a ghost
    skip_imported: bool = True


class GhostTypeRule(BaseRule[GhostTypeConfig]):
    name = RuleName.GHOST_TYPE
    description = "Warn when referencing undefined types"
    config_type = GhostTypeConfig

    def evaluate(self, context: PolicyContext) -> PolicyViolation | None:
        imported = _imported_text(context) if self.config.skip_imported else ""
        ghosts = [
            claim
            for claim in context.claims_of(ClaimType.TYPE_REFERENCE)
            if not self.is_allowed(claim.value)
            and not context.is_verified(claim)
            and not _mentions(imported, claim.value)
        ]
        if not ghosts:
            return None
        return self.create_violation(
            "GHOST TYPE: Type(s) not defined in contracts: "
            + aggregate([c.value for c in ghosts]),
            ghosts[0],
            "Define the type in the contracts truthpack or import it",
        )


def _imported_text(context: PolicyContext) -> str:
    lines: list[str] = []
    for claim in context.claims_of(ClaimType.IMPORT):
        lines.extend(_import_lines(claim))
    return "\n".join(lines)


def _import_lines(claim: Claim) -> list[str]:
    return [
        line
        for line in claim.context.splitlines()
        if claim.value in line and ("import" in line or "require" in line)
    ]


def _mentions(text: str, name: str) -> bool:
    return bool(text) and re.search(rf"\b{re.escape(name)}\b", text) is not None
