"""Block usage of environment variables that are not declared."""

from __future__ import annotations

from dataclasses import dataclass

from truthgate.constants import ClaimType, RuleName, Severity
from truthgate.firewall.models import PolicyContext, PolicyViolation
from truthgate.firewall.rules.base import BaseRule, RuleConfig, aggregate, match_pattern


@dataclass(frozen=True)
class GhostEnvConfig(RuleConfig):
    severity: Severity = Severity.ERROR
    builtin_allowed: tuple[str, ...] = (
        "NODE_ENV",
        "PATH",
        "HOME",
        "USER",
        "SHELL",
        "LANG",
        "PWD",
        "TERM",
        "CI",
        "DEBUG",
    )
    additional_allowed: tuple[str, ...] = ()


class GhostEnvRule(BaseRule[GhostEnvConfig]):
    name = RuleName.GHOST_ENV
    description = "Block usage of undeclared environment variables"
    config_type = GhostEnvConfig

    def evaluate(self, context: PolicyContext) -> PolicyViolation | None:
        ghosts = [
            claim
            for claim in context.claims_of(ClaimType.ENV_VARIABLE)
            if not self._is_builtin_or_allowed(claim.value)
            and not context.is_verified(claim)
        ]
        if not ghosts:
            return None

        first = ghosts[0]
        return self.create_violation(
            "GHOST ENV: Environment variable(s) not defined: "
            + aggregate([c.value for c in ghosts]),
            first,
            suggestion_for(first.value),
        )

    def _is_builtin_or_allowed(self, name: str) -> bool:
        patterns = (
            *self.config.builtin_allowed,
            *self.config.additional_allowed,
            *self.config.allow_list,
        )
        return any(match_pattern(name, p) for p in patterns)


def suggestion_for(name: str) -> str:
    parts = [
        f"Add {name} to .env.example with a description",
        "Set the value in .env",
        "Regenerate the env truthpack",
    ]
    if any(marker in name for marker in ("SECRET", "KEY", "TOKEN")):
        parts.insert(0, "This looks like a sensitive value; keep it out of git")
    if "URL" in name or "URI" in name:
        parts.insert(0, "This looks like a URL; verify the format")
    return ". ".join(parts)
