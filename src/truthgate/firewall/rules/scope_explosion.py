"""Flag changes that touch far more surface than the intent declared."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass

from truthgate.constants import ClaimType, IntentScope, RuleName, Severity
from truthgate.firewall.models import PolicyContext, PolicyViolation
from truthgate.firewall.rules.base import BaseRule, RuleConfig, match_pattern


@dataclass(frozen=True)
class ScopeExplosionConfig(RuleConfig):
    severity: Severity = Severity.WARNING
    max_affected_files: int = 10
    max_claims: int = 150
    max_directory_depth: int = 3
    max_claim_categories: int = 5
    # Extra files a single-file intent may reference
    single_file_slack: int = 2
    protected_paths: tuple[str, ...] = (
        "package.json",
        "package-lock.json",
        "pnpm-lock.yaml",
        "yarn.lock",
        ".env",
        ".env.*",
        "*.config.js",
        "*.config.ts",
        "tsconfig.json",
        "pyproject.toml",
    )


class ScopeExplosionRule(BaseRule[ScopeExplosionConfig]):
    name = RuleName.SCOPE_EXPLOSION
    description = "Prevent changes that exceed the declared intent scope"
    config_type = ScopeExplosionConfig

    def evaluate(self, context: PolicyContext) -> PolicyViolation | None:
        checks = (
            self._check_mission_drift,
            self._check_claim_count,
            self._check_affected_files,
            self._check_protected_paths,
            self._check_directory_depth,
            self._check_single_file_intent,
            self._check_categories,
        )
        for check in checks:
            violation = check(context)
            if violation is not None:
                return violation
        return None

    def _check_mission_drift(self, context: PolicyContext) -> PolicyViolation | None:
        if context.intent is None or not context.intent.mission_drift:
            return None
        return self.create_violation(
            "SCOPE EXPLOSION: Request diverges from the declared mission: "
            + "; ".join(context.intent.mission_drift),
            None,
            "Declare a mission that covers this change or narrow the request",
        )

    def _check_claim_count(self, context: PolicyContext) -> PolicyViolation | None:
        limit = self.config.max_claims
        if len(context.claims) <= limit:
            return None
        return self.create_violation(
            f"SCOPE EXPLOSION: Too many claims ({len(context.claims)}/{limit})",
            None,
            "Break this change into smaller, focused modifications",
        )

    def _check_affected_files(self, context: PolicyContext) -> PolicyViolation | None:
        refs = context.claims_of(ClaimType.FILE_REFERENCE)
        files = {c.value for c in refs}
        files.update(
            c.value
            for c in context.claims_of(ClaimType.IMPORT)
            if c.value.startswith(".")
        )
        limit = self.config.max_affected_files
        if len(files) <= limit:
            return None
        return self.create_violation(
            f"SCOPE EXPLOSION: Change affects too many files ({len(files)}/{limit})",
            refs[0] if refs else None,
            f"This change touches {len(files)} files. Consider splitting it.",
        )

    def _check_protected_paths(self, context: PolicyContext) -> PolicyViolation | None:
        for claim in context.claims_of(ClaimType.FILE_REFERENCE):
            name = posixpath.basename(claim.value)
            if any(
                match_pattern(name, p) or match_pattern(claim.value, p)
                for p in self.config.protected_paths
            ):
                return self.create_violation(
                    f"SCOPE EXPLOSION: Attempting to modify protected file: {claim.value}",
                    claim,
                    f'File "{claim.value}" is protected. Modifications require '
                    "explicit approval.",
                )
        return None

    def _check_directory_depth(self, context: PolicyContext) -> PolicyViolation | None:
        refs = context.claims_of(ClaimType.FILE_REFERENCE)
        depths = {
            len([p for p in posixpath.dirname(c.value).split("/") if p])
            for c in refs
            if "/" in c.value
        }
        if not depths:
            return None
        spread = max(depths) - min(depths)
        if spread <= self.config.max_directory_depth:
            return None
        return self.create_violation(
            f"SCOPE EXPLOSION: Changes span too many directory levels ({spread} levels)",
            refs[0],
            f"Keep changes localized; this one spans depth {min(depths)} "
            f"to {max(depths)}.",
        )

    def _check_single_file_intent(
        self, context: PolicyContext
    ) -> PolicyViolation | None:
        if context.intent is None or context.intent.intent.scope != IntentScope.FILE:
            return None
        refs = context.claims_of(ClaimType.FILE_REFERENCE)
        files = {c.value for c in refs}
        if len(files) <= self.config.single_file_slack:
            return None
        return self.create_violation(
            f"SCOPE EXPLOSION: Intent was for a single file but {len(files)} "
            "files are affected",
            refs[0],
            "Declare a broader intent or split into multiple focused changes",
        )

    def _check_categories(self, context: PolicyContext) -> PolicyViolation | None:
        categories = {c.type for c in context.claims}
        limit = self.config.max_claim_categories
        if len(categories) <= limit:
            return None
        return self.create_violation(
            f"SCOPE EXPLOSION: Change spans too many claim categories "
            f"({len(categories)}/{limit})",
            None,
            "Split the change by concern",
        )
