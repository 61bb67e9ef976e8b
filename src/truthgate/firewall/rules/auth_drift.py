"""Detect changes that may weaken authentication.

Three checks, first hit wins:

1. A route claim without auth evidence whose context carries a bypass
   pattern (the route may have lost its protection).
2. Any claim whose context carries a bypass pattern.
3. An auth-related import that cannot be resolved.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from truthgate.constants import ClaimType, RuleName, Severity
from truthgate.firewall.models import Claim, PolicyContext, PolicyViolation
from truthgate.firewall.rules.base import BaseRule, RuleConfig


@dataclass(frozen=True)
class AuthDriftConfig(RuleConfig):
    severity: Severity = Severity.WARNING
    auth_keywords: tuple[str, ...] = (
        "authenticate",
        "authorize",
        "requireAuth",
        "isAuthenticated",
        "checkPermission",
        "requireRole",
        "verifyToken",
        "validateSession",
        "middleware",
        "guard",
    )
    # Case-insensitive regular expressions
    bypass_patterns: tuple[str, ...] = (
        r"auth\s*=\s*false",
        r"skipAuth",
        r"noAuth",
        r"bypassAuth",
        r"requireAuth\s*:\s*false",
        r"isPublic\s*:\s*true",
    )


class AuthDriftRule(BaseRule[AuthDriftConfig]):
    name = RuleName.AUTH_DRIFT
    description = "Detect potentially dangerous changes to authentication patterns"
    config_type = AuthDriftConfig

    def __init__(self, config: AuthDriftConfig | None = None) -> None:
        super().__init__(config)
        self._patterns = tuple(
            re.compile(p, re.IGNORECASE) for p in self.config.bypass_patterns
        )
        self._keywords = tuple(k.lower() for k in self.config.auth_keywords)

    def evaluate(self, context: PolicyContext) -> PolicyViolation | None:
        for claim in context.claims_of(ClaimType.API_ENDPOINT):
            if self._has_auth_evidence(context, claim):
                continue
            if self._bypass_match(claim.context):
                return self.create_violation(
                    f'AUTH DRIFT: Route "{claim.value}" may have authentication removed',
                    claim,
                    "Verify this route should be public. Protected routes "
                    "should use auth middleware.",
                )

        for claim in context.claims:
            match = self._bypass_match(claim.context)
            if match:
                return self.create_violation(
                    f'AUTH DRIFT: Suspicious auth pattern detected: "{match}"',
                    claim,
                    "Review this change carefully; it may weaken "
                    "authentication controls",
                )

        for claim in context.claims_of(ClaimType.IMPORT):
            if self._is_auth_related(claim.value) and not context.is_verified(claim):
                return self.create_violation(
                    f"AUTH DRIFT: Auth-related import not found: {claim.value}",
                    claim,
                    "Ensure authentication middleware and utilities are "
                    "imported from modules that exist",
                )
        return None

    def _bypass_match(self, text: str) -> str | None:
        for pattern in self._patterns:
            match = pattern.search(text)
            if match:
                return match.group(0)
        return None

    def _is_auth_related(self, value: str) -> bool:
        lowered = value.lower()
        return any(k in lowered for k in self._keywords)

    @staticmethod
    def _has_auth_evidence(context: PolicyContext, claim: Claim) -> bool:
        evidence = context.evidence_for(claim)
        if evidence is None or not evidence.found:
            return False
        return bool(
            evidence.details.get("auth_required")
            or evidence.details.get("required_roles")
        )
