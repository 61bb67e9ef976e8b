"""Block references to API routes that do not exist in the truthpack."""

from __future__ import annotations

from dataclasses import dataclass

from truthgate.constants import ClaimType, RuleName, Severity
from truthgate.firewall.models import PolicyContext, PolicyViolation
from truthgate.firewall.rules.base import BaseRule, RuleConfig, aggregate, match_pattern


@dataclass(frozen=True)
class GhostRouteConfig(RuleConfig):
    severity: Severity = Severity.ERROR
    allowed_external_paths: tuple[str, ...] = (
        "https://*",
        "http://localhost*",
    )
    # Only paths under these prefixes are checked; empty checks every "/" path
    api_prefixes: tuple[str, ...] = ("/api/", "/v1/", "/v2/")


class GhostRouteRule(BaseRule[GhostRouteConfig]):
    name = RuleName.GHOST_ROUTE
    description = "Block references to non-existent API endpoints"
    config_type = GhostRouteConfig

    def evaluate(self, context: PolicyContext) -> PolicyViolation | None:
        ghosts = [
            claim
            for claim in context.claims_of(ClaimType.API_ENDPOINT)
            if not self._is_exempt(claim.value)
            and self._is_api_path(claim.value)
            and not context.is_verified(claim)
        ]
        if not ghosts:
            return None

        first = ghosts[0]
        return self.create_violation(
            "GHOST ROUTE: API endpoint(s) not found in truthpack: "
            + aggregate([c.value for c in ghosts]),
            first,
            self._suggestion(first.value),
        )

    def _is_exempt(self, path: str) -> bool:
        return self.is_allowed(path) or any(
            match_pattern(path, p) for p in self.config.allowed_external_paths
        )

    def _is_api_path(self, path: str) -> bool:
        if self.is_denied(path):
            return True
        if not self.config.api_prefixes:
            return path.startswith("/")
        return path.startswith(self.config.api_prefixes)

    @staticmethod
    def _suggestion(path: str) -> str:
        resources = [
            p for p in path.split("/") if p and not p.startswith((":", "["))
        ]
        if resources:
            return (
                f'Create the route handler for "{path}" or check that the '
                "path is correct, then regenerate the routes truthpack"
            )
        return "Verify the API endpoint exists, then regenerate the routes truthpack"
