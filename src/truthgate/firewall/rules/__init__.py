"""Built-in firewall rules and the rule-set builder."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from truthgate.constants import DEFAULT_RULE_ORDER, RuleName
from truthgate.firewall.policy import Policy
from truthgate.firewall.rules.auth_drift import AuthDriftConfig, AuthDriftRule
from truthgate.firewall.rules.base import BaseRule, RuleConfig, match_pattern
from truthgate.firewall.rules.contract_drift import (
    ContractDriftConfig,
    ContractDriftRule,
)
from truthgate.firewall.rules.excessive_claims import (
    ExcessiveClaimsConfig,
    ExcessiveClaimsRule,
)
from truthgate.firewall.rules.ghost_env import GhostEnvConfig, GhostEnvRule
from truthgate.firewall.rules.ghost_file import GhostFileConfig, GhostFileRule
from truthgate.firewall.rules.ghost_import import GhostImportConfig, GhostImportRule
from truthgate.firewall.rules.ghost_route import GhostRouteConfig, GhostRouteRule
from truthgate.firewall.rules.ghost_type import GhostTypeConfig, GhostTypeRule
from truthgate.firewall.rules.low_confidence import (
    LowConfidenceConfig,
    LowConfidenceRule,
)
from truthgate.firewall.rules.scope_explosion import (
    ScopeExplosionConfig,
    ScopeExplosionRule,
)
from truthgate.firewall.rules.unsafe_side_effect import (
    DangerousPattern,
    UnsafeSideEffectConfig,
    UnsafeSideEffectRule,
)

__all__ = [
    "RULE_TYPES",
    "AuthDriftConfig",
    "AuthDriftRule",
    "BaseRule",
    "ContractDriftConfig",
    "ContractDriftRule",
    "DangerousPattern",
    "ExcessiveClaimsConfig",
    "ExcessiveClaimsRule",
    "GhostEnvConfig",
    "GhostEnvRule",
    "GhostFileConfig",
    "GhostFileRule",
    "GhostImportConfig",
    "GhostImportRule",
    "GhostRouteConfig",
    "GhostRouteRule",
    "GhostTypeConfig",
    "GhostTypeRule",
    "LowConfidenceConfig",
    "LowConfidenceRule",
    "RuleConfig",
    "RuleSetConfig",
    "ScopeExplosionConfig",
    "ScopeExplosionRule",
    "UnsafeSideEffectConfig",
    "UnsafeSideEffectRule",
    "build_policies",
    "build_rules",
    "match_pattern",
]

# Strategy table: rule name → implementation
RULE_TYPES: dict[RuleName, type[BaseRule[Any]]] = {
    RuleName.GHOST_ROUTE: GhostRouteRule,
    RuleName.GHOST_ENV: GhostEnvRule,
    RuleName.AUTH_DRIFT: AuthDriftRule,
    RuleName.CONTRACT_DRIFT: ContractDriftRule,
    RuleName.SCOPE_EXPLOSION: ScopeExplosionRule,
    RuleName.UNSAFE_SIDE_EFFECT: UnsafeSideEffectRule,
    RuleName.GHOST_IMPORT: GhostImportRule,
    RuleName.GHOST_FILE: GhostFileRule,
    RuleName.GHOST_TYPE: GhostTypeRule,
    RuleName.LOW_CONFIDENCE: LowConfidenceRule,
    RuleName.EXCESSIVE_CLAIMS: ExcessiveClaimsRule,
}


@dataclass(frozen=True)
class RuleSetConfig:
    """Which rules run, in what order, with which configuration.

    Rules missing from ``configs`` use their defaults.
    """

    order: tuple[RuleName, ...] = DEFAULT_RULE_ORDER
    configs: Mapping[RuleName, RuleConfig] = field(
        default_factory=lambda: dict[RuleName, RuleConfig]()
    )

    def config_for(self, name: RuleName) -> RuleConfig | None:
        return self.configs.get(name)


def build_rules(
    config: RuleSetConfig | None = None,
    *,
    only: Iterable[RuleName] | None = None,
) -> list[BaseRule[Any]]:
    """Instantiate rules in configured order, optionally restricted to ``only``."""
    config = config or RuleSetConfig()
    selected = set(only) if only is not None else None
    rules: list[BaseRule[Any]] = []
    for name in config.order:
        if selected is not None and name not in selected:
            continue
        rule_type = RULE_TYPES.get(name)
        if rule_type is None:
            msg = f"Unknown rule: {name}"
            raise ValueError(msg)
        rule_config = config.config_for(name)
        if rule_config is not None and not isinstance(
            rule_config, rule_type.config_type
        ):
            msg = (
                f"Rule {name} expects {rule_type.config_type.__name__}, "
                f"got {type(rule_config).__name__}"
            )
            raise ValueError(msg)
        rules.append(rule_type(rule_config))
    return rules


def build_policies(
    config: RuleSetConfig | None = None,
    *,
    only: Iterable[RuleName] | None = None,
) -> list[Policy]:
    return [rule.to_policy() for rule in build_rules(config, only=only)]
