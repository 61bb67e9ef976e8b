"""Base class shared by the built-in firewall rules."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from typing import ClassVar

from truthgate.constants import RuleName, Severity
from truthgate.firewall.models import Claim, PolicyContext, PolicyViolation
from truthgate.firewall.policy import Policy


@dataclass(frozen=True)
class RuleConfig:
    """Settings every rule understands. Rules extend this with their own fields."""

    enabled: bool = True
    severity: Severity = Severity.ERROR
    allow_list: tuple[str, ...] = ()
    deny_list: tuple[str, ...] = ()


@lru_cache(maxsize=512)
def _wildcard_regex(pattern: str) -> re.Pattern[str]:
    return re.compile(
        "^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$"
    )


def match_pattern(value: str, pattern: str) -> bool:
    """Exact match, or ``*`` wildcard match spanning any characters."""
    if pattern == "*":
        return True
    if "*" in pattern:
        return bool(_wildcard_regex(pattern).match(value))
    return value == pattern


class BaseRule[C: RuleConfig](ABC):
    """A named, configurable check producing at most one violation."""

    name: ClassVar[RuleName]
    description: ClassVar[str]
    config_type: ClassVar[type[RuleConfig]] = RuleConfig

    def __init__(self, config: C | None = None) -> None:
        self.config: C = config if config is not None else self.default_config()

    @classmethod
    def default_config(cls) -> C:
        return cls.config_type()  # type: ignore[return-value]

    @abstractmethod
    def evaluate(self, context: PolicyContext) -> PolicyViolation | None: ...

    def is_allowed(self, value: str) -> bool:
        return any(match_pattern(value, p) for p in self.config.allow_list)

    def is_denied(self, value: str) -> bool:
        return any(match_pattern(value, p) for p in self.config.deny_list)

    def to_policy(self) -> Policy:
        """Wrap as a Policy; a disabled rule always evaluates to None."""

        def evaluate(context: PolicyContext) -> PolicyViolation | None:
            if not self.config.enabled:
                return None
            return self.evaluate(context)

        return Policy(
            name=self.name.value,
            description=self.description,
            severity=self.config.severity,
            evaluate=evaluate,
        )

    def create_violation(
        self,
        message: str,
        claim: Claim | None = None,
        suggestion: str | None = None,
        *,
        severity: Severity | None = None,
    ) -> PolicyViolation:
        return PolicyViolation(
            policy=self.name.value,
            severity=severity or self.config.severity,
            message=message,
            claim=claim,
            suggestion=suggestion,
        )


def aggregate(values: list[str], limit: int = 10) -> str:
    """Join affected values for a message, de-duplicated in order."""
    unique = list(dict.fromkeys(values))
    shown = ", ".join(unique[:limit])
    if len(unique) > limit:
        shown += f" (+{len(unique) - limit} more)"
    return shown
