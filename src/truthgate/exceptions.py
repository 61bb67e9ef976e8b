"""Exception hierarchy for truthgate.

User-visible firewall failures are violations, not exceptions. The
classes here cover the few conditions that must abort: a missing
truthpack at construction, a cancelled evaluation, and a blocked
guarded call.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from truthgate.firewall.models import FirewallResult


class TruthgateError(Exception):
    """Base class for all truthgate errors."""


class ConfigurationError(TruthgateError):
    """Invalid or missing configuration (e.g. no truthpack store)."""


class SnapshotUnavailableError(TruthgateError):
    """The truthpack snapshot could not be loaded."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class EvaluationCancelledError(TruthgateError):
    """An in-flight evaluation was cancelled at a stage boundary."""

    def __init__(self, stage: str) -> None:
        super().__init__(f"Evaluation cancelled before stage '{stage}'")
        self.stage = stage


class FirewallBlockedError(TruthgateError):
    """A guarded call was prevented because the firewall blocked it."""

    def __init__(self, result: FirewallResult) -> None:
        policies = ", ".join(v.policy for v in result.violations) or "none"
        super().__init__(
            f"Blocked by firewall: {result.intent.intent.target} "
            f"(policies: {policies})"
        )
        self.result = result
