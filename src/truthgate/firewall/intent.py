"""Classify a request's action and scope, and flag invalid intents."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import PurePosixPath

from truthgate.constants import ACTION_TYPES, Confidence, IntentScope, IntentType
from truthgate.firewall.missions import MissionStore
from truthgate.firewall.models import FirewallRequest, Intent, IntentValidation

logger = logging.getLogger(__name__)

# Project-wide configuration files; touching one is a project-scope change
_PROJECT_CONFIG_PATTERNS: tuple[str, ...] = (
    "package.json",
    "package-lock.json",
    "pnpm-lock.yaml",
    "yarn.lock",
    "tsconfig*.json",
    "pyproject.toml",
    "setup.cfg",
    "requirements*.txt",
    "poetry.lock",
    "uv.lock",
    "Dockerfile",
    "docker-compose*.yml",
    ".env",
    ".env.*",
    "*.config.js",
    "*.config.ts",
)

_SOURCE_EXTENSIONS = frozenset({
    ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".vue", ".svelte",
    ".py", ".go", ".rs", ".java", ".kt", ".rb", ".php", ".cs",
    ".css", ".scss", ".html", ".md", ".json", ".yaml", ".yml", ".sql",
})

_SCOPE_RANK: dict[IntentScope, int] = {
    scope: rank for rank, scope in enumerate(IntentScope)
}


@dataclass(frozen=True)
class ValidationRule:
    """A named predicate over an intent; ``message`` is reported on failure."""

    name: str
    check: Callable[[Intent], bool]
    message: str


DEFAULT_VALIDATION_RULES: tuple[ValidationRule, ...] = (
    ValidationRule(
        name="target-required",
        check=lambda intent: bool(intent.target.strip()),
        message="Request has no target path",
    ),
    ValidationRule(
        name="scope-valid",
        check=lambda intent: intent.scope in IntentScope,
        message="Intent scope is not recognised",
    ),
    ValidationRule(
        name="confidence-threshold",
        check=lambda intent: intent.confidence >= Confidence.INTENT_MIN,
        message="Intent confidence is too low to act on",
    ),
)


def classify_action(action: str) -> tuple[IntentType, bool]:
    """Return (intent type, whether the action was recognised)."""
    normalized = action.strip().lower()
    if normalized in ACTION_TYPES:
        return ACTION_TYPES[normalized], True
    return IntentType.MODIFY, False


def infer_scope(target: str) -> IntentScope:
    path = PurePosixPath(target.strip().replace("\\", "/"))
    name = path.name
    if not name:
        return IntentScope.MODULE
    if any(fnmatch(name, pattern) for pattern in _PROJECT_CONFIG_PATTERNS):
        return IntentScope.PROJECT
    if path.suffix.lower() in _SOURCE_EXTENSIONS:
        return IntentScope.FILE
    return IntentScope.MODULE


class IntentValidator:
    """Derives an Intent from a request and applies validation rules.

    Never raises on malformed input; problems are reported as warnings
    and a low-confidence intent.
    """

    def __init__(
        self,
        rules: list[ValidationRule] | None = None,
        missions: MissionStore | None = None,
    ) -> None:
        self._rules = list(rules) if rules is not None else list(
            DEFAULT_VALIDATION_RULES
        )
        self._missions = missions

    @property
    def rules(self) -> tuple[ValidationRule, ...]:
        return tuple(self._rules)

    def add_rule(self, rule: ValidationRule) -> None:
        self._rules.append(rule)

    def validate(self, request: FirewallRequest) -> IntentValidation:
        action = request.action if isinstance(request.action, str) else ""
        target = request.target if isinstance(request.target, str) else ""

        intent_type, known = classify_action(action)
        scope = infer_scope(target)
        if not target.strip():
            confidence = Confidence.INTENT_NO_TARGET
        elif known:
            confidence = Confidence.INTENT_KNOWN_ACTION
        else:
            confidence = Confidence.INTENT_UNKNOWN_ACTION

        intent = Intent(
            type=intent_type,
            target=target,
            scope=scope,
            description=_describe(intent_type, target, action),
            confidence=confidence,
        )

        warnings: list[str] = []
        suggestions: list[str] = []
        if action and not known:
            warnings.append(
                f"Unknown action '{action}', treating it as '{intent_type.value}'"
            )

        for rule in self._rules:
            try:
                passed = rule.check(intent)
            except Exception as exc:
                logger.warning(
                    "event=intent_rule_failed rule=%s error=%s", rule.name, exc
                )
                passed = False
            if not passed:
                warnings.append(rule.message)

        drift = self._detect_scope_creep(request, intent)
        if drift:
            warnings.extend(drift)
            suggestions.append(
                "Narrow the change to the declared scope, or declare a new "
                "mission that covers it"
            )

        valid = not warnings
        return IntentValidation(
            valid=valid,
            intent=Intent(
                type=intent.type,
                target=intent.target,
                scope=intent.scope,
                description=intent.description,
                confidence=intent.confidence,
                valid=valid,
            ),
            warnings=tuple(warnings),
            suggestions=tuple(suggestions),
            mission_drift=tuple(drift),
        )

    def _detect_scope_creep(
        self, request: FirewallRequest, intent: Intent
    ) -> list[str]:
        reasons: list[str] = []

        declared = request.context.get("scope")
        if isinstance(declared, str):
            try:
                declared_scope = IntentScope(declared.strip().lower())
            except ValueError:
                declared_scope = None
            if (
                declared_scope is not None
                and _SCOPE_RANK[intent.scope] > _SCOPE_RANK[declared_scope]
            ):
                reasons.append(
                    f"Change touches {intent.scope.value} scope but "
                    f"{declared_scope.value} scope was declared"
                )

        if self._missions is not None:
            check = self._missions.check(request.action, request.target)
            reasons.extend(check.reasons)

        return reasons


def _describe(intent_type: IntentType, target: str, action: str) -> str:
    subject = target or "<no target>"
    if action and action.strip().lower() != intent_type.value:
        return f"{intent_type.value} {subject} (requested as '{action}')"
    return f"{intent_type.value} {subject}"
