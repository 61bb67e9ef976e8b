"""Shared constants: single source of truth for cross-module values.

All magic strings and numbers that appear in 2+ files belong here.
StrEnum members are str-compatible, so downstream code (JSON audit
entries, CLI output, YAML rule files) works unchanged.
"""

from __future__ import annotations

from enum import StrEnum

# ── String Enums ─────────────────────────────────────────


class ClaimType(StrEnum):
    """Kinds of factual assertion the extractor can find."""

    API_ENDPOINT = "api_endpoint"
    ENV_VARIABLE = "env_variable"
    IMPORT = "import"
    PACKAGE_DEPENDENCY = "package_dependency"
    FUNCTION_CALL = "function_call"
    TYPE_REFERENCE = "type_reference"
    FILE_REFERENCE = "file_reference"


class EvidenceSource(StrEnum):
    """Truthpack category that resolved a claim."""

    ROUTES = "routes"
    ENV = "env"
    AUTH = "auth"
    CONTRACTS = "contracts"
    MANIFEST = "manifest"


class Severity(StrEnum):
    """Severity levels for policy violations."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Decision(StrEnum):
    """Three-valued firewall outcome."""

    ALLOW = "allow"
    WARN = "warn"
    BLOCK = "block"


class FirewallMode(StrEnum):
    """Whether blocking decisions are enforced or only observed."""

    ENFORCE = "enforce"
    OBSERVE = "observe"


class IntentType(StrEnum):
    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"
    REFACTOR = "refactor"
    FIX = "fix"
    TEST = "test"


class IntentScope(StrEnum):
    """Scope of a change, ordered from narrowest to widest."""

    FILE = "file"
    FUNCTION = "function"
    CLASS = "class"
    MODULE = "module"
    PROJECT = "project"


class MissionStatus(StrEnum):
    """Lifecycle status of a declared mission."""

    ACTIVE = "active"
    EXPIRED = "expired"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class StepAction(StrEnum):
    """Verb of an unblock plan step."""

    ADD = "add"
    MODIFY = "modify"
    VERIFY = "verify"
    RUN = "run"


class RuleName(StrEnum):
    """Names of the built-in firewall rules."""

    GHOST_ROUTE = "ghost-route"
    GHOST_ENV = "ghost-env"
    AUTH_DRIFT = "auth-drift"
    CONTRACT_DRIFT = "contract-drift"
    SCOPE_EXPLOSION = "scope-explosion"
    UNSAFE_SIDE_EFFECT = "unsafe-side-effect"
    GHOST_IMPORT = "ghost-import"
    GHOST_FILE = "ghost-file"
    GHOST_TYPE = "ghost-type"
    LOW_CONFIDENCE = "low-confidence"
    EXCESSIVE_CLAIMS = "excessive-claims"


# Fixed evaluation order of the built-in rule set
DEFAULT_RULE_ORDER: tuple[RuleName, ...] = (
    RuleName.GHOST_ROUTE,
    RuleName.GHOST_ENV,
    RuleName.AUTH_DRIFT,
    RuleName.CONTRACT_DRIFT,
    RuleName.SCOPE_EXPLOSION,
    RuleName.UNSAFE_SIDE_EFFECT,
    RuleName.GHOST_IMPORT,
    RuleName.GHOST_FILE,
    RuleName.GHOST_TYPE,
    RuleName.LOW_CONFIDENCE,
    RuleName.EXCESSIVE_CLAIMS,
)

# Rules run by Firewall.quick_check (blocking subset only)
QUICK_CHECK_RULES: tuple[RuleName, ...] = (
    RuleName.GHOST_ROUTE,
    RuleName.GHOST_ENV,
    RuleName.UNSAFE_SIDE_EFFECT,
)


# ── Confidence ───────────────────────────────────────────


class Confidence:
    """Named confidence values: single source of truth."""

    CODE_LITERAL = 0.9
    TEMPLATE_LITERAL = 0.75
    COMMENT = 0.4

    INTENT_KNOWN_ACTION = 0.8
    INTENT_UNKNOWN_ACTION = 0.5
    INTENT_NO_TARGET = 0.2
    INTENT_MIN = 0.3

    EVIDENCE_EXACT = 1.0
    EVIDENCE_PARAMETERIZED = 0.9
    EVIDENCE_SUFFIXED = 0.85


# ── Limits ───────────────────────────────────────────────

MAX_POLICIES = 50
MAX_MESSAGE_LENGTH = 500
CONTEXT_RADIUS_LINES = 1
MAX_CONTEXT_CHARS = 600
DEFAULT_MAX_CONTENT_CHARS = 1_000_000
DEFAULT_EVIDENCE_TIMEOUT_SECONDS = 5.0

# Snapshot store resilience
STORE_RETRY_ATTEMPTS = 3
STORE_RETRY_INITIAL_WAIT = 0.05
STORE_RETRY_MAX_WAIT = 0.5
CB_STORE_FAILURE_THRESHOLD = 5
CB_STORE_RECOVERY_TIMEOUT = 30

# Audit log
AUDIT_LOG_FILENAME = "firewall.log"
ERROR_TRUNCATION_CHARS = 500

# Keywords marking test code; matched case-insensitively as substrings
TEST_CONTEXT_KEYWORDS: tuple[str, ...] = (
    "test",
    "spec",
    "mock",
    "__tests__",
)

# Request action → intent type; unknown actions fall back to MODIFY
ACTION_TYPES: dict[str, IntentType] = {
    "write": IntentType.CREATE,
    "create": IntentType.CREATE,
    "modify": IntentType.MODIFY,
    "edit": IntentType.MODIFY,
    "execute": IntentType.MODIFY,
    "delete": IntentType.DELETE,
    "remove": IntentType.DELETE,
    "refactor": IntentType.REFACTOR,
    "fix": IntentType.FIX,
    "test": IntentType.TEST,
}

# Mission defaults
MISSION_DEFAULT_ALLOWED_PATHS: tuple[str, ...] = ("**/*",)
MISSION_DEFAULT_ALLOWED_ACTIONS: tuple[str, ...] = ("read", "write", "modify")
MISSION_MAX_HISTORY = 100
