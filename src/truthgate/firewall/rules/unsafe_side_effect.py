"""Block dangerous constructs: code evaluation, shell execution,
destructive SQL, DOM injection, prototype pollution, file deletion.

The pattern table is data. Each rule instance compiles it once; a
project can swap in its own table through the rule configuration.
Claims in test code (context or file mentions a test keyword) are
exempt.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from truthgate.constants import (
    TEST_CONTEXT_KEYWORDS,
    ClaimType,
    RuleName,
    Severity,
)
from truthgate.firewall.models import Claim, PolicyContext, PolicyViolation
from truthgate.firewall.rules.base import BaseRule, RuleConfig


@dataclass(frozen=True)
class DangerousPattern:
    pattern: str
    description: str
    severity: Severity
    # Key into the suggestion table
    kind: str = ""
    ignore_case: bool = False
    multiline: bool = False

    def compile(self) -> re.Pattern[str]:
        flags = 0
        if self.ignore_case:
            flags |= re.IGNORECASE
        if self.multiline:
            flags |= re.MULTILINE
        return re.compile(self.pattern, flags)


DEFAULT_DANGEROUS_PATTERNS: tuple[DangerousPattern, ...] = (
    DangerousPattern(r"\beval\s*\(", "eval() can execute arbitrary code", Severity.ERROR, "eval"),
    DangerousPattern(
        r"\bnew\s+Function\s*\(",
        "Function() constructor can execute arbitrary code",
        Severity.ERROR,
        "function",
    ),
    DangerousPattern(
        r"child_process\s*\.\s*exec\s*\(",
        "exec() can run arbitrary shell commands",
        Severity.ERROR,
        "exec",
    ),
    DangerousPattern(r"execSync\s*\(", "execSync() can run arbitrary shell commands", Severity.ERROR, "exec"),
    DangerousPattern(
        r"\$\{[^}]*\}.*exec|exec.*\$\{[^}]*\}",
        "Template literal in shell command (injection risk)",
        Severity.ERROR,
        "exec",
    ),
    DangerousPattern(r"\bos\.system\s*\(", "os.system() runs a shell command", Severity.ERROR, "exec"),
    DangerousPattern(
        r"subprocess\.\w+\([^)]*shell\s*=\s*True",
        "subprocess call with shell=True (injection risk)",
        Severity.ERROR,
        "exec",
    ),
    DangerousPattern(r"rm\s+-rf\s+/", "Recursive delete from root", Severity.ERROR, "rm"),
    DangerousPattern(r"rm\s+-rf\s+\*", "Recursive delete with wildcard", Severity.ERROR, "rm"),
    DangerousPattern(r"DROP\s+TABLE", "SQL DROP TABLE statement", Severity.ERROR, "drop", ignore_case=True),
    DangerousPattern(
        r"DELETE\s+FROM\s+\w+\s*;?\s*['\"`]?\s*\)?\s*;?\s*$",
        "Unfiltered DELETE statement",
        Severity.ERROR,
        "delete",
        ignore_case=True,
        multiline=True,
    ),
    DangerousPattern(r"TRUNCATE\s+TABLE", "SQL TRUNCATE statement", Severity.ERROR, "drop", ignore_case=True),
    DangerousPattern(r"__proto__|prototype\s*\[", "Prototype pollution risk", Severity.ERROR, "proto"),
    DangerousPattern(r"\.innerHTML\s*=", "innerHTML assignment (XSS risk)", Severity.WARNING, "innerhtml"),
    DangerousPattern(r"document\.write\s*\(", "document.write() can overwrite the page", Severity.WARNING, "innerhtml"),
    DangerousPattern(r"dangerouslySetInnerHTML", "React dangerouslySetInnerHTML", Severity.WARNING, "innerhtml"),
    DangerousPattern(
        r"Object\.assign\s*\([^,]+,\s*req\.body",
        "Mass assignment vulnerability",
        Severity.WARNING,
    ),
    DangerousPattern(r"process\.exit\s*\(\s*[^0)]", "Non-zero process exit", Severity.WARNING),
    DangerousPattern(r"fs\.(unlink|rmdir|rm)(Sync)?\s*\(", "File/directory deletion", Severity.WARNING, "rm"),
    DangerousPattern(r"\bpickle\.loads?\s*\(", "Unpickling can execute arbitrary code", Severity.WARNING, "eval"),
    DangerousPattern(r"require\s*\(\s*[^'\"\s)]\w*\s*\)", "Dynamic require (injection risk)", Severity.WARNING),
    DangerousPattern(r"\bimport\s*\(\s*[^'\"\s)]\w*\s*\)", "Dynamic import (injection risk)", Severity.WARNING),
)

SUGGESTIONS: dict[str, str] = {
    "eval": "Use JSON.parse() (or json.loads()) for data, or a sandboxed interpreter",
    "function": "Use a predefined function instead of generating code at runtime",
    "exec": "Pass an explicit argument list (spawn / subprocess without a shell) to avoid shell injection",
    "innerhtml": "Use textContent for text, or sanitize input (e.g. DOMPurify)",
    "delete": "Add a WHERE clause to limit affected rows",
    "drop": "Use migrations for schema changes",
    "rm": "Verify the path and add safety checks before deletion",
    "proto": "Use Object.create(null) or a Map for user-controlled keys",
}

_DEFAULT_SUGGESTION = "Review this code for potential security issues"


@dataclass(frozen=True)
class UnsafeSideEffectConfig(RuleConfig):
    severity: Severity = Severity.ERROR
    dangerous_patterns: tuple[DangerousPattern, ...] = DEFAULT_DANGEROUS_PATTERNS
    restricted_file_ops: tuple[str, ...] = (
        "unlink",
        "rmdir",
        "rm",
        "rmSync",
        "rmdirSync",
        "unlinkSync",
        "rmtree",
    )
    dangerous_modules: tuple[str, ...] = ("child_process", "vm", "worker_threads")
    dangerous_usages: tuple[str, ...] = (
        r"exec\s*\(",
        r"spawn\s*\(",
        r"runInContext",
        r"createScript",
    )
    allowed_contexts: tuple[str, ...] = TEST_CONTEXT_KEYWORDS


class UnsafeSideEffectRule(BaseRule[UnsafeSideEffectConfig]):
    name = RuleName.UNSAFE_SIDE_EFFECT
    description = "Block dangerous operations that could have unintended side effects"
    config_type = UnsafeSideEffectConfig

    def __init__(self, config: UnsafeSideEffectConfig | None = None) -> None:
        super().__init__(config)
        self._patterns = tuple(
            (spec, spec.compile()) for spec in self.config.dangerous_patterns
        )
        self._usages = tuple(re.compile(p) for p in self.config.dangerous_usages)
        self._allowed = tuple(a.lower() for a in self.config.allowed_contexts)

    def evaluate(self, context: PolicyContext) -> PolicyViolation | None:
        for claim in context.claims:
            if self.is_test_context(claim):
                continue
            spec = self._match(claim.context)
            if spec is not None:
                return self.create_violation(
                    f"UNSAFE SIDE EFFECT: {spec.description}",
                    claim,
                    SUGGESTIONS.get(spec.kind, _DEFAULT_SUGGESTION),
                    severity=spec.severity,
                )

        for claim in context.claims_of(ClaimType.FUNCTION_CALL):
            if self.is_test_context(claim):
                continue
            if self._is_restricted_file_op(claim.value):
                return self.create_violation(
                    f'UNSAFE SIDE EFFECT: Restricted file operation "{claim.value}"',
                    claim,
                    "File deletion requires explicit approval. Consider a "
                    "safer approach.",
                )

        for claim in context.claims_of(ClaimType.IMPORT, ClaimType.PACKAGE_DEPENDENCY):
            if self.is_test_context(claim):
                continue
            if not any(m in claim.value for m in self.config.dangerous_modules):
                continue
            if context.is_verified(claim) and any(
                u.search(claim.context) for u in self._usages
            ):
                return self.create_violation(
                    f'UNSAFE SIDE EFFECT: Potentially dangerous module "{claim.value}" '
                    "with risky usage",
                    claim,
                    "Review the usage of this module carefully. Consider safer "
                    "alternatives.",
                )
        return None

    def is_test_context(self, claim: Claim) -> bool:
        haystacks = (claim.context.lower(), claim.file.lower())
        return any(kw in text for kw in self._allowed for text in haystacks) or (
            self.is_allowed(claim.file)
        )

    def _match(self, text: str) -> DangerousPattern | None:
        for spec, compiled in self._patterns:
            if compiled.search(text):
                return spec
        return None

    def _is_restricted_file_op(self, call: str) -> bool:
        leaf = call.rsplit(".", 1)[-1]
        return leaf in self.config.restricted_file_ops
