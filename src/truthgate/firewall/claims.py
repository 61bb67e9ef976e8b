"""Extract verifiable claims from candidate code.

Extraction is lexical: each claim type has a small set of regular
expressions covering JavaScript/TypeScript and Python idioms. No
parsing, no I/O; the output is a pure function of (content, target).
"""

from __future__ import annotations

import hashlib
import logging
import re
from collections import Counter
from dataclasses import dataclass, field

from truthgate.constants import (
    CONTEXT_RADIUS_LINES,
    MAX_CONTEXT_CHARS,
    ClaimType,
    Confidence,
)
from truthgate.firewall.models import Claim, ClaimLocation

logger = logging.getLogger(__name__)

# ── Patterns ─────────────────────────────────────────────

_PATH_LITERAL_RE = re.compile(
    r"""(?P<q>['"`])(?P<value>(?:https?://[^\s'"`]+)|(?:/[\w\-./:{}\[\]$~@%+=?&]*))(?P=q)"""
)

_ENV_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"process\.env\.([A-Za-z_][A-Za-z0-9_]*)"),
    re.compile(r"""process\.env\[\s*['"]([A-Za-z_][A-Za-z0-9_]*)['"]\s*\]"""),
    re.compile(r"import\.meta\.env\.([A-Za-z_][A-Za-z0-9_]*)"),
    re.compile(r"""os\.environ\[\s*['"]([A-Za-z_][A-Za-z0-9_]*)['"]\s*\]"""),
    re.compile(r"""os\.environ\.get\(\s*['"]([A-Za-z_][A-Za-z0-9_]*)['"]"""),
    re.compile(r"""os\.getenv\(\s*['"]([A-Za-z_][A-Za-z0-9_]*)['"]"""),
)

_IMPORT_RES: tuple[re.Pattern[str], ...] = (
    # import x from 'y' / import { a } from 'y' / import * as x from 'y'
    re.compile(r"""\bimport\s+(?:type\s+)?[\w*{}\s,$]+?\s+from\s+['"]([^'"]+)['"]"""),
    # import 'y'
    re.compile(r"""\bimport\s+['"]([^'"]+)['"]"""),
    # export { a } from 'y' / export * from 'y'
    re.compile(r"""\bexport\s+[\w*{}\s,$]+?\s+from\s+['"]([^'"]+)['"]"""),
    # require('y')
    re.compile(r"""\brequire\(\s*['"]([^'"]+)['"]\s*\)"""),
    # from x.y import z  (Python)
    re.compile(r"^\s*from\s+(\.*[\w.]*)\s+import\s+", re.MULTILINE),
    # import x.y, z  (Python)
    re.compile(r"^\s*import\s+([\w.]+(?:\s*,\s*[\w.]+)*)\s*$", re.MULTILINE),
)

_CALL_RE = re.compile(
    r"(?<![\w$.])(?P<new>new\s+)?(?P<name>[A-Za-z_$][\w$]*(?:\s*\.\s*[A-Za-z_$][\w$]*)*)\s*\("
)

_TYPE_REF_RE = re.compile(r"(?<!:):(?![:/])\s*(?P<name>[A-Z][A-Za-z0-9]*)\b(?!\s*[(:])")

_FILE_REF_RE = re.compile(r"""['"`](\.{1,2}/[^'"`\s]+\.[A-Za-z0-9]+)['"`]""")

_TEMPLATE_PLACEHOLDER_RE = re.compile(r"\$\{[^}]*\}")

_LINE_COMMENT_RE = re.compile(r"^\s*(?://|#|\*|/\*)")

_CALL_KEYWORDS = frozenset({
    "if", "for", "while", "switch", "catch", "return", "typeof", "function",
    "def", "class", "await", "yield", "with", "elif", "not", "and", "or",
    "in", "assert", "lambda", "super", "print", "import", "from", "except",
    "async", "constructor", "sizeof", "delete", "void",
})

_DEFINITION_PREFIX_RE = re.compile(r"(?:\bfunction|\bdef|\bclass)\s*$")

_BUILTIN_TYPES = frozenset({
    "Array", "Promise", "Record", "Partial", "Required", "Pick", "Omit",
    "Readonly", "Map", "Set", "Date", "Error", "String", "Number",
    "Boolean", "Object", "Function", "Symbol", "RegExp", "JSX",
    "True", "False", "None", "Any", "Optional", "Union", "List", "Dict",
    "Tuple", "Callable", "Iterable", "Iterator", "Sequence", "Mapping",
})


@dataclass(frozen=True)
class ExtractionStats:
    total_claims: int
    by_type: dict[ClaimType, int] = field(default_factory=lambda: dict[ClaimType, int]())
    avg_confidence: float = 0.0


@dataclass(frozen=True)
class ExtractionResult:
    claims: tuple[Claim, ...]
    stats: ExtractionStats


class ClaimExtractor:
    """Scans candidate content into typed, located, scored claims."""

    def extract(self, content: str, target: str = "") -> list[Claim]:
        """Return claims ordered by (line, column, type), de-duplicated."""
        if not content:
            return []

        doc = _Document(content, target)
        raw: list[Claim] = []
        raw.extend(self._extract_api_endpoints(doc))
        raw.extend(self._extract_env_variables(doc))
        raw.extend(self._extract_imports(doc))
        raw.extend(self._extract_function_calls(doc))
        raw.extend(self._extract_type_references(doc))
        raw.extend(self._extract_file_references(doc))

        seen: set[tuple[str, str, int, int]] = set()
        claims: list[Claim] = []
        for claim in sorted(raw, key=_sort_key):
            loc = claim.location
            key = (
                claim.type.value,
                claim.value,
                loc.line if loc else 0,
                loc.column if loc else 0,
            )
            if key in seen:
                continue
            seen.add(key)
            claims.append(claim)

        logger.debug(
            "event=claims_extracted target=%s count=%d", target, len(claims)
        )
        return claims

    def extract_with_stats(
        self, content: str, target: str = ""
    ) -> ExtractionResult:
        claims = self.extract(content, target)
        counts = Counter(c.type for c in claims)
        avg = (
            sum(c.confidence for c in claims) / len(claims) if claims else 0.0
        )
        return ExtractionResult(
            claims=tuple(claims),
            stats=ExtractionStats(
                total_claims=len(claims),
                by_type={t: counts.get(t, 0) for t in ClaimType},
                avg_confidence=avg,
            ),
        )

    # ── Per-type extraction ──────────────────────────────

    def _extract_api_endpoints(self, doc: _Document) -> list[Claim]:
        claims: list[Claim] = []
        for m in _PATH_LITERAL_RE.finditer(doc.content):
            literal = m.group("value")
            if literal == "/" or literal.startswith("//"):
                continue
            has_template = bool(_TEMPLATE_PLACEHOLDER_RE.search(literal))
            value = normalize_path_literal(literal)
            if not value:
                continue
            confidence = (
                Confidence.TEMPLATE_LITERAL
                if has_template
                else Confidence.CODE_LITERAL
            )
            claims.append(
                doc.claim(
                    ClaimType.API_ENDPOINT,
                    value,
                    m.start("value"),
                    confidence=confidence,
                )
            )
        return claims

    def _extract_env_variables(self, doc: _Document) -> list[Claim]:
        claims: list[Claim] = []
        for pattern in _ENV_RES:
            for m in pattern.finditer(doc.content):
                claims.append(
                    doc.claim(ClaimType.ENV_VARIABLE, m.group(1), m.start())
                )
        return claims

    def _extract_imports(self, doc: _Document) -> list[Claim]:
        claims: list[Claim] = []
        for pattern in _IMPORT_RES:
            for m in pattern.finditer(doc.content):
                offset = m.start(1)
                for specifier in _split_specifiers(m.group(1)):
                    claims.append(
                        doc.claim(ClaimType.IMPORT, specifier, offset)
                    )
                    package = package_name(specifier)
                    if package:
                        claims.append(
                            doc.claim(
                                ClaimType.PACKAGE_DEPENDENCY, package, offset
                            )
                        )
        return claims

    def _extract_function_calls(self, doc: _Document) -> list[Claim]:
        claims: list[Claim] = []
        for m in _CALL_RE.finditer(doc.content):
            name = re.sub(r"\s+", "", m.group("name"))
            head = name.split(".", 1)[0]
            if head in _CALL_KEYWORDS:
                continue
            before = doc.content[max(0, m.start() - 12):m.start()]
            if _DEFINITION_PREFIX_RE.search(before):
                continue
            claims.append(
                doc.claim(ClaimType.FUNCTION_CALL, name, m.start("name"))
            )
        return claims

    def _extract_type_references(self, doc: _Document) -> list[Claim]:
        claims: list[Claim] = []
        for m in _TYPE_REF_RE.finditer(doc.content):
            name = m.group("name")
            if name in _BUILTIN_TYPES:
                continue
            claims.append(
                doc.claim(ClaimType.TYPE_REFERENCE, name, m.start("name"))
            )
        return claims

    def _extract_file_references(self, doc: _Document) -> list[Claim]:
        return [
            doc.claim(ClaimType.FILE_REFERENCE, m.group(1), m.start(1))
            for m in _FILE_REF_RE.finditer(doc.content)
        ]


# ── Helpers ──────────────────────────────────────────────


class _Document:
    """Content plus precomputed line offsets for locating matches."""

    def __init__(self, content: str, target: str) -> None:
        self.content = content
        self.target = target
        self.lines = content.split("\n")
        self._line_starts: list[int] = []
        offset = 0
        for line in self.lines:
            self._line_starts.append(offset)
            offset += len(line) + 1

    def position(self, index: int) -> tuple[int, int]:
        """Return (line, column), both 1-based, for a character offset."""
        lo, hi = 0, len(self._line_starts) - 1
        while lo < hi:
            mid = (lo + hi + 1) // 2
            if self._line_starts[mid] <= index:
                lo = mid
            else:
                hi = mid - 1
        return lo + 1, index - self._line_starts[lo] + 1

    def context(self, line: int) -> str:
        start = max(0, line - 1 - CONTEXT_RADIUS_LINES)
        end = min(len(self.lines), line + CONTEXT_RADIUS_LINES)
        snippet = "\n".join(self.lines[start:end])
        return snippet[:MAX_CONTEXT_CHARS]

    def in_comment(self, line: int, column: int) -> bool:
        text = self.lines[line - 1]
        if _LINE_COMMENT_RE.match(text):
            return True
        prefix = text[: column - 1]
        return "//" in prefix.replace("://", "") or " # " in prefix

    def claim(
        self,
        claim_type: ClaimType,
        value: str,
        index: int,
        *,
        confidence: float = Confidence.CODE_LITERAL,
    ) -> Claim:
        line, column = self.position(index)
        if self.in_comment(line, column):
            confidence = Confidence.COMMENT
        return Claim(
            id=claim_id(claim_type, self.target, line, column, value),
            type=claim_type,
            value=value,
            context=self.context(line),
            confidence=confidence,
            location=ClaimLocation(
                file=self.target,
                line=line,
                column=column,
                length=len(value),
            ),
        )


def claim_id(
    claim_type: ClaimType, file: str, line: int, column: int, value: str
) -> str:
    """Stable id: same inputs always yield the same id."""
    raw = f"{claim_type.value}|{file}|{line}|{column}|{value}"
    digest = hashlib.sha1(raw.encode("utf-8")).hexdigest()[:12]
    return f"claim-{claim_type.value}-{digest}"


def normalize_path_literal(literal: str) -> str:
    """Strip query/fragment and turn ``${x}`` placeholders into ``:param``."""
    if literal.startswith(("http://", "https://")):
        return literal.split("#", 1)[0]
    value = _TEMPLATE_PLACEHOLDER_RE.sub(":param", literal)
    value = value.split("?", 1)[0].split("#", 1)[0]
    if len(value) > 1:
        value = value.rstrip("/")
    return value


def package_name(specifier: str) -> str | None:
    """Return the installable package name, or None for relative imports.

    ``lodash/get`` → ``lodash``; ``@scope/pkg/sub`` → ``@scope/pkg``;
    ``node:fs`` → ``fs``; ``os.path`` (Python) → ``os``.
    """
    if not specifier or specifier.startswith((".", "/")):
        return None
    if specifier.startswith("node:"):
        specifier = specifier[len("node:"):]
    if specifier.startswith("@"):
        parts = specifier.split("/")
        return "/".join(parts[:2]) if len(parts) >= 2 else None
    head = specifier.split("/", 1)[0]
    if "/" not in specifier and "." in head and not head.endswith(".js"):
        head = head.split(".", 1)[0]
    return head or None


def _split_specifiers(group: str) -> list[str]:
    return [s.strip() for s in group.split(",") if s.strip()]


def _sort_key(claim: Claim) -> tuple[int, int, str, str]:
    loc = claim.location
    return (
        loc.line if loc else 0,
        loc.column if loc else 0,
        claim.type.value,
        claim.value,
    )
