"""Flag API usage that disagrees with the recorded API contracts."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from truthgate.constants import ClaimType, RuleName, Severity
from truthgate.firewall.models import Claim, PolicyContext, PolicyViolation
from truthgate.firewall.rules.base import BaseRule, RuleConfig

_HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")

# method: "POST" / .post( / axios.put( / requests.delete(
_METHOD_USAGE_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"""method\s*[:=]\s*['"](\w+)['"]""", re.IGNORECASE),
    re.compile(r"\.(get|post|put|patch|delete)\s*\(", re.IGNORECASE),
)

_BODY_RE = re.compile(r"\b(?:body|json|data)\s*[:=]")


@dataclass(frozen=True)
class ContractDriftConfig(RuleConfig):
    severity: Severity = Severity.WARNING
    check_requests: bool = True
    check_types: bool = True
    # Type names treated as API contract types (regex, matched with search)
    contract_type_patterns: tuple[str, ...] = (
        r"Request$",
        r"Response$",
        r"Params$",
        r"Query$",
        r"Body$",
        r"Schema$",
        r"Dto$",
        r"Input$",
        r"Output$",
    )


class ContractDriftRule(BaseRule[ContractDriftConfig]):
    name = RuleName.CONTRACT_DRIFT
    description = "Detect API contract violations and schema mismatches"
    config_type = ContractDriftConfig

    def __init__(self, config: ContractDriftConfig | None = None) -> None:
        super().__init__(config)
        self._type_patterns = tuple(
            re.compile(p) for p in self.config.contract_type_patterns
        )

    def evaluate(self, context: PolicyContext) -> PolicyViolation | None:
        if self.config.check_requests:
            for claim in context.claims_of(ClaimType.API_ENDPOINT):
                evidence = context.evidence_for(claim)
                if evidence is None or not evidence.found:
                    continue
                contract = evidence.details.get("contract")
                if isinstance(contract, dict):
                    violation = self._check_contract(claim, contract)
                    if violation is not None:
                        return violation

        if self.config.check_types:
            for claim in context.claims_of(ClaimType.TYPE_REFERENCE):
                if self._is_contract_type(claim.value) and not context.is_verified(
                    claim
                ):
                    return self.create_violation(
                        f'CONTRACT DRIFT: API type "{claim.value}" not found in contracts',
                        claim,
                        "Ensure API types match the types defined in the "
                        "contracts truthpack",
                    )
        return None

    def _check_contract(
        self, claim: Claim, contract: dict[str, Any]
    ) -> PolicyViolation | None:
        expected = str(contract.get("method") or "").upper()
        if expected in _HTTP_METHODS:
            used = _methods_used(claim.context)
            wrong = sorted(m for m in used if m != expected)
            if wrong:
                return self.create_violation(
                    f'CONTRACT DRIFT: Endpoint "{claim.value}" expects '
                    f"{expected} but is called with {', '.join(wrong)}",
                    claim,
                    f"Use {expected} for this endpoint or update the API contract",
                )

        request = contract.get("request")
        if (
            isinstance(request, dict)
            and not request.get("body")
            and _BODY_RE.search(claim.context)
        ):
            return self.create_violation(
                f'CONTRACT DRIFT: Endpoint "{claim.value}" does not expect a request body',
                claim,
                "Remove the request body or update the API contract",
            )
        return None

    def _is_contract_type(self, name: str) -> bool:
        return any(p.search(name) for p in self._type_patterns)


def _methods_used(text: str) -> set[str]:
    used: set[str] = set()
    for pattern in _METHOD_USAGE_RES:
        for match in pattern.finditer(text):
            method = match.group(1).upper()
            if method in _HTTP_METHODS:
                used.add(method)
    return used
