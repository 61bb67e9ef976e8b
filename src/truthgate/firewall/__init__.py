"""Policy firewall for AI-generated code changes."""

from truthgate.firewall.claims import ClaimExtractor
from truthgate.firewall.evidence import EvidenceResolution, EvidenceResolver
from truthgate.firewall.intent import IntentValidator, ValidationRule
from truthgate.firewall.issues import Issue, violations_to_issues
from truthgate.firewall.missions import Mission, MissionCheck, MissionStore
from truthgate.firewall.models import (
    Claim,
    Evidence,
    FirewallRequest,
    FirewallResult,
    PolicyContext,
    PolicyViolation,
    QuickCheckResult,
)
from truthgate.firewall.orchestrator import Firewall, reduce_decision
from truthgate.firewall.policy import Policy, PolicyEngine
from truthgate.firewall.unblock import UnblockPlan, UnblockPlanner, UnblockStep

__all__ = [
    "Claim",
    "ClaimExtractor",
    "Evidence",
    "EvidenceResolution",
    "EvidenceResolver",
    "Firewall",
    "FirewallRequest",
    "FirewallResult",
    "IntentValidator",
    "Issue",
    "Mission",
    "MissionCheck",
    "MissionStore",
    "Policy",
    "PolicyContext",
    "PolicyEngine",
    "PolicyViolation",
    "QuickCheckResult",
    "UnblockPlan",
    "UnblockPlanner",
    "UnblockStep",
    "ValidationRule",
    "reduce_decision",
    "violations_to_issues",
]
