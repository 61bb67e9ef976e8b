"""Firewall orchestrator: intent → claims → evidence → policies → decision.

One ``Firewall`` serves many concurrent evaluations. Each evaluation
pins the snapshot id it was checked against. The only shared mutable
collaborator is the injected MissionStore, and it is written to only
after the last stage, so a cancelled evaluation leaves no trace.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
import uuid
from collections.abc import Awaitable, Callable, Sequence

from truthgate.config import Settings
from truthgate.constants import (
    QUICK_CHECK_RULES,
    Decision,
    FirewallMode,
    Severity,
)
from truthgate.exceptions import (
    ConfigurationError,
    EvaluationCancelledError,
    FirewallBlockedError,
)
from truthgate.firewall.claims import ClaimExtractor
from truthgate.firewall.evidence import EvidenceResolver
from truthgate.firewall.intent import IntentValidator
from truthgate.firewall.missions import MissionStore
from truthgate.firewall.models import (
    FirewallRequest,
    FirewallResult,
    IntentValidation,
    PolicyContext,
    PolicyViolation,
    QuickCheckResult,
)
from truthgate.firewall.policy import PolicyEngine
from truthgate.firewall.rules import RuleSetConfig, build_policies
from truthgate.firewall.rules.loader import load_rule_config
from truthgate.firewall.unblock import UnblockPlanner
from truthgate.logger import AuditLogger
from truthgate.truthpack.store import FileTruthpackStore, TruthpackStore

logger = logging.getLogger(__name__)


def reduce_decision(
    violations: Sequence[PolicyViolation], mode: FirewallMode
) -> Decision:
    """Any error blocks, else any warning warns. Observe mode always allows."""
    if mode == FirewallMode.OBSERVE:
        return Decision.ALLOW
    severities = {v.severity for v in violations}
    if Severity.ERROR in severities:
        return Decision.BLOCK
    if Severity.WARNING in severities:
        return Decision.WARN
    return Decision.ALLOW


class Firewall:
    def __init__(
        self,
        store: TruthpackStore | None,
        *,
        settings: Settings | None = None,
        rule_config: RuleSetConfig | None = None,
        missions: MissionStore | None = None,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        if store is None:
            msg = "Firewall requires a truthpack store"
            raise ConfigurationError(msg)
        self._settings = settings or Settings()
        if rule_config is None and self._settings.rules_file is not None:
            rule_config = load_rule_config(self._settings.rules_file)
        if audit_logger is None and self._settings.audit_log_dir is not None:
            audit_logger = AuditLogger(
                self._settings.audit_log_dir, level=self._settings.log_level
            )

        self._store = store
        self._missions = missions
        self._audit = audit_logger
        self._validator = IntentValidator(missions=missions)
        self._extractor = ClaimExtractor()
        self._resolver = EvidenceResolver(
            store,
            timeout_seconds=self._settings.evidence_timeout_seconds,
            fail_open=self._settings.evidence_fail_open,
        )
        self._engine = PolicyEngine(build_policies(rule_config))
        self._quick_engine = PolicyEngine(
            build_policies(rule_config, only=QUICK_CHECK_RULES)
        )
        self._planner = UnblockPlanner()

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        missions: MissionStore | None = None,
    ) -> Firewall:
        """Build a firewall over the on-disk truthpack named in settings."""
        settings = settings or Settings()
        store = FileTruthpackStore(
            settings.truthpack_dir,
            retry_attempts=settings.store_retry_attempts,
        )
        return cls(store, settings=settings, missions=missions)

    @property
    def mode(self) -> FirewallMode:
        return self._settings.mode

    @property
    def policy_names(self) -> tuple[str, ...]:
        return self._engine.names

    @property
    def missions(self) -> MissionStore | None:
        return self._missions

    @property
    def engine(self) -> PolicyEngine:
        return self._engine

    async def evaluate(
        self,
        request: FirewallRequest,
        *,
        mode: FirewallMode | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> FirewallResult:
        """Run the full pipeline for one request.

        Raises EvaluationCancelledError if ``cancel_event`` is set at
        any stage boundary.
        """
        mode = FirewallMode(mode or self._settings.mode)
        audit_id = f"fw-{uuid.uuid4().hex[:16]}"
        start = time.monotonic()

        _checkpoint(cancel_event, "intent")
        intent = self._validator.validate(request)
        content = request.content
        if len(content) > self._settings.max_content_chars:
            content = content[: self._settings.max_content_chars]
            intent = dataclasses.replace(
                intent,
                warnings=(
                    *intent.warnings,
                    f"Content truncated to {self._settings.max_content_chars} characters",
                ),
            )

        _checkpoint(cancel_event, "claims")
        claims = self._extractor.extract(content, request.target)

        _checkpoint(cancel_event, "evidence")
        resolution = await self._resolver.resolve_all(claims)

        _checkpoint(cancel_event, "policy")
        context = PolicyContext(
            claims=tuple(claims),
            evidence=resolution.evidence,
            intent=intent,
            target=request.target,
        )
        violations = tuple(self._engine.evaluate(context))

        _checkpoint(cancel_event, "unblock")
        plan = self._planner.plan(violations) if violations else None

        decision = reduce_decision(violations, mode)
        duration_ms = (time.monotonic() - start) * 1000
        result = FirewallResult(
            decision=decision,
            violations=violations,
            intent=intent,
            mode=mode,
            snapshot_id=resolution.snapshot_id,
            audit_id=audit_id,
            claims=tuple(claims),
            evidence=resolution.evidence,
            unblock_plan=plan,
            evidence_degraded=resolution.degraded,
            duration_ms=duration_ms,
        )

        _checkpoint(cancel_event, "commit")
        self._commit(request, result, intent)
        logger.info(
            "event=firewall_decision audit_id=%s target=%s mode=%s decision=%s "
            "violations=%d claims=%d snapshot_id=%s duration_ms=%.1f",
            audit_id,
            request.target,
            mode.value,
            decision.value,
            len(violations),
            len(claims),
            resolution.snapshot_id,
            duration_ms,
        )
        return result

    async def quick_check(
        self,
        content: str,
        target: str = "",
        *,
        mode: FirewallMode | None = None,
    ) -> QuickCheckResult:
        """Extraction, resolution and the blocking rule subset only."""
        mode = FirewallMode(mode or self._settings.mode)
        start = time.monotonic()
        content = content[: self._settings.max_content_chars]
        claims = self._extractor.extract(content, target)
        resolution = await self._resolver.resolve_all(claims)
        context = PolicyContext(
            claims=tuple(claims), evidence=resolution.evidence, target=target
        )
        violations = self._quick_engine.evaluate(context)
        blocking = next(
            (v for v in violations if v.severity == Severity.ERROR), None
        )
        return QuickCheckResult(
            safe=blocking is None or mode == FirewallMode.OBSERVE,
            violation=blocking,
            claims_checked=len(claims),
            snapshot_id=resolution.snapshot_id,
            duration_ms=(time.monotonic() - start) * 1000,
        )

    async def guard[T](
        self,
        request: FirewallRequest,
        call: Callable[[], Awaitable[T]],
        *,
        mode: FirewallMode | None = None,
    ) -> T:
        """Run ``call`` only if the firewall does not block ``request``."""
        result = await self.evaluate(request, mode=mode)
        if result.decision == Decision.BLOCK:
            raise FirewallBlockedError(result)
        return await call()

    def _commit(
        self,
        request: FirewallRequest,
        result: FirewallResult,
        intent: IntentValidation,
    ) -> None:
        if self._missions is not None and intent.mission_drift:
            mission = self._missions.current()
            if mission is not None:
                self._missions.record_drift(
                    mission.id, intent.mission_drift, request.target
                )
        if self._audit is not None:
            self._audit.log_decision(
                audit_id=result.audit_id,
                agent_id=request.agent_id,
                action=request.action,
                target=request.target,
                mode=result.mode.value,
                decision=result.decision.value,
                snapshot_id=result.snapshot_id,
                claim_count=len(result.claims),
                policies=[v.policy for v in result.violations],
                duration_ms=result.duration_ms,
            )
            if result.evidence_degraded:
                self._audit.log_error(
                    audit_id=result.audit_id,
                    component="evidence",
                    error="Truthpack unavailable; claims resolved fail-closed",
                )


def _checkpoint(cancel_event: asyncio.Event | None, stage: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        logger.info("event=evaluation_cancelled stage=%s", stage)
        raise EvaluationCancelledError(stage)
