"""Session-scoped mission store.

A mission is a goal an agent or user declares up front ("refactor the
billing module"). Subsequent requests in the same session are checked
against it so the firewall can flag intent drift. The store is the
only mutable component of the firewall; every method takes the
internal lock, so one instance can be shared by concurrent
evaluations.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta

import pathspec

from truthgate.constants import (
    ACTION_TYPES,
    MISSION_DEFAULT_ALLOWED_ACTIONS,
    MISSION_DEFAULT_ALLOWED_PATHS,
    MISSION_MAX_HISTORY,
    IntentScope,
    MissionStatus,
)

logger = logging.getLogger(__name__)

type Clock = Callable[[], datetime]


@dataclass(frozen=True)
class DriftEvent:
    target: str
    reasons: tuple[str, ...]
    recorded_at: datetime


@dataclass(frozen=True)
class Mission:
    id: str
    description: str
    scope: IntentScope
    status: MissionStatus
    created_at: datetime
    expires_at: datetime | None = None
    allowed_paths: tuple[str, ...] = MISSION_DEFAULT_ALLOWED_PATHS
    allowed_actions: tuple[str, ...] = MISSION_DEFAULT_ALLOWED_ACTIONS
    excluded_paths: tuple[str, ...] = ()
    drift_events: tuple[DriftEvent, ...] = ()

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at


@dataclass(frozen=True)
class MissionCheck:
    """Whether an (action, target) pair fits the active mission."""

    allowed: bool
    mission: Mission | None
    reasons: tuple[str, ...] = ()


class MissionStore:
    """Holds at most one active mission plus a bounded history."""

    def __init__(
        self,
        clock: Clock | None = None,
        max_history: int = MISSION_MAX_HISTORY,
    ) -> None:
        self._clock: Clock = clock or (lambda: datetime.now(UTC))
        self._max_history = max_history
        self._lock = threading.Lock()
        self._active: Mission | None = None
        self._history: list[Mission] = []

    def declare(
        self,
        description: str,
        *,
        scope: IntentScope = IntentScope.MODULE,
        allowed_paths: Iterable[str] = MISSION_DEFAULT_ALLOWED_PATHS,
        allowed_actions: Iterable[str] = MISSION_DEFAULT_ALLOWED_ACTIONS,
        excluded_paths: Iterable[str] = (),
        expires_in: timedelta | None = None,
    ) -> Mission:
        """Declare a new mission, archiving the current one as completed."""
        description = description.strip()
        if not description:
            msg = "Mission description must not be empty"
            raise ValueError(msg)

        now = self._clock()
        mission = Mission(
            id=f"mission-{uuid.uuid4().hex[:12]}",
            description=description,
            scope=IntentScope(scope),
            status=MissionStatus.ACTIVE,
            created_at=now,
            expires_at=now + expires_in if expires_in is not None else None,
            allowed_paths=tuple(allowed_paths),
            allowed_actions=tuple(a.lower() for a in allowed_actions),
            excluded_paths=tuple(excluded_paths),
        )
        with self._lock:
            if self._active is not None:
                self._archive(replace(self._active, status=MissionStatus.COMPLETED))
            self._active = mission
        logger.info(
            "event=mission_declared mission_id=%s scope=%s",
            mission.id,
            mission.scope.value,
        )
        return mission

    def current(self) -> Mission | None:
        with self._lock:
            return self._current_locked()

    def check(self, action: str, target: str) -> MissionCheck:
        """Compare a request against the active mission.

        With no active mission every request is allowed. Otherwise the
        action must be permitted, and the target must match
        ``allowed_paths`` and none of ``excluded_paths``.
        """
        with self._lock:
            mission = self._current_locked()
        if mission is None:
            return MissionCheck(allowed=True, mission=None)

        reasons: list[str] = []
        normalized = action.strip().lower()
        intent_type = ACTION_TYPES.get(normalized)
        accepted = {normalized}
        if intent_type is not None:
            accepted.add(intent_type.value)
        if normalized and not accepted & set(mission.allowed_actions):
            reasons.append(
                f"Action '{action}' is not allowed by mission "
                f"'{mission.description}' "
                f"(allowed: {', '.join(mission.allowed_actions)})"
            )

        path = _relative(target)
        if path:
            if not _spec(mission.allowed_paths).match_file(path):
                reasons.append(
                    f"Target '{target}' is outside the mission's allowed paths"
                )
            if mission.excluded_paths and _spec(
                mission.excluded_paths
            ).match_file(path):
                reasons.append(
                    f"Target '{target}' is excluded by the mission"
                )

        return MissionCheck(
            allowed=not reasons, mission=mission, reasons=tuple(reasons)
        )

    def record_drift(
        self, mission_id: str, reasons: Iterable[str], target: str
    ) -> None:
        """Attach a drift event to the active mission, if it still matches."""
        event = DriftEvent(
            target=target, reasons=tuple(reasons), recorded_at=self._clock()
        )
        with self._lock:
            if self._active is None or self._active.id != mission_id:
                return
            self._active = replace(
                self._active,
                drift_events=(*self._active.drift_events, event),
            )
        logger.info(
            "event=mission_drift mission_id=%s target=%s", mission_id, target
        )

    def expire(self, mission_id: str | None = None) -> bool:
        """Cancel the active mission. Returns False if nothing matched."""
        with self._lock:
            active = self._current_locked()
            if active is None:
                return False
            if mission_id is not None and active.id != mission_id:
                return False
            self._archive(replace(active, status=MissionStatus.CANCELLED))
            self._active = None
        logger.info("event=mission_expired mission_id=%s", active.id)
        return True

    def reset(self) -> None:
        """Drop the active mission and all history."""
        with self._lock:
            self._active = None
            self._history.clear()

    def history(self, limit: int = 10) -> list[Mission]:
        """Archived missions, most recent first."""
        with self._lock:
            return list(reversed(self._history))[:limit]

    # ── Internals (lock held) ────────────────────────────

    def _current_locked(self) -> Mission | None:
        if self._active is not None and self._active.is_expired(self._clock()):
            self._archive(replace(self._active, status=MissionStatus.EXPIRED))
            self._active = None
        return self._active

    def _archive(self, mission: Mission) -> None:
        self._history.append(mission)
        if len(self._history) > self._max_history:
            del self._history[: len(self._history) - self._max_history]


def _spec(patterns: tuple[str, ...]) -> pathspec.GitIgnoreSpec:
    return pathspec.GitIgnoreSpec.from_lines(patterns)


def _relative(target: str) -> str:
    path = target.strip().replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path.lstrip("/")
