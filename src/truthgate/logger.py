"""Structured JSON audit logger for firewall decisions."""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from truthgate.constants import AUDIT_LOG_FILENAME, ERROR_TRUNCATION_CHARS
from truthgate.logging_config import LOG_DATEFMT, LOG_FORMAT

__all__ = ["AuditLogger", "LOG_FORMAT", "LOG_DATEFMT"]


class AuditLogger:
    """Append-only JSON-lines audit trail, one entry per evaluation."""

    def __init__(self, log_dir: Path, level: str = "INFO") -> None:
        self._log_dir = log_dir
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._path = log_dir / AUDIT_LOG_FILENAME
        self._logger = logging.getLogger(f"truthgate.audit.{log_dir}")
        self._logger.setLevel(getattr(logging, level.upper()))
        self._logger.propagate = False

        if not self._logger.handlers:
            handler = logging.FileHandler(self._path)
            handler.setFormatter(logging.Formatter("%(message)s"))
            self._logger.addHandler(handler)

    @property
    def path(self) -> Path:
        return self._path

    def log_decision(
        self,
        audit_id: str,
        agent_id: str,
        action: str,
        target: str,
        mode: str,
        decision: str,
        snapshot_id: str,
        claim_count: int,
        policies: list[str],
        duration_ms: float,
    ) -> None:
        self._logger.info(
            json.dumps({
                "type": "decision",
                "timestamp": datetime.now(UTC).isoformat(),
                "audit_id": audit_id,
                "agent_id": agent_id,
                "action": action,
                "target": target,
                "mode": mode,
                "decision": decision,
                "snapshot_id": snapshot_id,
                "claim_count": claim_count,
                "violation_count": len(policies),
                "policies": policies,
                "duration_ms": round(duration_ms, 2),
            })
        )

    def log_error(
        self,
        audit_id: str,
        component: str,
        error: str,
    ) -> None:
        self._logger.error(
            json.dumps({
                "type": "error",
                "timestamp": datetime.now(UTC).isoformat(),
                "audit_id": audit_id,
                "component": component,
                "error": error[:ERROR_TRUNCATION_CHARS],
            })
        )

    def read_entries(self, limit: int = 100) -> list[dict[str, object]]:
        """Return the last ``limit`` parseable entries, oldest first."""
        for handler in self._logger.handlers:
            handler.flush()
        if not self._path.is_file():
            return []
        lines = self._path.read_text(encoding="utf-8").splitlines()
        entries: list[dict[str, object]] = []
        for line in lines[-limit:]:
            try:
                entries.append(json.loads(line))
            except json.JSONDecodeError:
                continue
        return entries

    def close(self) -> None:
        for handler in list(self._logger.handlers):
            handler.close()
            self._logger.removeHandler(handler)
