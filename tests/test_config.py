"""Tests for Settings validators and environment loading."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from truthgate.config import Settings
from truthgate.constants import (
    DEFAULT_EVIDENCE_TIMEOUT_SECONDS,
    DEFAULT_MAX_CONTENT_CHARS,
    FirewallMode,
)


class TestDefaults:
    def test_defaults(self) -> None:
        s = Settings(_env_file=None)
        assert s.truthpack_dir == Path(".truthpack")
        assert s.mode == FirewallMode.ENFORCE
        assert s.rules_file is None
        assert s.max_content_chars == DEFAULT_MAX_CONTENT_CHARS
        assert s.evidence_timeout_seconds == DEFAULT_EVIDENCE_TIMEOUT_SECONDS
        assert s.evidence_fail_open is False
        assert s.log_level == "INFO"
        assert s.audit_log_dir is None


class TestMode:
    @pytest.mark.parametrize("raw", ["observe", "OBSERVE", "  Observe "])
    def test_mode_normalized(self, raw: str) -> None:
        s = Settings(_env_file=None, mode=raw)  # type: ignore[arg-type]
        assert s.mode == FirewallMode.OBSERVE

    def test_unknown_mode_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, mode="lockdown")  # type: ignore[arg-type]


class TestLogLevel:
    def test_log_level_uppercased(self) -> None:
        s = Settings(_env_file=None, log_level="debug")
        assert s.log_level == "DEBUG"

    def test_invalid_log_level_raises(self) -> None:
        with pytest.raises(ValidationError, match="log_level must be one of"):
            Settings(_env_file=None, log_level="chatty")


class TestNumericBounds:
    @pytest.mark.parametrize("value", [0, -1.5])
    def test_timeout_must_be_positive(self, value: float) -> None:
        with pytest.raises(ValidationError, match="must be positive"):
            Settings(_env_file=None, evidence_timeout_seconds=value)

    def test_long_timeout_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        """Timeouts above a minute are allowed but logged."""
        with caplog.at_level(logging.WARNING, logger="truthgate.config"):
            s = Settings(_env_file=None, evidence_timeout_seconds=120)
        assert s.evidence_timeout_seconds == 120
        assert "long_evidence_timeout" in caplog.text

    def test_max_content_chars_at_least_one(self) -> None:
        with pytest.raises(ValidationError, match="at least 1"):
            Settings(_env_file=None, max_content_chars=0)

    def test_retry_attempts_at_least_one(self) -> None:
        with pytest.raises(ValidationError, match="at least 1"):
            Settings(_env_file=None, store_retry_attempts=0)


class TestEnvironment:
    def test_reads_prefixed_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TRUTHGATE_MODE", "OBSERVE")
        monkeypatch.setenv("TRUTHGATE_TRUTHPACK_DIR", "/srv/app/.truthpack")
        monkeypatch.setenv("TRUTHGATE_EVIDENCE_FAIL_OPEN", "true")
        s = Settings(_env_file=None)
        assert s.mode == FirewallMode.OBSERVE
        assert s.truthpack_dir == Path("/srv/app/.truthpack")
        assert s.evidence_fail_open is True

    def test_unprefixed_env_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MODE", "observe")
        assert Settings(_env_file=None).mode == FirewallMode.ENFORCE

    def test_reads_env_file(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("TRUTHGATE_MAX_CONTENT_CHARS=4096\n")
        s = Settings(_env_file=env_file)  # type: ignore[call-arg]
        assert s.max_content_chars == 4096
