"""Environment-based configuration."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

from truthgate.constants import (
    DEFAULT_EVIDENCE_TIMEOUT_SECONDS,
    DEFAULT_MAX_CONTENT_CHARS,
    STORE_RETRY_ATTEMPTS,
    FirewallMode,
)

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Reads from .env file and TRUTHGATE_* environment variables."""

    # Truthpack
    truthpack_dir: Path = Path(".truthpack")

    # Firewall
    mode: FirewallMode = FirewallMode.ENFORCE
    rules_file: Path | None = None
    max_content_chars: int = DEFAULT_MAX_CONTENT_CHARS

    # Evidence resolution
    evidence_timeout_seconds: float = DEFAULT_EVIDENCE_TIMEOUT_SECONDS
    evidence_fail_open: bool = False
    store_retry_attempts: int = STORE_RETRY_ATTEMPTS

    # Logging
    log_level: str = "INFO"
    audit_log_dir: Path | None = None

    @field_validator("mode", mode="before")
    @classmethod
    def _normalize_mode(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(_LOG_LEVELS)}"
            )
        return level

    @field_validator("evidence_timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("evidence_timeout_seconds must be positive")
        if v > 60:
            logger.warning(
                "event=long_evidence_timeout timeout_s=%.1f", v
            )
        return v

    @field_validator("max_content_chars", "store_retry_attempts")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be at least 1")
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "TRUTHGATE_",
        "extra": "ignore",
    }
