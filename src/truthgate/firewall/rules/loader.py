"""Load rule-set overrides from a YAML file.

Example::

    order: [ghost-route, ghost-env, unsafe-side-effect]
    rules:
      ghost-route:
        api_prefixes: ["/api/"]
      ghost-env:
        additional_allowed: ["VERCEL_*"]
      scope-explosion:
        enabled: false

Keys mirror the fields of each rule's config dataclass. Unknown rules
or fields are rejected with ``ValueError``.
"""

from __future__ import annotations

import dataclasses
import re
from pathlib import Path
from typing import Any

import yaml

from truthgate.constants import RuleName, Severity
from truthgate.firewall.rules import RULE_TYPES, RuleSetConfig
from truthgate.firewall.rules.base import RuleConfig
from truthgate.firewall.rules.unsafe_side_effect import DangerousPattern

_TOP_LEVEL_KEYS = frozenset({"order", "rules"})


def load_rule_config(path: Path) -> RuleSetConfig:
    """Read a YAML rules file into a RuleSetConfig.

    Raises ``FileNotFoundError`` if the file doesn't exist and
    ``ValueError`` for unknown rules, unknown fields or bad values.
    """
    if not path.exists():
        msg = f"Rules file not found: {path}"
        raise FileNotFoundError(msg)
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return parse_rule_config(raw, source=str(path))


def parse_rule_config(raw: Any, *, source: str = "<rules>") -> RuleSetConfig:
    if not isinstance(raw, dict):
        msg = f"Rules file {source} must contain a mapping"
        raise ValueError(msg)
    unknown = set(raw) - _TOP_LEVEL_KEYS
    if unknown:
        msg = f"Unknown keys in {source}: {sorted(unknown)}"
        raise ValueError(msg)

    order = RuleSetConfig().order
    if "order" in raw:
        order = tuple(_rule_name(n, source) for n in raw["order"] or [])

    configs: dict[RuleName, RuleConfig] = {}
    for name_raw, overrides in (raw.get("rules") or {}).items():
        name = _rule_name(name_raw, source)
        configs[name] = _build_config(name, overrides or {}, source)

    return RuleSetConfig(order=order, configs=configs)


def _rule_name(value: object, source: str) -> RuleName:
    try:
        return RuleName(str(value))
    except ValueError:
        valid = ", ".join(r.value for r in RuleName)
        msg = f"Unknown rule '{value}' in {source}. Must be one of: {valid}"
        raise ValueError(msg) from None


def _build_config(
    name: RuleName, overrides: dict[str, Any], source: str
) -> RuleConfig:
    config_type = RULE_TYPES[name].config_type
    known = {f.name for f in dataclasses.fields(config_type)}
    unknown = set(overrides) - known
    if unknown:
        msg = (
            f"Unknown fields for rule '{name}' in {source}: {sorted(unknown)}. "
            f"Must be among: {sorted(known)}"
        )
        raise ValueError(msg)

    values: dict[str, Any] = {}
    for key, value in overrides.items():
        values[key] = _coerce(key, value, name, source)
    return dataclasses.replace(config_type(), **values)


def _coerce(key: str, value: Any, name: RuleName, source: str) -> Any:
    if key == "severity":
        try:
            return Severity(str(value).lower())
        except ValueError:
            msg = f"Invalid severity '{value}' for rule '{name}' in {source}"
            raise ValueError(msg) from None
    if key == "dangerous_patterns":
        return tuple(_dangerous_pattern(item, name, source) for item in value or [])
    if isinstance(value, list):
        return tuple(str(v) for v in value)
    return value


def _dangerous_pattern(item: Any, name: RuleName, source: str) -> DangerousPattern:
    if not isinstance(item, dict) or "pattern" not in item:
        msg = f"Each dangerous pattern for '{name}' in {source} needs a 'pattern'"
        raise ValueError(msg)
    try:
        spec = DangerousPattern(
            pattern=str(item["pattern"]),
            description=str(item.get("description", item["pattern"])),
            severity=Severity(str(item.get("severity", "error")).lower()),
            kind=str(item.get("kind", "")),
            ignore_case=bool(item.get("ignore_case", False)),
            multiline=bool(item.get("multiline", False)),
        )
        spec.compile()
    except (ValueError, re.error):
        msg = f"Invalid dangerous pattern for '{name}' in {source}: {item!r}"
        raise ValueError(msg) from None
    return spec
