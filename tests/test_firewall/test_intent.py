"""Tests for intent classification and validation."""

from __future__ import annotations

import pytest

from tests.conftest import make_request
from truthgate.constants import Confidence, IntentScope, IntentType
from truthgate.firewall.intent import (
    IntentValidator,
    ValidationRule,
    classify_action,
    infer_scope,
)
from truthgate.firewall.missions import MissionStore
from truthgate.firewall.models import FirewallRequest


@pytest.mark.parametrize(
    ("action", "expected", "known"),
    [
        ("write", IntentType.CREATE, True),
        ("Edit", IntentType.MODIFY, True),
        ("remove", IntentType.DELETE, True),
        ("refactor", IntentType.REFACTOR, True),
        ("teleport", IntentType.MODIFY, False),
    ],
)
def test_classify_action(action: str, expected: IntentType, known: bool) -> None:
    assert classify_action(action) == (expected, known)


@pytest.mark.parametrize(
    ("target", "expected"),
    [
        ("src/app.ts", IntentScope.FILE),
        ("pkg/models.py", IntentScope.FILE),
        ("package.json", IntentScope.PROJECT),
        ("config/tsconfig.base.json", IntentScope.PROJECT),
        (".env.local", IntentScope.PROJECT),
        ("src/components", IntentScope.MODULE),
        ("", IntentScope.MODULE),
    ],
)
def test_infer_scope(target: str, expected: IntentScope) -> None:
    assert infer_scope(target) == expected


class TestValidate:
    def test_known_action_is_valid(self) -> None:
        result = IntentValidator().validate(make_request("x", action="edit"))
        assert result.valid
        assert result.intent.type == IntentType.MODIFY
        assert result.intent.scope == IntentScope.FILE
        assert result.intent.confidence == Confidence.INTENT_KNOWN_ACTION
        assert result.warnings == ()

    def test_unknown_action_warns(self) -> None:
        result = IntentValidator().validate(make_request("x", action="teleport"))
        assert not result.valid
        assert "Unknown action 'teleport'" in result.warnings[0]
        assert result.intent.confidence == Confidence.INTENT_UNKNOWN_ACTION

    def test_missing_target_warns(self) -> None:
        result = IntentValidator().validate(make_request("x", target=""))
        assert not result.valid
        assert "Request has no target path" in result.warnings
        assert "Intent confidence is too low to act on" in result.warnings

    def test_from_payload_tolerates_bad_fields(self) -> None:
        request = FirewallRequest.from_payload(
            {"action": None, "path": "src/a.ts", "content": 42, "context": "x"}
        )
        result = IntentValidator().validate(request)
        assert request.target == "src/a.ts"
        assert request.content == "42"
        assert dict(request.context) == {}
        assert result.intent.target == "src/a.ts"

    def test_declared_scope_narrower_than_target(self) -> None:
        request = make_request(
            "x", target="package.json", context={"scope": "file"}
        )
        result = IntentValidator().validate(request)
        assert not result.valid
        assert result.mission_drift
        assert "project scope" in result.mission_drift[0]
        assert result.suggestions

    def test_custom_rule(self) -> None:
        validator = IntentValidator()
        validator.add_rule(
            ValidationRule(
                name="no-deletes",
                check=lambda intent: intent.type != IntentType.DELETE,
                message="Deletes are not allowed",
            )
        )
        result = validator.validate(make_request("x", action="delete"))
        assert result.warnings == ("Deletes are not allowed",)
        assert len(validator.rules) == 4

    def test_raising_rule_counts_as_failure(self) -> None:
        def boom(_intent: object) -> bool:
            raise RuntimeError("bad rule")

        validator = IntentValidator(
            rules=[ValidationRule(name="boom", check=boom, message="Rule failed")]
        )
        result = validator.validate(make_request("x"))
        assert result.warnings == ("Rule failed",)


class TestMissionDrift:
    def test_outside_mission_paths(self) -> None:
        missions = MissionStore()
        missions.declare("docs pass", allowed_paths=["docs/**"])
        result = IntentValidator(missions=missions).validate(
            make_request("x", target="src/app.ts")
        )
        assert not result.valid
        assert any("outside the mission" in r for r in result.mission_drift)

    def test_within_mission_is_valid(self) -> None:
        missions = MissionStore()
        missions.declare("app work", allowed_paths=["src/**"])
        result = IntentValidator(missions=missions).validate(
            make_request("x", target="src/app.ts")
        )
        assert result.valid
        assert result.mission_drift == ()
