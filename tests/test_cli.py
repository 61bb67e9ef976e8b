"""Tests for the truthgate CLI."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from truthgate.cli import EXIT_BLOCKED, EXIT_USAGE, _build_parser, main


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep any local .env out of Settings."""
    monkeypatch.chdir(tmp_path)


def _write_change(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "change.ts"
    path.write_text(content)
    return path


def _check_args(
    change: Path, truthpack_dir: Path, *extra: str
) -> list[str]:
    return [
        "check",
        str(change),
        "--target",
        "src/app.ts",
        "--truthpack",
        str(truthpack_dir),
        *extra,
    ]


class TestArgParser:
    def test_version_flag(self) -> None:
        args = _build_parser().parse_args(["--version"])
        assert args.version is True

    def test_check_defaults(self) -> None:
        args = _build_parser().parse_args(["check", "change.ts"])
        assert args.command == "check"
        assert args.file == "change.ts"
        assert args.action == "modify"
        assert args.target is None
        assert args.mode is None
        assert args.json is False

    def test_rejects_unknown_mode(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["check", "x.ts", "--mode", "lockdown"])


class TestMain:
    def test_version_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["--version"])
        assert capsys.readouterr().out.strip() == "truthgate 0.1.0"

    def test_missing_file_is_usage_error(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["check", str(tmp_path / "absent.ts")])
        assert exc_info.value.code == EXIT_USAGE
        assert "does not exist" in capsys.readouterr().err

    def test_missing_truthpack_is_usage_error(self, tmp_path: Path) -> None:
        change = _write_change(tmp_path, "const a = 1;")
        with pytest.raises(SystemExit) as exc_info:
            main(_check_args(change, tmp_path / "no-truthpack"))
        assert exc_info.value.code == EXIT_USAGE

    def test_ghost_route_blocks(
        self,
        tmp_path: Path,
        truthpack_dir: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        change = _write_change(tmp_path, "fetch('/api/admin/reports')")
        with pytest.raises(SystemExit) as exc_info:
            main(_check_args(change, truthpack_dir))
        assert exc_info.value.code == EXIT_BLOCKED
        out = capsys.readouterr().out
        assert "ghost-route" in out
        assert "Decision: BLOCK" in out

    def test_observe_mode_never_exits_nonzero(
        self,
        tmp_path: Path,
        truthpack_dir: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        change = _write_change(tmp_path, "fetch('/api/admin/reports')")
        main(_check_args(change, truthpack_dir, "--mode", "observe"))
        assert "Decision: ALLOW (mode=observe" in capsys.readouterr().out

    def test_json_output(
        self,
        tmp_path: Path,
        truthpack_dir: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        change = _write_change(tmp_path, "fetch('/api/admin/reports')")
        main(_check_args(change, truthpack_dir, "--mode", "observe", "--json"))
        payload = json.loads(capsys.readouterr().out)
        assert payload["decision"] == "allow"
        assert payload["would_block"] is True
        assert payload["violations"][0]["policy"] == "ghost-route"
        assert payload["unblock_plan"]["steps"]

    def test_bad_rules_file_is_usage_error(
        self, tmp_path: Path, truthpack_dir: Path
    ) -> None:
        change = _write_change(tmp_path, "const a = 1;")
        rules = tmp_path / "rules.yaml"
        rules.write_text("rules:\n  ghost-db: {}\n")
        with pytest.raises(SystemExit) as exc_info:
            main(_check_args(change, truthpack_dir, "--rules", str(rules)))
        assert exc_info.value.code == EXIT_USAGE


def test_log_level_setting_applies_to_root_logger(
    tmp_path: Path,
    truthpack_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    root = logging.getLogger()
    monkeypatch.setattr(root, "level", root.level)
    monkeypatch.setenv("TRUTHGATE_LOG_LEVEL", "debug")
    change = _write_change(tmp_path, "const a = 1;")
    main(_check_args(change, truthpack_dir))
    assert root.level == logging.DEBUG
