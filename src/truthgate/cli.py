"""CLI entry point: ``truthgate check``."""

from __future__ import annotations

from truthgate.logging_config import setup_logging

setup_logging()

import argparse  # noqa: E402
import asyncio  # noqa: E402
import json  # noqa: E402
import logging  # noqa: E402
import sys  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import Any  # noqa: E402

from pydantic import ValidationError  # noqa: E402

from truthgate import __version__  # noqa: E402
from truthgate.config import Settings  # noqa: E402
from truthgate.constants import Decision, FirewallMode  # noqa: E402
from truthgate.exceptions import ConfigurationError  # noqa: E402
from truthgate.firewall.models import FirewallRequest, FirewallResult  # noqa: E402
from truthgate.firewall.orchestrator import Firewall  # noqa: E402
from truthgate.firewall.rules.loader import load_rule_config  # noqa: E402
from truthgate.truthpack.store import FileTruthpackStore  # noqa: E402

EXIT_BLOCKED = 1
EXIT_USAGE = 2


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"truthgate {__version__}")
        return

    if args.command == "check":
        _run_check(args)
    else:
        parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="truthgate",
        description=(
            "Policy firewall for AI-generated code changes: verifies "
            "claims in candidate code against a project truthpack."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )

    sub = parser.add_subparsers(dest="command")

    check = sub.add_parser(
        "check",
        help="Evaluate a file as a proposed change",
    )
    check.add_argument(
        "file",
        type=str,
        help="File holding the candidate content",
    )
    check.add_argument(
        "--target",
        default=None,
        help="Path the change targets (default: FILE)",
    )
    check.add_argument(
        "--action",
        default="modify",
        help="Requested action (default: modify)",
    )
    check.add_argument(
        "--truthpack",
        default=None,
        help="Truthpack directory (default: from settings)",
    )
    check.add_argument(
        "--mode",
        choices=[m.value for m in FirewallMode],
        default=None,
        help="Firewall mode (default: from settings)",
    )
    check.add_argument(
        "--rules",
        default=None,
        help="YAML rule overrides",
    )
    check.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )
    return parser


def _run_check(args: argparse.Namespace) -> None:
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: {path} does not exist", file=sys.stderr)
        sys.exit(EXIT_USAGE)

    try:
        settings = Settings()
        overrides: dict[str, Any] = {}
        if args.truthpack:
            overrides["truthpack_dir"] = Path(args.truthpack)
        if args.mode:
            overrides["mode"] = FirewallMode(args.mode)
        if overrides:
            settings = settings.model_copy(update=overrides)
        logging.getLogger().setLevel(settings.log_level)
        rule_config = (
            load_rule_config(Path(args.rules)) if args.rules else None
        )
        store = FileTruthpackStore(
            settings.truthpack_dir,
            retry_attempts=settings.store_retry_attempts,
        )
        firewall = Firewall(store, settings=settings, rule_config=rule_config)
    except (ConfigurationError, ValidationError, ValueError, FileNotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(EXIT_USAGE)

    request = FirewallRequest(
        action=args.action,
        target=args.target or args.file,
        content=path.read_text(encoding="utf-8", errors="replace"),
        agent_id="cli",
    )
    result = asyncio.run(firewall.evaluate(request))

    if args.json:
        print(json.dumps(result_payload(result), indent=2))
    else:
        _print_report(result)

    if result.decision == Decision.BLOCK:
        sys.exit(EXIT_BLOCKED)


def _print_report(result: FirewallResult) -> None:
    for warning in result.intent.warnings:
        print(f"[intent] {warning}")
    for v in result.violations:
        where = ""
        if v.claim is not None and v.claim.location is not None:
            where = f" ({v.claim.location.file}:{v.claim.location.line})"
        print(f"[{v.severity.value.upper()}] {v.policy}: {v.message}{where}")
        if v.suggestion:
            print(f"    suggestion: {v.suggestion}")
    if result.evidence_degraded:
        print("[degraded] truthpack unavailable; claims treated as unverified")
    print(
        f"\nDecision: {result.decision.value.upper()} "
        f"(mode={result.mode.value}, {len(result.claims)} claims, "
        f"snapshot={result.snapshot_id})"
    )
    if result.unblock_plan is not None and result.decision != Decision.ALLOW:
        print()
        print(result.unblock_plan.to_markdown(), end="")


def result_payload(result: FirewallResult) -> dict[str, Any]:
    """JSON-ready view of a result."""
    return {
        "audit_id": result.audit_id,
        "decision": result.decision.value,
        "mode": result.mode.value,
        "would_block": result.would_block,
        "snapshot_id": result.snapshot_id,
        "evidence_degraded": result.evidence_degraded,
        "duration_ms": round(result.duration_ms, 2),
        "intent": {
            "type": result.intent.intent.type.value,
            "scope": result.intent.intent.scope.value,
            "target": result.intent.intent.target,
            "confidence": result.intent.intent.confidence,
            "valid": result.intent.valid,
            "warnings": list(result.intent.warnings),
        },
        "claims": len(result.claims),
        "violations": [
            {
                "policy": v.policy,
                "severity": v.severity.value,
                "message": v.message,
                "suggestion": v.suggestion,
                "claim": v.claim.value if v.claim else None,
                "line": (
                    v.claim.location.line
                    if v.claim and v.claim.location
                    else None
                ),
            }
            for v in result.violations
        ],
        "unblock_plan": (
            {
                "estimated_effort": result.unblock_plan.estimated_effort,
                "can_auto_fix": result.unblock_plan.can_auto_fix,
                "steps": [
                    {
                        "order": s.order,
                        "action": s.action.value,
                        "target": s.target,
                        "description": s.description,
                        "auto_fixable": s.auto_fixable,
                    }
                    for s in result.unblock_plan.steps
                ],
            }
            if result.unblock_plan is not None
            else None
        ),
    }
