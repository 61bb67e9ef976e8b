"""Shared test fixtures: in-memory and on-disk truthpacks, firewall."""

import os

# Keep the developer's shell environment out of Settings(). These are
# cleared at import time, before any Settings() is created.
for _key in [k for k in os.environ if k.startswith("TRUTHGATE_")]:
    del os.environ[_key]

import json
from pathlib import Path
from typing import Any

import pytest

from truthgate.config import Settings
from truthgate.firewall.models import FirewallRequest
from truthgate.firewall.orchestrator import Firewall
from truthgate.truthpack.fakes import InMemoryTruthpackStore


def truthpack_documents() -> dict[str, dict[str, Any]]:
    """Raw category documents, in the camelCase the scanner writes."""
    return {
        "routes": {
            "version": "3",
            "generatedAt": "2026-01-01T00:00:00Z",
            "summary": {"total": 5},
            "routes": [
                {
                    "path": "/api/users",
                    "method": "GET",
                    "handler": "listUsers",
                    "file": "src/routes/users.ts",
                    "line": 10,
                    "auth": {"required": True, "roles": ["user"]},
                },
                {
                    "path": "/api/users",
                    "method": "POST",
                    "handler": "createUser",
                    "file": "src/routes/users.ts",
                    "line": 24,
                    "auth": {"required": True, "roles": ["admin"]},
                },
                {
                    "path": "/api/users/:id",
                    "method": "GET",
                    "handler": "getUser",
                    "file": "src/routes/users.ts",
                    "line": 40,
                },
                {
                    "path": "/api/reports",
                    "method": "GET",
                    "handler": "listReports",
                    "file": "src/routes/reports.ts",
                    "line": 4,
                },
                {
                    "path": "/api/health",
                    "method": "GET",
                    "handler": "health",
                    "file": "src/routes/health.ts",
                    "line": 1,
                },
            ],
        },
        "env": {
            "version": "2",
            "variables": [
                {"name": "DATABASE_URL", "required": True, "sensitive": True},
                {"name": "API_BASE_URL", "type": "url"},
            ],
        },
        "auth": {
            "version": "1",
            "providers": ["jwt"],
            "roles": ["admin", "user"],
            "protectedResources": [
                {"path": "/api/admin/**", "requiredRoles": ["admin"]},
            ],
        },
        "contracts": {
            "version": "1",
            "endpoints": [
                {
                    "path": "/api/users",
                    "method": "POST",
                    "requestType": "CreateUserRequest",
                    "responseType": "UserResponse",
                    "request": {"body": {"name": "string"}},
                },
                {
                    "path": "/api/health",
                    "method": "GET",
                    "request": {},
                },
            ],
            "types": [{"name": "User", "kind": "interface"}],
        },
        "manifest": {
            "dependencies": ["react", "express", "lodash", "pydantic"],
            "files": [
                "src/app.ts",
                "src/lib/db.ts",
                "src/utils/index.ts",
                "src/pkg/models.py",
            ],
        },
    }


def make_request(
    content: str,
    target: str = "src/app.ts",
    action: str = "modify",
    **kwargs: Any,
) -> FirewallRequest:
    return FirewallRequest(
        action=action, target=target, content=content, **kwargs
    )


@pytest.fixture
def store() -> InMemoryTruthpackStore:
    return InMemoryTruthpackStore.from_documents(**truthpack_documents())


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def firewall(store: InMemoryTruthpackStore, settings: Settings) -> Firewall:
    return Firewall(store, settings=settings)


@pytest.fixture
def truthpack_dir(tmp_path: Path) -> Path:
    """Write every category document as JSON under tmp_path/.truthpack."""
    d = tmp_path / ".truthpack"
    d.mkdir()
    for category, document in truthpack_documents().items():
        (d / f"{category}.json").write_text(json.dumps(document))
    return d
