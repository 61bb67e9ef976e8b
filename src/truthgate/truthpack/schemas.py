"""Pydantic models for truthpack documents.

A truthpack is generated by an external scanner and read here as
plain JSON. Keys may be camelCase (as written by the scanner) or
snake_case; both are accepted.
"""

from __future__ import annotations

import hashlib
import json
from functools import cached_property
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _TruthpackModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class _Document(_TruthpackModel):
    """Header fields shared by every category document."""

    version: str = "0"
    generated_at: str | None = None
    summary: dict[str, Any] = Field(default_factory=lambda: dict[str, Any]())


# ── Routes ───────────────────────────────────────────────


class RouteAuth(_TruthpackModel):
    required: bool = False
    roles: list[str] = Field(default_factory=lambda: list[str]())


class RouteEntry(_TruthpackModel):
    path: str
    method: str = "*"
    handler: str = ""
    file: str = ""
    line: int = 0
    middleware: list[str] = Field(default_factory=lambda: list[str]())
    auth: RouteAuth | None = None


class RoutesDocument(_Document):
    routes: list[RouteEntry] = Field(
        default_factory=lambda: list[RouteEntry]()
    )


# ── Environment ──────────────────────────────────────────


class EnvVariable(_TruthpackModel):
    name: str
    type: str = "string"
    required: bool = False
    sensitive: bool = False
    description: str = ""


class EnvDocument(_Document):
    variables: list[EnvVariable] = Field(
        default_factory=lambda: list[EnvVariable]()
    )


# ── Auth ─────────────────────────────────────────────────


class ProtectedResource(_TruthpackModel):
    path: str
    method: str | None = None
    required_roles: list[str] = Field(default_factory=lambda: list[str]())


class AuthDocument(_Document):
    providers: list[str | dict[str, Any]] = Field(
        default_factory=lambda: list[str | dict[str, Any]]()
    )
    roles: list[str] | dict[str, Any] = Field(
        default_factory=lambda: list[str]()
    )
    protected_resources: list[ProtectedResource] = Field(
        default_factory=lambda: list[ProtectedResource]()
    )


# ── Contracts ────────────────────────────────────────────


class ContractEndpoint(_TruthpackModel):
    path: str
    method: str
    request_type: str | None = None
    response_type: str | None = None
    request: dict[str, Any] | None = None


class ContractType(_TruthpackModel):
    name: str
    kind: str = "interface"


class ContractsDocument(_Document):
    endpoints: list[ContractEndpoint] = Field(
        default_factory=lambda: list[ContractEndpoint]()
    )
    types: list[ContractType] = Field(
        default_factory=lambda: list[ContractType]()
    )


# ── Manifest ─────────────────────────────────────────────


class ManifestDocument(_Document):
    """Declared package dependencies and known project files."""

    dependencies: list[str] = Field(default_factory=lambda: list[str]())
    files: list[str] = Field(default_factory=lambda: list[str]())


# ── Snapshot ─────────────────────────────────────────────


class TruthpackSnapshot(_TruthpackModel):
    """Immutable view of every truthpack category at one point in time.

    Safe to share between concurrent evaluations. ``snapshot_id`` is a
    digest of the content, so two snapshots with identical facts share
    an id and a replaced truthpack gets a new one.
    """

    routes: RoutesDocument = Field(default_factory=RoutesDocument)
    env: EnvDocument = Field(default_factory=EnvDocument)
    auth: AuthDocument = Field(default_factory=AuthDocument)
    contracts: ContractsDocument = Field(default_factory=ContractsDocument)
    manifest: ManifestDocument = Field(default_factory=ManifestDocument)

    @cached_property
    def snapshot_id(self) -> str:
        payload = json.dumps(
            self.model_dump(mode="json"), sort_keys=True
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]

    @property
    def versions(self) -> dict[str, str]:
        return {
            "routes": self.routes.version,
            "env": self.env.version,
            "auth": self.auth.version,
            "contracts": self.contracts.version,
            "manifest": self.manifest.version,
        }


# Category name → document model, in load order
CATEGORY_MODELS: dict[str, type[_Document]] = {
    "routes": RoutesDocument,
    "env": EnvDocument,
    "auth": AuthDocument,
    "contracts": ContractsDocument,
    "manifest": ManifestDocument,
}
