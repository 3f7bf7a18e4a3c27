from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from schoolrecords.authz.errors import PolicyConfigError
from schoolrecords.authz.policy import (
    Combinator,
    OperationPolicy,
    PolicyRequirement,
    ResourceSlot,
    parse_resource_type,
    parse_roles,
)


class AuthConfig(BaseModel):
    authorization_header: str = "Authorization"
    bearer_prefix: str = "Bearer"

    subject_claim: str = "sub"
    roles_claim: str = "groups"

    algorithms: list[str] = Field(default_factory=lambda: ["HS256"])
    issuer: str | None = None
    audience: str | None = None
    leeway_seconds: int = 30
    token_ttl_hours: int = 12


class ResourceRule(BaseModel):
    argument: str
    type: str


class OperationRule(BaseModel):
    required_roles: list[str] = Field(default_factory=list)
    combinator: str = "ANY"
    resource: ResourceRule | None = None
    resources: list[ResourceRule] = Field(default_factory=list)

    def to_policy(self, operation: str) -> OperationPolicy:
        try:
            combinator = Combinator(self.combinator.strip().upper())
        except ValueError as exc:
            raise PolicyConfigError(f"operation {operation!r}: unknown combinator {self.combinator!r}") from exc

        rules = list(self.resources)
        if self.resource is not None:
            rules.insert(0, self.resource)

        return OperationPolicy(
            operation=operation,
            requirement=PolicyRequirement(
                required_roles=parse_roles(self.required_roles),
                combinator=combinator,
            ),
            resources=tuple(ResourceSlot(argument=r.argument, type=parse_resource_type(r.type)) for r in rules),
        )


class SecurityConfigModel(BaseModel):
    auth: AuthConfig = Field(default_factory=AuthConfig)
    public: list[str] = Field(default_factory=list)
    operations: dict[str, OperationRule] = Field(default_factory=dict)


class SecurityConfig:
    """
    Runtime helper around the validated config.
    """

    def __init__(self, model: SecurityConfigModel):
        self.model = model
        self._public = frozenset(model.public)

    @property
    def auth(self) -> AuthConfig:
        return self.model.auth

    def is_public(self, operation: str) -> bool:
        return operation in self._public

    def operation_policies(self) -> list[OperationPolicy]:
        """Policies declared under `operations:`; these override decorator metadata."""
        return [rule.to_policy(name) for name, rule in self.model.operations.items()]


def load_security_config(path: Path) -> SecurityConfig:
    raw_text = path.read_text(encoding="utf-8")
    raw: dict[str, Any] = yaml.safe_load(raw_text) or {}

    if "security" not in raw:
        raise ValueError(f"Missing top-level 'security' key in config: {path}")

    model = SecurityConfigModel.model_validate(raw["security"])
    return SecurityConfig(model)
