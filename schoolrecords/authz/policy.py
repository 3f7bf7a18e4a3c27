"""
Operation policy declarations and the registry that serves them.

Key ideas:
- Each protected operation declares a role requirement and, when ownership
  matters, which of its arguments names the resource it acts on.
- Declarations are registered once when the application is built; lookups at
  request time are plain dictionary reads.
- Registration fails loudly on declarations the engine could only resolve by
  guessing (a non-admin requirement with no resource slot).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from .errors import PolicyConfigError
from .principal import Role

logger = logging.getLogger(__name__)


# ---- Data structures -----------------------------------------------------------------


class Combinator(str, Enum):
    ANY = "ANY"
    ALL = "ALL"


class ResourceType(str, Enum):
    CLASS = "CLASS"
    STUDENT = "STUDENT"


@dataclass(frozen=True)
class PolicyRequirement:
    """Roles an operation demands. Empty means any authenticated principal."""

    required_roles: frozenset[Role] = frozenset()
    combinator: Combinator = Combinator.ANY

    @property
    def is_trivial(self) -> bool:
        return not self.required_roles

    @property
    def admin_only(self) -> bool:
        return self.required_roles == frozenset({Role.ADMIN})

    def satisfying_roles(self, roles: Iterable[Role]) -> frozenset[Role]:
        """
        Return the principal roles that satisfy this requirement.

        ANY: intersection with the required set (empty means unmet).
        ALL: the required set itself when the principal holds every role.
        A trivial requirement is satisfied by whatever the principal holds.
        """

        held = frozenset(roles)
        if self.is_trivial:
            return held
        if self.combinator is Combinator.ALL:
            return self.required_roles if held >= self.required_roles else frozenset()
        return held & self.required_roles


@dataclass(frozen=True)
class ResourceSlot:
    """Names the argument that carries a resource id, and the resource's type."""

    argument: str
    type: ResourceType


@dataclass(frozen=True)
class OperationPolicy:
    """Everything the engine needs to know about one protected operation."""

    operation: str
    requirement: PolicyRequirement = field(default_factory=PolicyRequirement)
    resources: tuple[ResourceSlot, ...] = ()

    @property
    def needs_ownership(self) -> bool:
        """True when some non-admin role can pass the role check."""
        requirement = self.requirement
        return not requirement.is_trivial and not requirement.admin_only


def open_policy(operation: str) -> OperationPolicy:
    """Default for undeclared operations: any authenticated principal."""
    return OperationPolicy(operation=operation)


# ---- Parsing helpers -----------------------------------------------------------------


def parse_roles(raw_roles: Iterable[object]) -> frozenset[Role]:
    roles: set[Role] = set()
    for raw in raw_roles:
        role = Role.parse(raw)
        if role is None:
            raise PolicyConfigError(f"unknown role {raw!r}")
        roles.add(role)
    return frozenset(roles)


def parse_resource_type(raw: object) -> ResourceType:
    try:
        return ResourceType(str(raw).strip().upper())
    except ValueError as exc:
        raise PolicyConfigError(f"unknown resource type {raw!r}") from exc


# ---- Registry ------------------------------------------------------------------------


class PolicyRegistry:
    """
    In-memory map of operation name -> OperationPolicy.

    Usage:
        registry = PolicyRegistry()
        registry.register(OperationPolicy("get_class", PolicyRequirement(...), (ResourceSlot(...),)))
        policy = registry.get("get_class")
    """

    def __init__(self, policies: Iterable[OperationPolicy] = ()) -> None:
        self._policies: dict[str, OperationPolicy] = {}
        for policy in policies:
            self.register(policy)

    def register(self, policy: OperationPolicy, *, replace: bool = False) -> None:
        if not policy.operation:
            raise PolicyConfigError("operation name must be non-empty")
        if policy.operation in self._policies and not replace:
            raise PolicyConfigError(f"operation {policy.operation!r} is declared more than once")
        if policy.needs_ownership and not policy.resources:
            raise PolicyConfigError(
                f"operation {policy.operation!r} admits non-admin roles "
                f"{sorted(r.value for r in policy.requirement.required_roles)} but declares no resource reference"
            )

        self._policies[policy.operation] = policy
        logger.debug(
            "Registered policy operation=%s roles=%s combinator=%s resources=%s",
            policy.operation,
            sorted(r.value for r in policy.requirement.required_roles),
            policy.requirement.combinator.value,
            [(slot.argument, slot.type.value) for slot in policy.resources],
        )

    def get(self, operation: str) -> OperationPolicy:
        policy = self._policies.get(operation)
        if policy is None:
            return open_policy(operation)
        return policy

    def __contains__(self, operation: object) -> bool:
        return operation in self._policies

    def __len__(self) -> int:
        return len(self._policies)
