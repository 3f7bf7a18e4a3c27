"""
Authorization engine: one allow/deny decision per operation invocation.

States:
    START -> AUTHENTICATED? -> ROLE_CHECK -> OWNERSHIP_CHECK -> ALLOW | DENY

The ownership step is skipped for ADMIN principals and for operations open to
any authenticated principal. Every denial is terminal; nothing is retried.

This module is pure Python and has no FastAPI dependency. The HTTP layer
resolves the principal once and passes it in explicitly.
"""

from __future__ import annotations

import functools
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, TypeVar, cast

from .errors import AuthenticationError, FactLookupError, NotFound, OwnershipError, RoleError
from .ownership import OwnershipResolver
from .policy import OperationPolicy, PolicyRegistry, ResourceType
from .principal import Principal, Role
from .references import ResourceReference, extract_references

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


# ---- Decision ------------------------------------------------------------------------


class Outcome(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


class Reason(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INSUFFICIENT_ROLE = "INSUFFICIENT_ROLE"
    NOT_RESOURCE_OWNER = "NOT_RESOURCE_OWNER"


_ERROR_BY_REASON = {
    Reason.UNAUTHENTICATED: AuthenticationError,
    Reason.INSUFFICIENT_ROLE: RoleError,
    Reason.NOT_RESOURCE_OWNER: OwnershipError,
}


@dataclass(frozen=True)
class Decision:
    outcome: Outcome
    reason: Reason | None = None
    message: str = ""

    @classmethod
    def allow(cls) -> Decision:
        return cls(outcome=Outcome.ALLOW)

    @classmethod
    def deny(cls, reason: Reason, message: str) -> Decision:
        return cls(outcome=Outcome.DENY, reason=reason, message=message)

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.ALLOW

    def raise_for_denial(self) -> None:
        """Raise the error matching this decision's reason (OwnershipError if unset)."""
        if self.allowed:
            return
        raise _ERROR_BY_REASON.get(self.reason, OwnershipError)(self.message)


# ---- Engine --------------------------------------------------------------------------


class AuthorizationEngine:
    """
    Orchestrates registry lookup, reference extraction and ownership checks.

    Holds no per-request state: a registry (static) and an ownership resolver
    wrapping the fact lookups.
    """

    def __init__(self, registry: PolicyRegistry, ownership: OwnershipResolver) -> None:
        self._registry = registry
        self._ownership = ownership

    def decide(self, principal: Principal | None, operation: str, arguments: Mapping[str, Any]) -> Decision:
        """Decide for an invocation of ``operation`` with the given argument values."""

        policy = self._registry.get(operation)
        references: tuple[ResourceReference, ...] = ()
        if principal is not None and not principal.is_admin:
            references = extract_references(policy, arguments)

        decision = self.evaluate(principal, policy, references)
        if decision.allowed:
            logger.debug("Authz: allowed operation=%s principal=%s", operation, principal.id if principal else None)
        else:
            logger.info(
                "Authz: denied operation=%s principal=%s reason=%s message=%s",
                operation,
                principal.id if principal else None,
                decision.reason.value if decision.reason else None,
                decision.message,
            )
        return decision

    def evaluate(
        self,
        principal: Principal | None,
        policy: OperationPolicy,
        references: tuple[ResourceReference, ...],
    ) -> Decision:
        """
        The decision function proper.

        Same (principal, policy, references, facts) always yields the same
        decision.
        """

        if principal is None:
            return Decision.deny(Reason.UNAUTHENTICATED, "Authentication required")

        if not principal.roles:
            return Decision.deny(Reason.INSUFFICIENT_ROLE, "No roles found in token")

        requirement = policy.requirement
        satisfying = requirement.satisfying_roles(principal.roles)
        if not satisfying:
            return Decision.deny(
                Reason.INSUFFICIENT_ROLE,
                "Insufficient permissions: requires role(s) "
                + ", ".join(sorted(r.value for r in requirement.required_roles)),
            )

        # ADMIN bypasses ownership entirely.
        if principal.is_admin or requirement.is_trivial:
            return Decision.allow()

        if not references:
            # Fail closed: nothing to check ownership against.
            return Decision.deny(Reason.NOT_RESOURCE_OWNER, "No resource reference to verify ownership")

        for reference in references:
            try:
                owned = self._ownership.owns_any_role(principal.id, satisfying, reference)
            except NotFound as exc:
                return Decision.deny(Reason.NOT_RESOURCE_OWNER, str(exc))
            except FactLookupError:
                logger.warning(
                    "Ownership lookup failed; denying operation=%s principal=%s type=%s",
                    policy.operation,
                    principal.id,
                    reference.type.value,
                    exc_info=True,
                )
                return Decision.deny(Reason.NOT_RESOURCE_OWNER, "Ownership could not be verified")

            if not owned:
                return Decision.deny(Reason.NOT_RESOURCE_OWNER, _not_owner_message(satisfying, reference))

        return Decision.allow()

    def enforce(self, principal: Principal | None, operation: str, arguments: Mapping[str, Any]) -> Principal:
        """Like ``decide`` but raises on DENY; returns the (now authorized) principal."""
        self.decide(principal, operation, arguments).raise_for_denial()
        return cast(Principal, principal)

    def guard(self, operation: str) -> Callable[[F], F]:
        """
        Wrap a plain handler ``fn(principal, ...)`` so it only runs when allowed.

        Resource slots are resolved against the handler's bound arguments.
        """

        def decorator(fn: F) -> F:
            signature = inspect.signature(fn)

            @functools.wraps(fn)
            def wrapper(principal: Principal | None, *args: Any, **kwargs: Any) -> Any:
                bound = signature.bind_partial(principal, *args, **kwargs)
                self.enforce(principal, operation, bound.arguments)
                return fn(principal, *args, **kwargs)

            return wrapper  # type: ignore[return-value]

        return decorator


def _not_owner_message(roles: frozenset[Role], reference: ResourceReference) -> str:
    if Role.TEACHER in roles and reference.type is ResourceType.CLASS:
        return "Teacher not assigned to this class"
    if Role.TEACHER in roles and reference.type is ResourceType.STUDENT:
        return "Student not in teacher's assigned class"
    if Role.PARENT in roles and reference.type is ResourceType.STUDENT:
        return "Parent not linked to this student"
    return "Not authorized for this resource"
