"""
Authorization decision engine.

Pure Python: no FastAPI or SQLAlchemy imports. The web layer resolves a
``Principal``, builds an ``AuthorizationEngine`` around a registry and an
``OwnershipResolver``, and asks it for a ``Decision``.
"""

from .engine import AuthorizationEngine, Decision, Outcome, Reason
from .errors import (
    AuthenticationError,
    AuthorizationError,
    FactLookupError,
    NotFound,
    OwnershipError,
    PolicyConfigError,
    RoleError,
)
from .ownership import OwnershipFacts, OwnershipResolver
from .policy import (
    Combinator,
    OperationPolicy,
    PolicyRegistry,
    PolicyRequirement,
    ResourceSlot,
    ResourceType,
)
from .principal import Principal, Role
from .references import ResourceReference, extract_references

__all__ = [
    "AuthenticationError",
    "AuthorizationEngine",
    "AuthorizationError",
    "Combinator",
    "Decision",
    "FactLookupError",
    "NotFound",
    "OperationPolicy",
    "Outcome",
    "OwnershipError",
    "OwnershipFacts",
    "OwnershipResolver",
    "PolicyConfigError",
    "PolicyRegistry",
    "PolicyRequirement",
    "Principal",
    "Reason",
    "ResourceReference",
    "ResourceSlot",
    "ResourceType",
    "Role",
    "RoleError",
    "extract_references",
]
