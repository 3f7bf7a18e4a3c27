"""Error taxonomy for authorization decisions."""

from __future__ import annotations

import uuid


class AuthorizationError(Exception):
    """Base for every terminal denial surfaced to the calling layer."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AuthenticationError(AuthorizationError):
    """No principal, or the credential could not be verified. Do not log the token."""


class RoleError(AuthorizationError):
    """Authenticated, but the role requirement is not met."""


class OwnershipError(AuthorizationError):
    """Right kind of role, wrong specific resource."""


class NotFound(Exception):
    """A referenced resource does not exist."""

    def __init__(self, resource_type: str, resource_id: uuid.UUID) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type.capitalize()} {resource_id} not found")


class FactLookupError(Exception):
    """An ownership-fact lookup failed (storage error, timeout, ...)."""


class PolicyConfigError(ValueError):
    """Raised when operation policy declarations are invalid."""
