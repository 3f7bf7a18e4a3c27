"""Authenticated actor and its role set."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """
    School roles.

    ADMIN is universally privileged: ownership checks never run for it.
    TEACHER is limited to assigned classes and the students in them.
    PARENT is limited to linked children.
    """

    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    PARENT = "PARENT"

    @classmethod
    def parse(cls, raw: object) -> Role | None:
        """Case-insensitive lookup; returns None for anything unrecognized."""
        if isinstance(raw, Role):
            return raw
        if not isinstance(raw, str):
            return None
        try:
            return cls(raw.strip().upper())
        except ValueError:
            return None


@dataclass(frozen=True)
class Principal:
    """The actor making one request. Never outlives that request."""

    id: uuid.UUID
    roles: frozenset[Role]

    @property
    def is_admin(self) -> bool:
        return self.has_role(Role.ADMIN)

    def has_role(self, role: Role) -> bool:
        return role in self.roles
