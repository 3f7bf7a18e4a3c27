"""
Ownership resolution: is this principal linked to this specific resource?

Relies only on read-only fact lookups provided by the assignment and
association subsystems (see ``OwnershipFacts``). Nothing here writes.

Rules by role:
* TEACHER + CLASS:   a TeacherClassAssignment(teacher, class) exists.
* TEACHER + STUDENT: the student's class is one of the teacher's assigned
  classes (two hops: student -> class, teacher -> classes).
* PARENT  + STUDENT: a ParentStudentAssociation(parent, student) exists.
* anything else:     not owned.
"""

from __future__ import annotations

import logging
import uuid
from typing import Iterable, Protocol

from .policy import ResourceType
from .principal import Role
from .references import ResourceReference

logger = logging.getLogger(__name__)


class OwnershipFacts(Protocol):
    """Read-only lookups the resolver depends on."""

    def find_assignment(self, teacher_id: uuid.UUID, class_id: uuid.UUID) -> bool: ...

    def find_assignments_for_teacher(self, teacher_id: uuid.UUID) -> list[uuid.UUID]: ...

    def find_association(self, parent_id: uuid.UUID, student_id: uuid.UUID) -> bool: ...

    def find_student_class_id(self, student_id: uuid.UUID) -> uuid.UUID:
        """Return the student's class id; raise NotFound if the student does not exist."""
        ...


class OwnershipResolver:
    """
    Answers ownership questions for non-admin roles.

    ``NotFound`` and ``FactLookupError`` raised by the facts propagate; the
    engine turns them into denials.
    """

    def __init__(self, facts: OwnershipFacts) -> None:
        self._facts = facts

    def owns(self, principal_id: uuid.UUID, role: Role, reference: ResourceReference) -> bool:
        if role is Role.ADMIN:
            return True

        if role is Role.TEACHER:
            if reference.type is ResourceType.CLASS:
                return self._teacher_assigned_to_class(principal_id, reference.id)
            if reference.type is ResourceType.STUDENT:
                return self._student_in_teacher_class(principal_id, reference.id)

        if role is Role.PARENT and reference.type is ResourceType.STUDENT:
            return self._facts.find_association(principal_id, reference.id)

        logger.debug("No ownership rule for role=%s type=%s", role.value, reference.type.value)
        return False

    def owns_any_role(self, principal_id: uuid.UUID, roles: Iterable[Role], reference: ResourceReference) -> bool:
        """True when at least one of ``roles`` grants ownership of ``reference``."""
        for role in sorted(roles, key=lambda r: r.value):
            if self.owns(principal_id, role, reference):
                return True
        return False

    def _teacher_assigned_to_class(self, teacher_id: uuid.UUID, class_id: uuid.UUID) -> bool:
        return self._facts.find_assignment(teacher_id, class_id)

    def _student_in_teacher_class(self, teacher_id: uuid.UUID, student_id: uuid.UUID) -> bool:
        student_class_id = self._facts.find_student_class_id(student_id)
        assigned = set(self._facts.find_assignments_for_teacher(teacher_id))
        return student_class_id in assigned
