"""SQLAlchemy-backed ownership-fact lookups for the authorization engine."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from schoolrecords.authz.errors import FactLookupError, NotFound
from schoolrecords.models.school import ParentStudentAssociation, Student, TeacherClassAssignment

logger = logging.getLogger(__name__)


class SqlOwnershipFacts:
    """
    Read-only queries over assignments, associations and students.

    Storage errors are re-raised as ``FactLookupError`` so the engine can fail
    closed without knowing about SQLAlchemy.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def find_assignment(self, teacher_id: uuid.UUID, class_id: uuid.UUID) -> bool:
        stmt = (
            select(TeacherClassAssignment.id)
            .where(TeacherClassAssignment.teacher_id == teacher_id)
            .where(TeacherClassAssignment.class_id == class_id)
            .limit(1)
        )
        return self._first(stmt) is not None

    def find_assignments_for_teacher(self, teacher_id: uuid.UUID) -> list[uuid.UUID]:
        stmt = select(TeacherClassAssignment.class_id).where(TeacherClassAssignment.teacher_id == teacher_id)
        try:
            return list(self._db.scalars(stmt).all())
        except SQLAlchemyError as exc:
            raise FactLookupError("teacher assignment lookup failed") from exc

    def find_association(self, parent_id: uuid.UUID, student_id: uuid.UUID) -> bool:
        stmt = (
            select(ParentStudentAssociation.id)
            .where(ParentStudentAssociation.parent_id == parent_id)
            .where(ParentStudentAssociation.student_id == student_id)
            .limit(1)
        )
        return self._first(stmt) is not None

    def find_student_class_id(self, student_id: uuid.UUID) -> uuid.UUID:
        class_id = self._first(select(Student.class_id).where(Student.id == student_id))
        if class_id is None:
            raise NotFound("student", student_id)
        return class_id

    def _first(self, stmt):
        try:
            return self._db.scalars(stmt).first()
        except SQLAlchemyError as exc:
            logger.debug("Ownership fact query failed: %s", type(exc).__name__)
            raise FactLookupError("ownership fact lookup failed") from exc
