from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from schoolrecords.db.base import Base
from schoolrecords.db.session import SessionLocal, engine
from schoolrecords.models.school import ParentStudentAssociation, SchoolClass, Student, TeacherClassAssignment
from schoolrecords.models.users import User

# Stable ids so development tokens can be minted against the seeded users.
ADMIN_ID = uuid.UUID("00000000-0000-4000-8000-000000000001")
TEACHER_ID = uuid.UUID("00000000-0000-4000-8000-000000000002")
PARENT_ID = uuid.UUID("00000000-0000-4000-8000-000000000003")


def init_db(seed: bool = True) -> None:
    """
    Create tables and, when `seed` is set, insert demo data once.

    Small and deterministic so the authorization behavior can be tried
    without additional setup.
    """

    Base.metadata.create_all(bind=engine)
    if not seed:
        return

    with SessionLocal() as db:
        if _has_seed_data(db):
            return
        _seed(db)


def _has_seed_data(db: Session) -> bool:
    return db.execute(select(User.id).limit(1)).first() is not None


def _seed(db: Session) -> None:
    # Users
    admin = User(id=ADMIN_ID, email="alice.admin@school.example", first_name="Alice", last_name="Admin", role="ADMIN")
    teacher = User(id=TEACHER_ID, email="tom.teacher@school.example", first_name="Tom", last_name="Teacher", role="TEACHER")
    parent = User(id=PARENT_ID, email="paula.parent@school.example", first_name="Paula", last_name="Parent", role="PARENT")
    db.add_all([admin, teacher, parent])
    db.flush()

    # Classes
    grade3a = SchoolClass(name="3A", grade_level=3, academic_year="2025-2026")
    grade3b = SchoolClass(name="3B", grade_level=3, academic_year="2025-2026")
    db.add_all([grade3a, grade3b])
    db.flush()

    # Students (one per class)
    s1 = Student(
        first_name="Sam",
        last_name="Parent",
        date_of_birth=date(2017, 4, 12),
        grade_level=3,
        class_id=grade3a.id,
        student_number="S-0001",
        enrollment_date=date(2022, 9, 1),
    )
    s2 = Student(
        first_name="Rae",
        last_name="Other",
        date_of_birth=date(2017, 8, 30),
        grade_level=3,
        class_id=grade3b.id,
        student_number="S-0002",
        enrollment_date=date(2022, 9, 1),
    )
    db.add_all([s1, s2])
    db.flush()

    # Ownership facts: teacher -> 3A only, parent -> Sam only
    db.add(TeacherClassAssignment(teacher_id=teacher.id, class_id=grade3a.id, role="Homeroom Teacher"))
    db.add(ParentStudentAssociation(parent_id=parent.id, student_id=s1.id, relationship_type="Mother", is_primary_contact=True))

    db.commit()
