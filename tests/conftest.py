"""
Pytest fixtures for the test suite.

Data-layer and API tests use an in-memory SQLite engine and a session that
rolls back after each test, so tests do not affect each other.
"""
from __future__ import annotations

import uuid
from datetime import date
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker


TEST_DB_URL = "sqlite:///:memory:"


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    return create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        echo=False,
    )


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    from schoolrecords.db.base import Base
    from schoolrecords.models import school, users  # noqa: F401  (register tables)

    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(tables):
    """
    Provide a Session bound to the test DB; roll back after each test.

    The transaction is rolled back so the next test gets a clean state.
    """
    connection = tables.connect()
    transaction = connection.begin()
    TestSession = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        class_=Session,
    )
    session = TestSession()
    yield session
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def school(db_session):
    """
    Small school with known ownership facts:

    - teacher is assigned to c1 only; teacher2 has no assignments
    - parent is linked to s1 only
    - s1 is in c1, s2 is in c2
    """
    from schoolrecords.models.school import ParentStudentAssociation, SchoolClass, Student, TeacherClassAssignment
    from schoolrecords.models.users import User

    ids = SimpleNamespace(
        admin=uuid.uuid4(),
        teacher=uuid.uuid4(),
        teacher2=uuid.uuid4(),
        parent=uuid.uuid4(),
        c1=uuid.uuid4(),
        c2=uuid.uuid4(),
        s1=uuid.uuid4(),
        s2=uuid.uuid4(),
    )

    db_session.add_all(
        [
            User(id=ids.admin, email="admin@school.test", first_name="Ada", last_name="Admin", role="ADMIN"),
            User(id=ids.teacher, email="t1@school.test", first_name="Tia", last_name="One", role="TEACHER"),
            User(id=ids.teacher2, email="t2@school.test", first_name="Tom", last_name="Two", role="TEACHER"),
            User(id=ids.parent, email="p@school.test", first_name="Pat", last_name="Parent", role="PARENT"),
        ]
    )
    db_session.add_all(
        [
            SchoolClass(id=ids.c1, name="3A", grade_level=3, academic_year="2025-2026"),
            SchoolClass(id=ids.c2, name="3B", grade_level=3, academic_year="2025-2026"),
        ]
    )
    db_session.flush()
    db_session.add_all(
        [
            Student(
                id=ids.s1,
                first_name="Sam",
                last_name="One",
                date_of_birth=date(2017, 1, 2),
                grade_level=3,
                class_id=ids.c1,
                enrollment_date=date(2022, 9, 1),
            ),
            Student(
                id=ids.s2,
                first_name="Sue",
                last_name="Two",
                date_of_birth=date(2017, 3, 4),
                grade_level=12,
                class_id=ids.c2,
                enrollment_date=date(2022, 9, 1),
            ),
        ]
    )
    db_session.flush()
    db_session.add(TeacherClassAssignment(teacher_id=ids.teacher, class_id=ids.c1, role="Homeroom Teacher"))
    db_session.add(ParentStudentAssociation(parent_id=ids.parent, student_id=ids.s1, relationship_type="Father"))
    db_session.commit()
    return ids
