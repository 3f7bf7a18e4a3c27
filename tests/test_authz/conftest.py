"""Fixtures for engine-level tests: in-memory ownership facts and a small registry."""

from __future__ import annotations

import uuid
from types import SimpleNamespace

import pytest

from schoolrecords.authz import (
    AuthorizationEngine,
    Combinator,
    FactLookupError,
    NotFound,
    OperationPolicy,
    OwnershipResolver,
    PolicyRegistry,
    PolicyRequirement,
    Principal,
    ResourceSlot,
    ResourceType,
    Role,
)


class FakeFacts:
    """Dictionary-backed ownership facts that record every lookup."""

    def __init__(self, assignments=(), associations=(), student_classes=None, fail=False):
        self.assignments = set(assignments)
        self.associations = set(associations)
        self.student_classes = dict(student_classes or {})
        self.fail = fail
        self.calls: list[str] = []

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail:
            raise FactLookupError("storage unavailable")

    def find_assignment(self, teacher_id, class_id):
        self._record("find_assignment")
        return (teacher_id, class_id) in self.assignments

    def find_assignments_for_teacher(self, teacher_id):
        self._record("find_assignments_for_teacher")
        return [class_id for (t, class_id) in self.assignments if t == teacher_id]

    def find_association(self, parent_id, student_id):
        self._record("find_association")
        return (parent_id, student_id) in self.associations

    def find_student_class_id(self, student_id):
        self._record("find_student_class_id")
        if student_id not in self.student_classes:
            raise NotFound("student", student_id)
        return self.student_classes[student_id]


@pytest.fixture
def ids():
    return SimpleNamespace(
        admin=uuid.uuid4(),
        teacher=uuid.uuid4(),
        teacher2=uuid.uuid4(),
        parent=uuid.uuid4(),
        c1=uuid.uuid4(),
        c2=uuid.uuid4(),
        s1=uuid.uuid4(),
        s2=uuid.uuid4(),
        missing=uuid.uuid4(),
    )


@pytest.fixture
def facts(ids):
    return FakeFacts(
        assignments={(ids.teacher, ids.c1)},
        associations={(ids.parent, ids.s1)},
        student_classes={ids.s1: ids.c1, ids.s2: ids.c2},
    )


@pytest.fixture
def failing_facts():
    return FakeFacts(fail=True)


@pytest.fixture
def principals(ids):
    return SimpleNamespace(
        admin=Principal(ids.admin, frozenset({Role.ADMIN})),
        teacher=Principal(ids.teacher, frozenset({Role.TEACHER})),
        teacher2=Principal(ids.teacher2, frozenset({Role.TEACHER})),
        parent=Principal(ids.parent, frozenset({Role.PARENT})),
        nobody=Principal(uuid.uuid4(), frozenset()),
    )


@pytest.fixture
def registry():
    return PolicyRegistry(
        [
            OperationPolicy("create_class", PolicyRequirement(frozenset({Role.ADMIN}))),
            OperationPolicy(
                "get_class",
                PolicyRequirement(frozenset({Role.ADMIN, Role.TEACHER})),
                (ResourceSlot("class_id", ResourceType.CLASS),),
            ),
            OperationPolicy(
                "get_student",
                PolicyRequirement(frozenset({Role.ADMIN, Role.TEACHER, Role.PARENT})),
                (ResourceSlot("student_id", ResourceType.STUDENT),),
            ),
            OperationPolicy(
                "family_conference",
                PolicyRequirement(frozenset({Role.TEACHER, Role.PARENT}), Combinator.ALL),
                (ResourceSlot("student_id", ResourceType.STUDENT),),
            ),
            OperationPolicy(
                "compare_classes",
                PolicyRequirement(frozenset({Role.ADMIN, Role.TEACHER})),
                (
                    ResourceSlot("class_id", ResourceType.CLASS),
                    ResourceSlot("other_class_id", ResourceType.CLASS),
                ),
            ),
        ]
    )


@pytest.fixture
def authz_engine(registry, facts):
    return AuthorizationEngine(registry, OwnershipResolver(facts))
