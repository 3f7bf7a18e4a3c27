"""Tests for the authorization decision flow."""

import uuid

import pytest

from schoolrecords.authz import (
    AuthenticationError,
    AuthorizationEngine,
    Decision,
    Outcome,
    OwnershipError,
    OwnershipResolver,
    Principal,
    Reason,
    RoleError,
    Role,
)


def _deny(decision, reason):
    assert decision.outcome is Outcome.DENY
    assert decision.reason is reason
    return decision.message


# ---- Authentication and roles --------------------------------------------------------


def test_unauthenticated_is_denied_first(authz_engine, ids):
    decision = authz_engine.decide(None, "get_class", {"class_id": str(ids.c1)})
    assert _deny(decision, Reason.UNAUTHENTICATED) == "Authentication required"


def test_unauthenticated_is_denied_even_for_open_operation(authz_engine):
    _deny(authz_engine.decide(None, "current_user", {}), Reason.UNAUTHENTICATED)


def test_principal_without_roles_is_denied(authz_engine, principals):
    decision = authz_engine.decide(principals.nobody, "current_user", {})
    assert _deny(decision, Reason.INSUFFICIENT_ROLE) == "No roles found in token"


def test_open_operation_allows_any_role(authz_engine, principals):
    for principal in (principals.admin, principals.teacher, principals.parent):
        assert authz_engine.decide(principal, "current_user", {}).allowed


def test_admin_only_operation_denies_teacher(authz_engine, principals):
    decision = authz_engine.decide(principals.teacher, "create_class", {})
    assert _deny(decision, Reason.INSUFFICIENT_ROLE) == "Insufficient permissions: requires role(s) ADMIN"


def test_parent_cannot_read_class(authz_engine, principals, ids):
    decision = authz_engine.decide(principals.parent, "get_class", {"class_id": str(ids.c1)})
    assert _deny(decision, Reason.INSUFFICIENT_ROLE) == "Insufficient permissions: requires role(s) ADMIN, TEACHER"


def test_role_check_happens_before_ownership(authz_engine, principals, facts, ids):
    authz_engine.decide(principals.parent, "get_class", {"class_id": str(ids.c1)})
    assert facts.calls == []


# ---- Admin bypass --------------------------------------------------------------------


def test_admin_bypasses_ownership(authz_engine, principals, facts, ids):
    assert authz_engine.decide(principals.admin, "get_student", {"student_id": str(ids.missing)}).allowed
    assert authz_engine.decide(principals.admin, "get_class", {}).allowed
    assert facts.calls == []


def test_admin_with_other_roles_still_bypasses(authz_engine, facts, ids):
    principal = Principal(uuid.uuid4(), frozenset({Role.ADMIN, Role.PARENT}))
    assert authz_engine.decide(principal, "get_student", {"student_id": str(ids.s2)}).allowed
    assert facts.calls == []


# ---- Teacher ownership ---------------------------------------------------------------


def test_teacher_reads_assigned_class(authz_engine, principals, ids):
    assert authz_engine.decide(principals.teacher, "get_class", {"class_id": str(ids.c1)}).allowed


def test_teacher_denied_unassigned_class(authz_engine, principals, ids):
    decision = authz_engine.decide(principals.teacher, "get_class", {"class_id": str(ids.c2)})
    assert _deny(decision, Reason.NOT_RESOURCE_OWNER) == "Teacher not assigned to this class"


def test_teacher_reads_student_in_assigned_class(authz_engine, principals, ids):
    assert authz_engine.decide(principals.teacher, "get_student", {"student_id": str(ids.s1)}).allowed


def test_teacher_denied_student_in_other_class(authz_engine, principals, ids):
    decision = authz_engine.decide(principals.teacher, "get_student", {"student_id": str(ids.s2)})
    assert _deny(decision, Reason.NOT_RESOURCE_OWNER) == "Student not in teacher's assigned class"


def test_teacher_without_assignments_is_denied(authz_engine, principals, ids):
    decision = authz_engine.decide(principals.teacher2, "get_student", {"student_id": str(ids.s1)})
    _deny(decision, Reason.NOT_RESOURCE_OWNER)


def test_every_reference_must_be_owned(authz_engine, principals, ids):
    both_owned = {"class_id": str(ids.c1), "other_class_id": str(ids.c1)}
    one_foreign = {"class_id": str(ids.c1), "other_class_id": str(ids.c2)}
    assert authz_engine.decide(principals.teacher, "compare_classes", both_owned).allowed
    _deny(authz_engine.decide(principals.teacher, "compare_classes", one_foreign), Reason.NOT_RESOURCE_OWNER)


# ---- Parent ownership ----------------------------------------------------------------


def test_parent_reads_linked_child(authz_engine, principals, ids):
    assert authz_engine.decide(principals.parent, "get_student", {"student_id": str(ids.s1)}).allowed


def test_parent_denied_unlinked_child(authz_engine, principals, ids):
    decision = authz_engine.decide(principals.parent, "get_student", {"student_id": str(ids.s2)})
    assert _deny(decision, Reason.NOT_RESOURCE_OWNER) == "Parent not linked to this student"


# ---- Multiple roles and combinators --------------------------------------------------


def test_all_combinator_requires_every_role(authz_engine, principals, ids):
    decision = authz_engine.decide(principals.teacher, "family_conference", {"student_id": str(ids.s1)})
    _deny(decision, Reason.INSUFFICIENT_ROLE)


def test_multi_role_principal_may_own_through_either_role(authz_engine, ids):
    # Parent of s1 holding TEACHER as well, with no class assignments.
    principal = Principal(ids.parent, frozenset({Role.TEACHER, Role.PARENT}))
    assert authz_engine.decide(principal, "family_conference", {"student_id": str(ids.s1)}).allowed
    _deny(
        authz_engine.decide(principal, "family_conference", {"student_id": str(ids.s2)}),
        Reason.NOT_RESOURCE_OWNER,
    )


def test_only_satisfying_roles_are_used_for_ownership(registry, facts, ids):
    # A teacher-parent may read c1 only through the TEACHER role; the parent link is irrelevant.
    facts.associations.add((ids.teacher2, ids.s1))
    engine = AuthorizationEngine(registry, OwnershipResolver(facts))
    principal = Principal(ids.teacher2, frozenset({Role.TEACHER, Role.PARENT}))
    _deny(engine.decide(principal, "get_class", {"class_id": str(ids.c1)}), Reason.NOT_RESOURCE_OWNER)
    assert engine.decide(principal, "get_student", {"student_id": str(ids.s1)}).allowed


# ---- Failure modes -------------------------------------------------------------------


def test_missing_resource_argument_fails_closed(authz_engine, principals):
    decision = authz_engine.decide(principals.teacher, "get_class", {})
    assert _deny(decision, Reason.NOT_RESOURCE_OWNER) == "No resource reference to verify ownership"


def test_unparseable_resource_id_fails_closed(authz_engine, principals):
    decision = authz_engine.decide(principals.teacher, "get_class", {"class_id": "3A"})
    _deny(decision, Reason.NOT_RESOURCE_OWNER)


def test_unknown_student_is_denied_not_raised(authz_engine, principals, ids):
    decision = authz_engine.decide(principals.teacher, "get_student", {"student_id": str(ids.missing)})
    message = _deny(decision, Reason.NOT_RESOURCE_OWNER)
    assert str(ids.missing) in message


def test_fact_lookup_failure_is_denied(registry, failing_facts, principals, ids, caplog):
    engine = AuthorizationEngine(registry, OwnershipResolver(failing_facts))
    with caplog.at_level("WARNING", logger="schoolrecords.authz.engine"):
        decision = engine.decide(principals.teacher, "get_class", {"class_id": str(ids.c1)})
    assert _deny(decision, Reason.NOT_RESOURCE_OWNER) == "Ownership could not be verified"
    assert "Ownership lookup failed" in caplog.text


def test_decisions_are_repeatable(authz_engine, principals, ids):
    args = {"student_id": str(ids.s2)}
    first = authz_engine.decide(principals.teacher, "get_student", args)
    second = authz_engine.decide(principals.teacher, "get_student", args)
    assert first == second


# ---- Raising helpers -----------------------------------------------------------------


@pytest.mark.parametrize(
    "reason, error",
    [
        (Reason.UNAUTHENTICATED, AuthenticationError),
        (Reason.INSUFFICIENT_ROLE, RoleError),
        (Reason.NOT_RESOURCE_OWNER, OwnershipError),
    ],
)
def test_raise_for_denial_maps_reason_to_error(reason, error):
    with pytest.raises(error) as excinfo:
        Decision.deny(reason, "nope").raise_for_denial()
    assert excinfo.value.message == "nope"


def test_raise_for_denial_is_noop_on_allow():
    Decision.allow().raise_for_denial()


def test_enforce_returns_principal(authz_engine, principals, ids):
    assert authz_engine.enforce(principals.parent, "get_student", {"student_id": ids.s1}) is principals.parent
    with pytest.raises(OwnershipError):
        authz_engine.enforce(principals.parent, "get_student", {"student_id": ids.s2})


def test_guard_binds_handler_arguments(authz_engine, principals, ids):
    @authz_engine.guard("get_class")
    def read_class(principal, class_id, verbose=False):
        return class_id

    assert read_class(principals.teacher, str(ids.c1)) == str(ids.c1)
    assert read_class(principals.teacher, class_id=ids.c1, verbose=True) == ids.c1
    with pytest.raises(OwnershipError):
        read_class(principals.teacher, str(ids.c2))
    with pytest.raises(AuthenticationError):
        read_class(None, str(ids.c1))
    with pytest.raises(RoleError):
        read_class(principals.parent, str(ids.c1))


def test_admin_allowed_with_no_usable_ownership_facts(registry, failing_facts, principals, ids):
    engine = AuthorizationEngine(registry, OwnershipResolver(failing_facts))
    assert engine.decide(principals.admin, "get_class", {"class_id": str(ids.c2)}).allowed
    assert engine.decide(principals.admin, "compare_classes", {}).allowed
    assert failing_facts.calls == []


def test_denial_without_reason_raises_ownership_error():
    with pytest.raises(OwnershipError) as excinfo:
        Decision(outcome=Outcome.DENY, message="denied").raise_for_denial()
    assert excinfo.value.message == "denied"


def test_enforce_rejects_missing_principal(authz_engine):
    with pytest.raises(AuthenticationError):
        authz_engine.enforce(None, "current_user", {})
