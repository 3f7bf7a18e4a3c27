"""
Fixtures for HTTP-level tests.

The app is built with a test signing secret and its `get_db` dependency is
pointed at the rolled-back test session. `TestClient` is used without a
context manager, so the lifespan (file database, demo seed) never runs.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from schoolrecords.authz import Principal, Role
from schoolrecords.db.session import get_db
from schoolrecords.main import create_app
from schoolrecords.security.tokens import issue_token
from schoolrecords.settings import Settings

TEST_SECRET = "api-test-secret-that-is-long-enough"


@pytest.fixture
def app(db_session):
    app = create_app(Settings(jwt_secret=TEST_SECRET, jwt_public_key_path=None))

    def _test_db():
        yield db_session

    app.dependency_overrides[get_db] = _test_db
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def auth_headers(app):
    """Return a function building an Authorization header for a user id and roles."""

    config = app.state.security_config.auth

    def _headers(user_id, *roles: Role) -> dict[str, str]:
        token = issue_token(Principal(id=user_id, roles=frozenset(roles)), TEST_SECRET, config)
        return {config.authorization_header: f"{config.bearer_prefix} {token}"}

    return _headers


@pytest.fixture
def as_admin(school, auth_headers):
    return auth_headers(school.admin, Role.ADMIN)


@pytest.fixture
def as_teacher(school, auth_headers):
    return auth_headers(school.teacher, Role.TEACHER)


@pytest.fixture
def as_parent(school, auth_headers):
    return auth_headers(school.parent, Role.PARENT)
