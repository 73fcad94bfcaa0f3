"""
Shared pytest fixtures for the budget-gated workflow test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - stakeholder / team_member / manager / admin: one User per role
    - make_user: factory for additional users
    - auth_headers: bearer headers for a user
    - project: project created via the API by ``manager``
    - budget_item: pending budget item on ``project``
"""

import pytest

from app import create_app
from app.models import db as _db
from app.models.auth import User
from app.services.jwt_service import generate_access_token
from app.utils.crypto import hash_password

TEST_PASSWORD = "secret123"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Users & auth ─────────────────────────────────────────────────────────


@pytest.fixture()
def make_user():
    """Factory: insert a user with the given role and return it."""
    counter = {"n": 0}

    def _make(role="team_member", name=None, email=None):
        counter["n"] += 1
        user = User(
            email=email or f"{role}{counter['n']}@example.com",
            password_hash=hash_password(TEST_PASSWORD, rounds=4),
            name=name or f"{role.replace('_', ' ').title()} {counter['n']}",
            role=role,
        )
        _db.session.add(user)
        _db.session.commit()
        return user

    return _make


@pytest.fixture()
def stakeholder(make_user):
    return make_user("stakeholder", name="Sam Stakeholder")


@pytest.fixture()
def team_member(make_user):
    return make_user("team_member", name="Tia Member")


@pytest.fixture()
def manager(make_user):
    return make_user("project_manager", name="Pat Manager")


@pytest.fixture()
def admin(make_user):
    return make_user("admin", name="Ada Admin")


@pytest.fixture()
def auth_headers():
    """Return a function building Authorization headers for a user."""

    def _headers(user):
        token = generate_access_token(user.id, user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def project(client, manager, auth_headers):
    """Create and return a project owned by ``manager`` via the API."""
    res = client.post(
        "/api/projects",
        json={"name": "ERP Rollout", "description": "Finance module"},
        headers=auth_headers(manager),
    )
    assert res.status_code == 201
    return res.get_json()["data"]


@pytest.fixture()
def budget_item(client, project, manager, auth_headers):
    """Create and return a pending budget item on ``project``."""
    res = client.post(
        f"/api/projects/{project['id']}/budget-items",
        json={
            "budget_item_id": "BUD-001",
            "category": "Labor",
            "estimated_cost": 1000,
            "actual_cost": 0,
            "fiscal_period": "Q1-2024",
        },
        headers=auth_headers(manager),
    )
    assert res.status_code == 201
    return res.get_json()["data"]
