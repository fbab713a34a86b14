"""
Shared pytest fixtures for the Admissions Portal test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - complete_answers: every required field answered
    - applicant / applicant_headers: registered applicant + bearer header
    - admin / admin_headers, super_admin / super_admin_headers: staff accounts
"""

import copy

import pytest

from admissions import create_app
from admissions.models import db as _db
from admissions.models.user import ROLE_ADMIN, ROLE_SUPER_ADMIN


COMPLETE_ANSWERS = {
    "warmUp": {
        "animalQuestion": "A lion, because it leads the pride.",
        "accomplishment": "Ran a full marathon last spring.",
        "responseWhenLost": "I slow down and re-read the basics.",
    },
    "commitment": {
        "canCommit": "Yes",
        "incompleteCourses": "Once, a coding course I dropped.",
        "finishedHardThing": "Built a garden shed on my own.",
    },
    "purpose": {
        "whyTrade": "To build long-term financial independence.",
        "lifeChange": "I could support my family better.",
        "doingFor": "My kids, they deserve stability.",
        "disciplineMeaning": "Doing the work when nobody watches.",
    },
    "exclusivity": {
        "preparedInvestment": "Yes",
        "strongCandidate": "I finish what I start, always.",
        "firstPerson": "My partner, who always believed in me.",
    },
}


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


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


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def complete_answers():
    return copy.deepcopy(COMPLETE_ANSWERS)


@pytest.fixture()
def applicant():
    """A registered applicant (with an empty Draft application)."""
    from admissions.services.user_service import register_user

    return register_user({
        "firstName": "Ada",
        "lastName": "Applicant",
        "email": "ada@example.com",
        "password": "correct-horse",
    })


@pytest.fixture()
def applicant_headers(applicant):
    from admissions.services.jwt_service import generate_access_token

    return bearer(generate_access_token(applicant.id, applicant.role, applicant.email))


@pytest.fixture()
def admin():
    from admissions.services.user_service import create_admin

    return create_admin(
        {"firstName": "Rita", "lastName": "Reviewer", "email": "rita@example.com", "password": "review-pass"},
        role=ROLE_ADMIN,
    )


@pytest.fixture()
def admin_headers(admin):
    from admissions.services.jwt_service import generate_access_token

    return bearer(generate_access_token(admin.id, admin.role, admin.email))


@pytest.fixture()
def super_admin():
    from admissions.services.user_service import create_admin

    return create_admin(
        {"firstName": "Sam", "lastName": "Super", "email": "sam@example.com", "password": "super-pass"},
        role=ROLE_SUPER_ADMIN,
    )


@pytest.fixture()
def super_admin_headers(super_admin):
    from admissions.services.jwt_service import generate_access_token

    return bearer(generate_access_token(super_admin.id, super_admin.role, super_admin.email))
