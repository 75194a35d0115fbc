"""
Pytest fixtures for pawnshop backend tests.

Provides test database setup, branch (tenant) fixtures, staff of every
role, bearer-token helpers and the test client.
"""

import pytest

from pawnshop import create_app
from pawnshop.cli import seed_categories
from pawnshop.config import TestConfig
from pawnshop.extensions import db
from pawnshop.models import Branch, Staff
from pawnshop.permissions import Role
from pawnshop.services import ticket_service
from pawnshop.services.staff_service import hash_credential


DEFAULT_CREDENTIAL = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        seed_categories()

        yield db.session

        db.session.rollback()


def _make_branch(db_session, name: str) -> Branch:
    branch = Branch(name=name, location=f"{name} Street", is_active=True)
    db_session.add(branch)
    db_session.commit()
    return branch


def _make_staff(db_session, *, email: str, role: Role, branch: Branch | None) -> Staff:
    staff = Staff(
        full_name=email.split("@")[0].replace(".", " ").title(),
        email=email,
        credential_hash=hash_credential(DEFAULT_CREDENTIAL),
        role=role.value,
        branch_id=branch.id if branch else None,
        is_active=True,
    )
    db_session.add(staff)
    db_session.commit()
    return staff


@pytest.fixture(scope='function')
def branch_a(db_session):
    """Branch A (first tenant)."""
    return _make_branch(db_session, "Branch A")


@pytest.fixture(scope='function')
def branch_b(db_session):
    """Branch B (second tenant)."""
    return _make_branch(db_session, "Branch B")


@pytest.fixture(scope='function')
def make_staff(db_session):
    def _factory(email: str, role: Role, branch: Branch | None = None) -> Staff:
        return _make_staff(db_session, email=email, role=role, branch=branch)
    return _factory


@pytest.fixture(scope='function')
def super_admin(make_staff):
    return make_staff("root@platform.test", Role.SUPER_ADMIN)


@pytest.fixture(scope='function')
def admin_a(make_staff, branch_a):
    return make_staff("admin@a.test", Role.BRANCH_ADMIN, branch_a)


@pytest.fixture(scope='function')
def staff_a(make_staff, branch_a):
    return make_staff("clerk@a.test", Role.STAFF, branch_a)


@pytest.fixture(scope='function')
def manager_a(make_staff, branch_a):
    return make_staff("manager@a.test", Role.MANAGER, branch_a)


@pytest.fixture(scope='function')
def owner_a(make_staff, branch_a):
    return make_staff("owner@a.test", Role.OWNER, branch_a)


@pytest.fixture(scope='function')
def admin_b(make_staff, branch_b):
    return make_staff("admin@b.test", Role.BRANCH_ADMIN, branch_b)


def get_auth_token(client, email: str, credential: str = DEFAULT_CREDENTIAL) -> str:
    """Helper to get auth token for a staff member."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'credential': credential,
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def super_headers(client, super_admin):
    return auth_headers(get_auth_token(client, super_admin.email))


@pytest.fixture(scope='function')
def admin_headers(client, admin_a):
    return auth_headers(get_auth_token(client, admin_a.email))


@pytest.fixture(scope='function')
def staff_headers(client, staff_a):
    return auth_headers(get_auth_token(client, staff_a.email))


@pytest.fixture(scope='function')
def manager_headers(client, manager_a):
    return auth_headers(get_auth_token(client, manager_a.email))


@pytest.fixture(scope='function')
def owner_headers(client, owner_a):
    return auth_headers(get_auth_token(client, owner_a.email))


@pytest.fixture(scope='function')
def admin_b_headers(client, admin_b):
    return auth_headers(get_auth_token(client, admin_b.email))


@pytest.fixture(scope='function')
def make_ticket(db_session):
    """Create a ticket through the intake service."""
    def _factory(branch: Branch, **overrides):
        fields = {
            "category": "Gold Jewelry",
            "weight": 60,
            "customer_name": "Maria Santos",
        }
        fields.update(overrides)
        return ticket_service.create_ticket(branch.id, **fields)
    return _factory
