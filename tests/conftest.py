"""
Shared fixtures: a fresh SQLite database per test and principal builders.
"""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from database import AssignmentStore, init_database, seed_identities
from identity import IdentityProvider
from main import create_app
from models import Principal
from role_admin import RoleAdministration
from roles import get_role
from session import IdentitySession, SessionCache

SEEDS = [
    ("admin@h.com", "Admin User", "admin123", "Admin", "Admin"),
    ("a@h.com", "Alice Nurse", "nurse123", "Nurse", "Ward A"),
    ("doc@h.com", "Dr Dan", "doctor123", "Doctor", "Cardiology"),
]


def make_principal(role_name: str, email: str = "someone@h.com", identity_id: int = 99) -> Principal:
    role = get_role(role_name)
    return Principal(
        identity_id=identity_id,
        email=email,
        display_name=email.split("@")[0],
        role=role.name,
        permissions=role.permissions,
        pages=role.pages,
        resolved_at=datetime.now(timezone.utc),
    )


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "hospital-test.db")
    init_database(path)
    seed_identities(path, SEEDS)
    return path


@pytest.fixture
def store(db_path):
    return AssignmentStore(db_path)


@pytest.fixture
def provider(db_path):
    return IdentityProvider(db_path)


@pytest.fixture
def cache():
    return SessionCache()


@pytest.fixture
def session(store, cache):
    return IdentitySession("test-session", store, cache)


@pytest.fixture
def admin_principal():
    return make_principal("Admin", email="admin@h.com", identity_id=1)


@pytest.fixture
def administration(store):
    return RoleAdministration(store)


@pytest.fixture
def client(tmp_path):
    app = create_app(database_path=str(tmp_path / "api-test.db"), seeds=SEEDS)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login(client):
    """Sign in and return bearer headers."""
    def _login(email, password):
        response = client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}
    return _login
