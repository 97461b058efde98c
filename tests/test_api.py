"""
End-to-end tests through the HTTP surface.
"""

from errors import StoreError
from main import create_app


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "login" in response.json()["endpoints"]


# ── Login / logout ───────────────────────────────────────────────────

def test_login_returns_role_landing_page(client):
    response = client.post("/auth/login", json={"email": "a@h.com", "password": "nurse123"})
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["redirect_to"] == "patients.html"
    assert body["principal"]["role"] == "Nurse"
    assert "admin.html" not in body["principal"]["pages"]


def test_login_bad_password(client):
    response = client.post("/auth/login", json={"email": "a@h.com", "password": "nope"})
    assert response.status_code == 401


def test_login_without_assignment_is_denied(client, login):
    admin = login("admin@h.com", "admin123")
    created = client.post(
        "/users/",
        json={"email": "b@h.com", "display_name": "Bob", "password": "bob12345"},
        headers=admin,
    )
    assert created.status_code == 201
    assert created.json()["assignment"] is None

    response = client.post("/auth/login", json={"email": "b@h.com", "password": "bob12345"})
    assert response.status_code == 403
    assert response.json()["sign_out"] is True
    assert "Contact administrator" in response.json()["detail"]


def test_logout_clears_session(client, login):
    headers = login("a@h.com", "nurse123")
    assert client.get("/users/me", headers=headers).status_code == 200
    assert client.post("/auth/logout", headers=headers).status_code == 204
    assert client.get("/users/me", headers=headers).status_code == 401


def test_logout_without_session(client):
    assert client.post("/auth/logout").status_code == 204


def test_garbage_token_is_unauthenticated(client):
    response = client.get("/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_login_store_outage_is_retryable(client, monkeypatch):
    services = client.app.state.services

    def unreachable(identity_key):
        raise StoreError("down")

    monkeypatch.setattr(services.store, "get_assignment", unreachable)
    response = client.post("/auth/login", json={"email": "a@h.com", "password": "nurse123"})
    assert response.status_code == 503
    assert response.json()["retry"] is True


# ── Current principal, navigation, permission checks ─────────────────

def test_users_me(client, login):
    body = client.get("/users/me", headers=login("doc@h.com", "doctor123")).json()
    assert body["role"] == "Doctor"
    assert body["department"] == "Cardiology"
    assert "prescriptions.create" in body["permissions"]


def test_navigation(client, login):
    nav = client.get("/navigation", headers=login("a@h.com", "nurse123")).json()
    assert [item["url"] for item in nav] == [
        "index.html", "patients.html", "triage.html", "lab.html", "pharmacy.html",
    ]


def test_permission_check(client, login):
    headers = login("a@h.com", "nurse123")
    allowed = client.get("/permissions/check", params={"permission": "triage.create"}, headers=headers)
    denied = client.get("/permissions/check", params={"permission": "billing.create"}, headers=headers)
    assert allowed.json() == {"permission": "triage.create", "allowed": True}
    assert denied.json()["allowed"] is False


# ── Page guard ───────────────────────────────────────────────────────

def test_page_denied_for_nurse(client, login):
    response = client.get("/pages/admin.html", headers=login("a@h.com", "nurse123"))
    assert response.status_code == 403
    assert response.json()["title"] == "Access Denied"
    assert response.json()["return_to"] == "index.html"


def test_page_unauthenticated(client):
    response = client.get("/pages/index.html")
    assert response.status_code == 401
    assert response.json()["return_to"] == "login.html"


def test_dashboard_page(client, login):
    response = client.get("/pages/index.html", headers=login("a@h.com", "nurse123"))
    assert response.status_code == 200
    body = response.json()
    assert body["content"]["welcome"] == "Welcome Alice Nurse: Ward A"
    assert body["principal"]["role"] == "Nurse"


def test_admin_page_shows_stats(client, login):
    response = client.get("/pages/admin.html", headers=login("admin@h.com", "admin123"))
    assert response.status_code == 200
    stats = response.json()["content"]["stats"]
    assert stats["total_users"] == 3
    assert stats["admin_users"] == 1


# ── Role administration ──────────────────────────────────────────────

def test_admin_changes_role(client, login):
    admin = login("admin@h.com", "admin123")
    response = client.patch("/assignments/a@h.com/role", json={"role": "Lab"}, headers=admin)
    assert response.status_code == 200
    assert response.json()["role"] == "Lab"

    nurse_again = login("a@h.com", "nurse123")
    assert client.get("/pages/lab.html", headers=nurse_again).status_code == 200
    me = client.get("/users/me", headers=nurse_again).json()
    assert "labResults.create" in me["permissions"]

    history = client.get("/assignments/a@h.com/history", headers=admin).json()
    assert history[0]["old_role"] == "Nurse"
    assert history[0]["new_role"] == "Lab"


def test_role_change_not_seen_by_open_session(client, login):
    nurse = login("a@h.com", "nurse123")
    admin = login("admin@h.com", "admin123")
    client.patch("/assignments/a@h.com/role", json={"role": "Lab"}, headers=admin)
    assert client.get("/users/me", headers=nurse).json()["role"] == "Nurse"


def test_non_admin_cannot_assign(client, login):
    admin = login("admin@h.com", "admin123")
    before = client.get("/assignments", headers=admin).json()

    nurse = login("a@h.com", "nurse123")
    response = client.put("/assignments/x@h.com", json={"role": "Doctor"}, headers=nurse)
    assert response.status_code == 403

    assert client.get("/assignments", headers=admin).json() == before


def test_non_admin_cannot_list_or_create(client, login):
    nurse = login("a@h.com", "nurse123")
    assert client.get("/assignments", headers=nurse).status_code == 403
    assert client.get("/roles", headers=nurse).status_code == 403
    response = client.post(
        "/users/",
        json={"email": "c@h.com", "display_name": "C", "password": "c1234567", "role": "Admin"},
        headers=nurse,
    )
    assert response.status_code == 403


def test_assign_is_idempotent(client, login):
    admin = login("admin@h.com", "admin123")
    for _ in range(2):
        response = client.put("/assignments/x@h.com", json={"role": "Doctor"}, headers=admin)
        assert response.status_code == 200
    matches = [a for a in client.get("/assignments", headers=admin).json() if a["identity_key"] == "x@h.com"]
    assert len(matches) == 1
    assert matches[0]["role"] == "Doctor"


def test_assign_unknown_role(client, login):
    admin = login("admin@h.com", "admin123")
    response = client.put("/assignments/x@h.com", json={"role": "Janitor"}, headers=admin)
    assert response.status_code == 400


def test_revoke_blocks_next_login(client, login):
    admin = login("admin@h.com", "admin123")
    assert client.delete("/assignments/a@h.com", headers=admin).status_code == 204
    response = client.post("/auth/login", json={"email": "a@h.com", "password": "nurse123"})
    assert response.status_code == 403
    assert client.delete("/assignments/a@h.com", headers=admin).status_code == 404


def test_deactivate_blocks_next_login(client, login):
    admin = login("admin@h.com", "admin123")
    response = client.patch("/assignments/a@h.com/status", json={"status": "inactive"}, headers=admin)
    assert response.status_code == 200
    assert response.json()["status"] == "inactive"
    assert client.post("/auth/login", json={"email": "a@h.com", "password": "nurse123"}).status_code == 403


def test_create_user_with_role_can_sign_in(client, login):
    admin = login("admin@h.com", "admin123")
    created = client.post(
        "/users/",
        json={
            "email": "pharm@h.com",
            "display_name": "Pat",
            "password": "pharm123",
            "role": "Pharmacy",
            "department": "Dispensary",
        },
        headers=admin,
    )
    assert created.status_code == 201
    assert created.json()["assignment"]["role"] == "Pharmacy"

    response = client.post("/auth/login", json={"email": "pharm@h.com", "password": "pharm123"})
    assert response.json()["redirect_to"] == "pharmacy.html"

    duplicate = client.post(
        "/users/",
        json={"email": "pharm@h.com", "display_name": "Pat", "password": "pharm123"},
        headers=admin,
    )
    assert duplicate.status_code == 400


def test_filter_assignments(client, login):
    admin = login("admin@h.com", "admin123")
    rows = client.get("/assignments", params={"q": "cardio"}, headers=admin).json()
    assert [r["identity_key"] for r in rows] == ["doc@h.com"]


def test_roles_listing(client, login):
    admin = login("admin@h.com", "admin123")
    roles = client.get("/roles", headers=admin).json()
    assert len(roles) == 8
    lab = client.get("/roles/Lab", headers=admin).json()
    assert "labResults.create" in lab["permissions"]
    assert client.get("/roles/Janitor", headers=admin).status_code == 404


# ── Startup ──────────────────────────────────────────────────────────

def test_startup_creates_seeded_admin(tmp_path):
    from fastapi.testclient import TestClient

    app = create_app(database_path=str(tmp_path / "fresh.db"))
    with TestClient(app) as fresh:
        response = fresh.post("/auth/login", json={"email": "admin@hospital.com", "password": "admin123"})
        assert response.status_code == 200
        assert response.json()["redirect_to"] == "admin.html"


def test_create_user_with_unknown_role_stores_nothing(client, login):
    admin = login("admin@h.com", "admin123")
    payload = {"email": "late@h.com", "display_name": "Lee", "password": "late1234", "role": "Janitor"}

    rejected = client.post("/users/", json=payload, headers=admin)
    assert rejected.status_code == 400

    payload["role"] = "Doctor"
    retried = client.post("/users/", json=payload, headers=admin)
    assert retried.status_code == 201
    assert retried.json()["assignment"]["role"] == "Doctor"

