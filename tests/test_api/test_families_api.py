"""
Tests for auth, families and admin maintenance endpoints
"""
import pytest
from fastapi.testclient import TestClient

from family_ledger.main import app
from family_ledger.application import families as families_module
from family_ledger.infrastructure.db.models import User, Family

PASSWORD = "correct-horse"


@pytest.fixture
def register(client):
    """register("alice") -> logged-in TestClient with its own cookie jar"""
    def _register(name: str) -> TestClient:
        user_client = TestClient(app)
        response = user_client.post(
            "/api/v1/auth/register",
            json={"email": f"{name}@example.com", "password": PASSWORD, "name": name.capitalize()},
        )
        assert response.status_code == 201, response.text
        return user_client
    return _register


def _current_family_id(user_client: TestClient) -> int:
    return user_client.get("/api/v1/auth/me").json()["current_family_id"]


class TestAuthApi:
    def test_register_creates_default_family(self, register):
        alice = register("alice")

        families = alice.get("/api/v1/families").json()

        assert len(families) == 1
        assert families[0]["name"] == "Alice's Family"
        assert families[0]["role"] == "owner"
        assert families[0]["is_current"] is True
        assert families[0]["id"] == _current_family_id(alice)

    def test_duplicate_email(self, client, register):
        register("alice")
        response = client.post(
            "/api/v1/auth/register",
            json={"email": "ALICE@example.com", "password": PASSWORD, "name": "Other"},
        )
        assert response.status_code == 409

    def test_short_password(self, client):
        response = client.post(
            "/api/v1/auth/register",
            json={"email": "bob@example.com", "password": "short", "name": "Bob"},
        )
        assert response.status_code == 400

    def test_login_and_logout(self, client, register):
        register("alice")

        bad = client.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": "wrong-pass"})
        assert bad.status_code == 401

        good = client.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
        assert good.status_code == 200
        assert client.get("/api/v1/auth/me").json()["email"] == "alice@example.com"

        assert client.post("/api/v1/auth/logout").status_code == 204
        assert client.get("/api/v1/auth/me").status_code == 401

    def test_failed_registration_leaves_no_account(self, client, db_session, monkeypatch):
        def broken_seed(db, family_id):
            raise RuntimeError("seed failed")

        monkeypatch.setattr(families_module, "seed_default_categories", broken_seed)
        failing = TestClient(app, raise_server_exceptions=False)

        response = failing.post(
            "/api/v1/auth/register",
            json={"email": "carol@example.com", "password": PASSWORD, "name": "Carol"},
        )

        assert response.status_code == 500
        assert db_session.query(User).filter(User.email == "carol@example.com").count() == 0
        assert db_session.query(Family).count() == 0

    def test_anonymous_requests_are_rejected(self, client):
        assert client.get("/api/v1/families").status_code == 401
        assert client.get("/api/v1/assets").status_code == 401


class TestFamiliesApi:
    def test_join_by_invite_code_and_act_via_header(self, register):
        alice = register("alice")
        bob = register("bob")
        alice_family = _current_family_id(alice)
        bob_family = _current_family_id(bob)
        code = alice.get(f"/api/v1/families/{alice_family}").json()["invite_code"]

        joined = bob.post("/api/v1/families/join", json={"invite_code": code.lower()})

        assert joined.status_code == 201
        assert joined.json()["role"] == "member"
        # Bob already had a family, so it stays his active one
        assert _current_family_id(bob) == bob_family

        response = bob.get("/api/v1/assets", headers={"X-Family-Id": str(alice_family)})
        assert response.status_code == 200
        assert response.json() == []

        again = bob.post("/api/v1/families/join", json={"invite_code": code})
        assert again.status_code == 409

    def test_unknown_invite_code(self, register):
        alice = register("alice")
        assert alice.post("/api/v1/families/join", json={"invite_code": "NOPE0000"}).status_code == 404

    def test_family_header_errors(self, register):
        alice = register("alice")
        bob = register("bob")
        bob_family = _current_family_id(bob)

        assert alice.get("/api/v1/assets", headers={"X-Family-Id": str(bob_family)}).status_code == 403
        assert alice.get("/api/v1/assets", headers={"X-Family-Id": "abc"}).status_code == 400
        assert alice.get("/api/v1/assets", headers={"X-Family-Id": "9999"}).status_code == 404

    def test_viewer_can_read_but_not_write(self, register, client):
        alice = register("alice")
        bob = register("bob")
        alice_family = _current_family_id(alice)
        bob_id = bob.get("/api/v1/auth/me").json()["id"]

        added = alice.post(f"/api/v1/families/{alice_family}/members", json={"user_id": bob_id, "role": "viewer"})
        assert added.status_code == 201

        headers = {"X-Family-Id": str(alice_family)}
        category_id = alice.get("/api/v1/assets/categories").json()[1]["children"][0]["id"]
        assert bob.get("/api/v1/assets/statistics", headers=headers).status_code == 200
        created = bob.post(
            "/api/v1/assets",
            json={"name": "Wallet", "category_id": category_id, "initial_value": "10"},
            headers=headers,
        )
        assert created.status_code == 403

    def test_owner_cannot_be_granted_through_api(self, register):
        alice = register("alice")
        bob = register("bob")
        alice_family = _current_family_id(alice)
        bob_id = bob.get("/api/v1/auth/me").json()["id"]

        response = alice.post(f"/api/v1/families/{alice_family}/members", json={"user_id": bob_id, "role": "owner"})
        assert response.status_code == 403

    def test_role_change_and_removal(self, register):
        alice = register("alice")
        bob = register("bob")
        alice_family = _current_family_id(alice)
        bob_id = bob.get("/api/v1/auth/me").json()["id"]
        alice.post(f"/api/v1/families/{alice_family}/members", json={"user_id": bob_id})

        promoted = alice.patch(f"/api/v1/families/{alice_family}/members/{bob_id}", json={"role": "admin"})
        assert promoted.json()["role"] == "admin"

        assert alice.delete(f"/api/v1/families/{alice_family}/members/{bob_id}").status_code == 204
        headers = {"X-Family-Id": str(alice_family)}
        assert bob.get("/api/v1/assets", headers=headers).status_code == 403

    def test_switch_family(self, register):
        alice = register("alice")
        bob = register("bob")
        alice_family = _current_family_id(alice)
        code = alice.get(f"/api/v1/families/{alice_family}").json()["invite_code"]
        bob.post("/api/v1/families/join", json={"invite_code": code})

        switched = bob.post(f"/api/v1/families/{alice_family}/switch")

        assert switched.status_code == 200
        assert switched.json() == {"current_family_id": alice_family}
        assert _current_family_id(bob) == alice_family

    def test_switch_to_foreign_family_is_forbidden(self, register):
        alice = register("alice")
        bob = register("bob")
        assert bob.post(f"/api/v1/families/{_current_family_id(alice)}/switch").status_code == 403

    def test_create_then_delete_family(self, register):
        alice = register("alice")
        home = _current_family_id(alice)

        created = alice.post("/api/v1/families", json={"name": "Holiday house"})
        assert created.status_code == 201
        holiday = created.json()["id"]
        assert _current_family_id(alice) == holiday

        deleted = alice.delete(f"/api/v1/families/{holiday}")
        assert deleted.status_code == 200
        assert deleted.json() == {"current_family_id": home}
        assert alice.get(f"/api/v1/families/{holiday}").status_code == 404

    def test_deleting_another_family_keeps_the_session_family(self, register):
        alice = register("alice")
        home = _current_family_id(alice)
        boat = alice.post("/api/v1/families", json={"name": "Boat club"}).json()["id"]
        cabin = alice.post("/api/v1/families", json={"name": "Cabin"}).json()["id"]
        alice.post(f"/api/v1/families/{boat}/switch")

        # A second browser session moves the stored default back home
        other_tab = TestClient(app)
        other_tab.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
        other_tab.post(f"/api/v1/families/{home}/switch")

        deleted = alice.delete(f"/api/v1/families/{cabin}")

        assert deleted.status_code == 200
        assert deleted.json() == {"current_family_id": boat}
        assert _current_family_id(alice) == boat

    def test_only_owner_deletes(self, register):
        alice = register("alice")
        bob = register("bob")
        alice_family = _current_family_id(alice)
        bob_id = bob.get("/api/v1/auth/me").json()["id"]
        alice.post(f"/api/v1/families/{alice_family}/members", json={"user_id": bob_id, "role": "admin"})

        assert bob.delete(f"/api/v1/families/{alice_family}").status_code == 403

    def test_rename(self, register):
        alice = register("alice")
        family_id = _current_family_id(alice)

        response = alice.patch(f"/api/v1/families/{family_id}", json={"name": "The Smiths"})

        assert response.status_code == 200
        assert response.json()["name"] == "The Smiths"


class TestAdminMaintenanceApi:
    def test_requires_admin(self, register):
        alice = register("alice")
        assert alice.post("/api/v1/admin/maintenance/init-users").status_code == 403

    def test_init_users_and_migrate(self, register, db_session, make_user):
        admin = register("admin")
        db_session.query(User).filter(User.email == "admin@example.com").update({User.is_admin: True})
        db_session.commit()
        make_user("loner")

        init = admin.post("/api/v1/admin/maintenance/init-users")
        assert init.status_code == 200
        assert init.json() == {"processed": 1, "succeeded": 1, "failed": 0}

        migrated = admin.post("/api/v1/admin/maintenance/migrate-orphans")
        assert migrated.status_code == 200
        assert migrated.json()["assets"]["processed"] == 0

    def test_migrate_unknown_user(self, register, db_session):
        admin = register("admin")
        db_session.query(User).filter(User.email == "admin@example.com").update({User.is_admin: True})
        db_session.commit()

        assert admin.post("/api/v1/admin/maintenance/migrate-user/9999").status_code == 404


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.text == "ok"
