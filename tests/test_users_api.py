"""
tests/test_users_api.py -- Integration tests for api/routes/v1/users.py.

Coverage:
  - login maps each outcome to its own status code and error code
  - check-admin returns is_admin, and 503 on a store outage
  - registration: 201 unverified, 409 on taken username / email, 422 on bad input
  - new passwords are limited to 72 UTF-8 bytes (422, never a 500)
  - profile edit resets verified; password change; batch verify; deletes
  - responses never leak the password hash
  - health endpoint reports database status
"""

from __future__ import annotations

from unittest.mock import MagicMock

from accounts.errors import StorageError

_REGISTRATION = {
    "username": "dave",
    "email": "dave@example.com",
    "first_name": "Dave",
    "last_name_1": "Grohl",
    "password": "long-enough-pw",
}


class TestLogin:
    def test_success_returns_user_id(self, api_client, register):
        client, _ = api_client
        alice = register("alice", "correct-pw", verified=True)

        resp = client.post("/api/v1/users/login", json={"username": "alice", "password": "correct-pw"})

        assert resp.status_code == 200
        assert resp.json()["user_id"] == alice.id
        assert resp.headers["Cache-Control"] == "no-store"

    def test_wrong_password_is_401(self, api_client, register):
        client, _ = api_client
        register("alice", "correct-pw", verified=True)

        resp = client.post("/api/v1/users/login", json={"username": "alice", "password": "wrong"})

        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "invalid_password"

    def test_unknown_user_is_404(self, api_client):
        client, _ = api_client
        resp = client.post("/api/v1/users/login", json={"username": "bob", "password": "x"})
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "user_not_found"

    def test_unverified_is_403(self, api_client, register):
        client, _ = api_client
        register("carol", "pw123456")

        resp = client.post("/api/v1/users/login", json={"username": "carol", "password": "pw123456"})

        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "not_verified"

    def test_missing_fields_is_422(self, api_client):
        client, _ = api_client
        resp = client.post("/api/v1/users/login", json={"username": "alice"})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"


class TestCheckAdmin:
    def test_admin_and_regular(self, api_client, register):
        client, store = api_client
        root = register("root")
        alice = register("alice")
        store.grant_admin(root.id)

        admin_resp = client.post("/api/v1/users/check-admin", json={"user_id": root.id})
        user_resp = client.post("/api/v1/users/check-admin", json={"user_id": alice.id})

        assert admin_resp.status_code == 200
        assert admin_resp.json()["is_admin"] is True
        assert user_resp.status_code == 200
        assert user_resp.json()["is_admin"] is False

    def test_store_outage_is_503_not_regular_user(self, api_client):
        client, _ = api_client
        failing = MagicMock()
        failing.check_admin_role.side_effect = StorageError("Account store unavailable")
        client.app.state.workflow = failing

        resp = client.post("/api/v1/users/check-admin", json={"user_id": 1})

        assert resp.status_code == 503
        assert resp.json()["error"]["code"] == "storage_unavailable"


class TestRegistration:
    def test_creates_unverified_account(self, api_client):
        client, store = api_client
        resp = client.post("/api/v1/users", json=_REGISTRATION)

        assert resp.status_code == 201
        data = resp.json()
        assert data["username"] == "dave"
        assert data["verified"] is False
        assert "password" not in data
        assert "password_hash" not in data
        assert store.find_by_username("dave") is not None

    def test_taken_username_is_409(self, api_client, register):
        client, _ = api_client
        register("dave", email="other@example.com")

        resp = client.post("/api/v1/users", json=_REGISTRATION)

        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "username_taken"

    def test_taken_email_is_409(self, api_client, register):
        client, _ = api_client
        register("someone", email="dave@example.com")

        resp = client.post("/api/v1/users", json=_REGISTRATION)

        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "email_taken"

    def test_short_password_rejected(self, api_client):
        client, _ = api_client
        resp = client.post("/api/v1/users", json={**_REGISTRATION, "password": "short"})
        assert resp.status_code == 422

    def test_multibyte_password_over_byte_limit_rejected(self, api_client):
        """40 characters pass the length check but are 80 bytes, past bcrypt's input limit."""
        client, store = api_client
        resp = client.post("/api/v1/users", json={**_REGISTRATION, "password": "é" * 40})

        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "validation_error"
        assert "password" in error["detail"]
        assert "72 bytes" in error["detail"]
        assert store.find_by_username("dave") is None


class TestAccountManagement:
    def test_get_user_and_404(self, api_client, register):
        client, _ = api_client
        alice = register("alice")

        assert client.get(f"/api/v1/users/{alice.id}").json()["username"] == "alice"
        resp = client.get("/api/v1/users/9999")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_profile_patch_resets_verified(self, api_client, register):
        client, _ = api_client
        alice = register("alice", verified=True)

        resp = client.patch(f"/api/v1/users/{alice.id}", json={"email": "new@example.com"})

        assert resp.status_code == 200
        data = resp.json()
        assert data["email"] == "new@example.com"
        assert data["first_name"] == alice.first_name
        assert data["verified"] is False

    def test_profile_patch_unknown_id_is_404(self, api_client):
        client, _ = api_client
        resp = client.patch("/api/v1/users/9999", json={"first_name": "X"})
        assert resp.status_code == 404

    def test_profile_patch_email_collision_is_409(self, api_client, register):
        client, _ = api_client
        register("alice")
        bob = register("bob")

        resp = client.patch(f"/api/v1/users/{bob.id}", json={"email": "alice@example.com"})

        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "email_taken"

    def test_password_change_then_login(self, api_client, register):
        client, _ = api_client
        alice = register("alice", "old-password", verified=True)

        resp = client.put(f"/api/v1/users/{alice.id}/password", json={"password": "new-password"})
        assert resp.status_code == 204

        old = client.post("/api/v1/users/login", json={"username": "alice", "password": "old-password"})
        new = client.post("/api/v1/users/login", json={"username": "alice", "password": "new-password"})
        assert old.status_code == 401
        assert new.status_code == 200

    def test_password_change_unknown_id_is_404(self, api_client):
        client, _ = api_client
        resp = client.put("/api/v1/users/9999/password", json={"password": "new-password"})
        assert resp.status_code == 404

    def test_password_change_over_byte_limit_is_422(self, api_client, register):
        client, store = api_client
        alice = register("alice", "old-password", verified=True)

        resp = client.put(f"/api/v1/users/{alice.id}/password", json={"password": "é" * 40})

        assert resp.status_code == 422
        assert store.find_by_id(alice.id).password_hash == alice.password_hash

    def test_batch_verify_ignores_unknown(self, api_client, register):
        client, store = api_client
        register("alice")

        resp = client.post("/api/v1/users/verify", json={"usernames": ["alice", "bob"]})

        assert resp.status_code == 200
        assert resp.json() == {"requested": 2, "verified": 1}
        assert store.find_by_username("alice").verified is True

    def test_delete_by_id_and_username(self, api_client, register):
        client, store = api_client
        alice = register("alice")
        register("bob")

        assert client.delete(f"/api/v1/users/{alice.id}").json() == {"deleted": 1}
        assert client.delete("/api/v1/users/by-username/bob").json() == {"deleted": 1}
        assert store.find_by_username("bob") is None

    def test_delete_missing_reports_zero(self, api_client):
        client, _ = api_client
        resp = client.delete("/api/v1/users/9999")
        assert resp.status_code == 200
        assert resp.json() == {"deleted": 0}
        assert client.delete("/api/v1/users/by-username/ghost").json() == {"deleted": 0}


class TestHealth:
    def test_health_reports_database(self, api_client):
        client, _ = api_client
        resp = client.get("/api/v1/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["components"] == {"app": "ok", "database": "ok"}
