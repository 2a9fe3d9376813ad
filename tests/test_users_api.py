# =============================================================================
# IDENTITY API SCAFFOLD - USER API TESTS
# =============================================================================
# File: tests/test_users_api.py
# Description: Integration tests for the /api/users endpoints
# =============================================================================

from fastapi.testclient import TestClient

from core.config import settings
from tests.conftest import STRONG_PASSWORD, auth_headers, register_user, login


NEW_PASSWORD = "N3w!Passw0rd"


class TestUserListing:
    """GET /api/users and GET /api/users/{id}."""

    def test_admin_lists_active_users(
        self,
        client: TestClient,
        registered_user: dict,
        admin_token: str,
    ):
        response = client.get("/api/users", headers=auth_headers(admin_token))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        names = [u["user_name"] for u in body["data"]]
        assert names == sorted(names)
        assert {"admin", "alice"} <= set(names)

    def test_non_admin_cannot_list(self, client: TestClient, user_token: str):
        response = client.get("/api/users", headers=auth_headers(user_token))

        assert response.status_code == 403
        assert response.json()["success"] is False

    def test_user_reads_own_profile(self, client: TestClient, registered_user: dict, user_token: str):
        user_id = registered_user["user"]["id"]

        response = client.get(f"/api/users/{user_id}", headers=auth_headers(user_token))

        assert response.status_code == 200
        assert response.json()["data"]["id"] == user_id

    def test_user_cannot_read_other_profile(self, client: TestClient, user_token: str):
        other = register_user(client, email="bob@example.com", user_name="bob").json()

        response = client.get(f"/api/users/{other['user']['id']}", headers=auth_headers(user_token))

        assert response.status_code == 403

    def test_admin_reads_any_profile(self, client: TestClient, registered_user: dict, admin_token: str):
        user_id = registered_user["user"]["id"]

        response = client.get(f"/api/users/{user_id}", headers=auth_headers(admin_token))

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "alice@example.com"

    def test_missing_user_is_404(self, client: TestClient, admin_token: str):
        response = client.get("/api/users/does-not-exist", headers=auth_headers(admin_token))

        assert response.status_code == 404
        assert response.json()["success"] is False


class TestProfile:
    """PUT /api/users/me and PUT /api/users/me/password."""

    def test_update_profile(self, client: TestClient, user_token: str):
        response = client.put(
            "/api/users/me",
            json={"first_name": "Alicia", "phone_number": "+1 555 0100"},
            headers=auth_headers(user_token),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Profile updated successfully"
        assert body["data"]["first_name"] == "Alicia"
        # Omitted fields keep their value
        assert body["data"]["last_name"] == "Liddell"
        assert body["data"]["phone_number"] == "+1 555 0100"

    def test_update_profile_ignores_null_fields(self, client: TestClient, user_token: str):
        response = client.put(
            "/api/users/me",
            json={"first_name": "Alicia", "last_name": None},
            headers=auth_headers(user_token),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["first_name"] == "Alicia"
        assert data["last_name"] == "Liddell"

    def test_update_profile_rejects_bad_phone(self, client: TestClient, user_token: str):
        response = client.put(
            "/api/users/me",
            json={"phone_number": "call me maybe"},
            headers=auth_headers(user_token),
        )

        assert response.status_code == 400

    def test_change_password(self, client: TestClient, registered_user: dict, user_token: str):
        response = client.put(
            "/api/users/me/password",
            json={
                "current_password": STRONG_PASSWORD,
                "new_password": NEW_PASSWORD,
                "confirm_new_password": NEW_PASSWORD,
            },
            headers=auth_headers(user_token),
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Password changed successfully"

        assert login(client, "alice").status_code == 401
        assert login(client, "alice", NEW_PASSWORD).status_code == 200

        # Refresh tokens issued before the change are dead
        refresh = client.post(
            "/api/auth/refresh",
            json={"refresh_token": registered_user["refresh_token"]},
        )
        assert refresh.status_code == 401

    def test_change_password_wrong_current(self, client: TestClient, user_token: str):
        response = client.put(
            "/api/users/me/password",
            json={
                "current_password": "Wr0ng!Password",
                "new_password": NEW_PASSWORD,
                "confirm_new_password": NEW_PASSWORD,
            },
            headers=auth_headers(user_token),
        )

        assert response.status_code == 400
        assert response.json()["message"] == (
            "Password change failed. Please verify your current password."
        )

    def test_change_password_enforces_policy(self, client: TestClient, user_token: str):
        response = client.put(
            "/api/users/me/password",
            json={
                "current_password": STRONG_PASSWORD,
                "new_password": "weakpassword",
                "confirm_new_password": "weakpassword",
            },
            headers=auth_headers(user_token),
        )

        assert response.status_code == 400
        assert response.json()["errors"]


class TestAdministration:
    """Deactivation and role management."""

    def test_deactivate_user(
        self,
        client: TestClient,
        registered_user: dict,
        user_token: str,
        admin_token: str,
    ):
        user_id = registered_user["user"]["id"]

        response = client.delete(f"/api/users/{user_id}", headers=auth_headers(admin_token))

        assert response.status_code == 200
        assert response.json()["message"] == "User deactivated successfully"

        # Outstanding access token stops working
        me = client.get("/api/auth/me", headers=auth_headers(user_token))
        assert me.status_code == 401

        listing = client.get("/api/users", headers=auth_headers(admin_token)).json()
        assert user_id not in [u["id"] for u in listing["data"]]

    def test_non_admin_cannot_deactivate(self, client: TestClient, user_token: str):
        other = register_user(client, email="bob@example.com", user_name="bob").json()

        response = client.delete(f"/api/users/{other['user']['id']}", headers=auth_headers(user_token))

        assert response.status_code == 403

    def test_deactivate_missing_user(self, client: TestClient, admin_token: str):
        response = client.delete("/api/users/does-not-exist", headers=auth_headers(admin_token))

        assert response.status_code == 404

    def test_add_and_remove_role(
        self,
        client: TestClient,
        registered_user: dict,
        user_token: str,
        admin_token: str,
    ):
        user_id = registered_user["user"]["id"]
        role_url = f"/api/users/{user_id}/roles/{settings.admin_role}"

        added = client.post(role_url, headers=auth_headers(admin_token))
        assert added.status_code == 200
        assert added.json()["success"] is True

        # Role checks read the database, so the existing token gains access
        assert client.get("/api/users", headers=auth_headers(user_token)).status_code == 200

        removed = client.delete(role_url, headers=auth_headers(admin_token))
        assert removed.status_code == 200

        assert client.get("/api/users", headers=auth_headers(user_token)).status_code == 403

    def test_add_role_twice_rejected(self, client: TestClient, registered_user: dict, admin_token: str):
        user_id = registered_user["user"]["id"]

        response = client.post(
            f"/api/users/{user_id}/roles/{settings.default_role}",
            headers=auth_headers(admin_token),
        )

        assert response.status_code == 400
        assert "already has role" in response.json()["message"]

    def test_remove_role_not_held(self, client: TestClient, registered_user: dict, admin_token: str):
        user_id = registered_user["user"]["id"]

        response = client.delete(
            f"/api/users/{user_id}/roles/{settings.admin_role}",
            headers=auth_headers(admin_token),
        )

        assert response.status_code == 400

    def test_unknown_role_is_404(self, client: TestClient, registered_user: dict, admin_token: str):
        user_id = registered_user["user"]["id"]

        response = client.post(
            f"/api/users/{user_id}/roles/Auditor",
            headers=auth_headers(admin_token),
        )

        assert response.status_code == 404
