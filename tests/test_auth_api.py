# =============================================================================
# IDENTITY API SCAFFOLD - AUTH API TESTS
# =============================================================================
# File: tests/test_auth_api.py
# Description: Integration tests for the /api/auth endpoints
# =============================================================================

from datetime import timedelta

from fastapi.testclient import TestClient

from core.config import settings
from core.security import jwt_manager
from tests.conftest import STRONG_PASSWORD, auth_headers, register_user, login


class TestRegistration:
    """Test suite for POST /api/auth/register."""

    def test_register_success(self, client: TestClient):
        response = register_user(client, email="Bob@Example.com", first_name="Bob")

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Registration successful"
        assert body["token"]
        assert body["refresh_token"]
        assert body["user"]["email"] == "bob@example.com"
        # User name defaults to the address as entered
        assert body["user"]["user_name"].lower() == "bob@example.com"
        assert body["user"]["roles"] == [settings.default_role]
        assert body["user"]["full_name"] == "Bob"

    def test_register_duplicate_email_rejected(self, client: TestClient, registered_user: dict):
        response = register_user(client, email="ALICE@example.com", user_name="alice2")

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "A user with this email already exists"

    def test_register_duplicate_username_rejected(self, client: TestClient, registered_user: dict):
        response = register_user(client, email="other@example.com", user_name="ALICE")

        assert response.status_code == 400
        assert response.json()["message"] == "Username is already taken"

    def test_register_weak_password(self, client: TestClient):
        response = register_user(client, password="alllowercase")

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert any("uppercase" in e for e in body["errors"])

    def test_register_invalid_email(self, client: TestClient):
        response = register_user(client, email="not-an-email")

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Invalid data"
        assert body["errors"]

    def test_register_password_confirmation_mismatch(self, client: TestClient):
        response = client.post(
            "/api/auth/register",
            json={
                "email": "carol@example.com",
                "password": STRONG_PASSWORD,
                "confirm_password": STRONG_PASSWORD + "x",
            },
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid data"

    def test_register_padded_fields_trimmed(self, client: TestClient):
        response = register_user(client, email="  dave@example.com ", user_name=" dave ", first_name=" Dave ")

        assert response.status_code == 201
        user = response.json()["user"]
        assert user["email"] == "dave@example.com"
        assert user["user_name"] == "dave"
        assert user["first_name"] == "Dave"

    def test_email_unfit_for_username_needs_user_name(self, client: TestClient):
        response = register_user(client, email="o'brien@example.com")

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid data"

        response = register_user(client, email="o'brien@example.com", user_name="obrien")

        assert response.status_code == 201
        assert response.json()["user"]["user_name"] == "obrien"


class TestPasswordWhitespace:
    """Passwords are compared exactly as sent, surrounding spaces included."""

    def test_trailing_space_is_part_of_password(self, client: TestClient):
        assert register_user(client, email="erin@example.com", password="Abc1!xy ").status_code == 201

        assert login(client, "erin@example.com", "Abc1!xy").status_code == 401
        assert login(client, "erin@example.com", "Abc1!xy ").status_code == 200

    def test_padded_password_not_matched_by_trimmed_one(self, client: TestClient):
        register_user(client, email="fay@example.com", password=STRONG_PASSWORD + "   ")

        assert login(client, "fay@example.com", STRONG_PASSWORD).status_code == 401
        assert login(client, " fay@example.com ", STRONG_PASSWORD + "   ").status_code == 200


class TestLogin:
    """Test suite for POST /api/auth/login."""

    def test_login_with_email(self, client: TestClient, registered_user: dict):
        response = login(client, "alice@example.com")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Login successful"
        assert body["user"]["id"] == registered_user["user"]["id"]

    def test_login_with_username(self, client: TestClient, registered_user: dict):
        response = login(client, "alice")

        assert response.status_code == 200

    def test_login_wrong_password_rejected(self, client: TestClient, registered_user: dict):
        response = login(client, "alice@example.com", "Wr0ng!Password")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Invalid credentials"

    def test_login_unknown_user_rejected(self, client: TestClient):
        response = login(client, "nobody@example.com")

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"

    def test_deactivated_user_cannot_login(
        self,
        client: TestClient,
        registered_user: dict,
        admin_token: str,
    ):
        user_id = registered_user["user"]["id"]
        deactivate = client.delete(f"/api/users/{user_id}", headers=auth_headers(admin_token))
        assert deactivate.status_code == 200

        response = login(client, "alice@example.com")

        assert response.status_code == 401
        assert response.json()["message"] == "This account has been deactivated"

    def test_lockout_after_repeated_failures(self, client: TestClient, registered_user: dict):
        for _ in range(settings.max_login_attempts - 1):
            response = login(client, "alice@example.com", "Wr0ng!Password")
            assert response.json()["message"] == "Invalid credentials"

        locking = login(client, "alice@example.com", "Wr0ng!Password")
        assert locking.status_code == 401
        assert locking.json()["message"] == "Account locked. Please try again later."

        # Correct password is refused while the lockout runs
        response = login(client, "alice@example.com")
        assert response.status_code == 401
        assert response.json()["error_code"] == "ACCOUNT_LOCKED"

    def test_successful_login_resets_failure_count(self, client: TestClient, registered_user: dict):
        for _ in range(settings.max_login_attempts - 1):
            login(client, "alice@example.com", "Wr0ng!Password")

        assert login(client, "alice@example.com").status_code == 200

        response = login(client, "alice@example.com", "Wr0ng!Password")
        assert response.json()["message"] == "Invalid credentials"

    def test_remember_me_extends_access_token(self, client: TestClient, registered_user: dict):
        normal = login(client, "alice").json()
        remembered = login(client, "alice", remember_me=True).json()

        normal_exp = jwt_manager.decode_token(normal["token"]).exp
        remembered_exp = jwt_manager.decode_token(remembered["token"]).exp

        assert remembered_exp - normal_exp > timedelta(days=1)

    def test_login_missing_fields(self, client: TestClient):
        response = client.post("/api/auth/login", json={})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid data"


class TestTokens:
    """Refresh rotation, logout and bearer validation."""

    def test_refresh_rotates_tokens(self, client: TestClient, registered_user: dict):
        old_refresh = registered_user["refresh_token"]

        response = client.post("/api/auth/refresh", json={"refresh_token": old_refresh})

        assert response.status_code == 200
        body = response.json()
        assert body["refresh_token"] != old_refresh
        assert body["token"] != registered_user["token"]

    def test_refresh_token_reuse_revokes_family(self, client: TestClient, registered_user: dict):
        old_refresh = registered_user["refresh_token"]
        rotated = client.post("/api/auth/refresh", json={"refresh_token": old_refresh}).json()

        reuse = client.post("/api/auth/refresh", json={"refresh_token": old_refresh})
        assert reuse.status_code == 401
        assert reuse.json()["error_code"] == "TOKEN_REVOKED"

        # The legitimately rotated token died with the family
        response = client.post("/api/auth/refresh", json={"refresh_token": rotated["refresh_token"]})
        assert response.status_code == 401

    def test_access_token_cannot_refresh(self, client: TestClient, registered_user: dict):
        response = client.post("/api/auth/refresh", json={"refresh_token": registered_user["token"]})

        assert response.status_code == 401

    def test_me_returns_current_user(self, client: TestClient, registered_user: dict, user_token: str):
        response = client.get("/api/auth/me", headers=auth_headers(user_token))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["email"] == "alice@example.com"
        assert body["data"]["full_name"] == "Alice Liddell"

    def test_me_requires_authentication(self, client: TestClient):
        response = client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["message"] == "Authentication required"

    def test_malformed_token_rejected(self, client: TestClient):
        response = client.get("/api/auth/me", headers=auth_headers("not.a.jwt"))

        assert response.status_code == 401

    def test_expired_token_sets_header(self, client: TestClient, registered_user: dict):
        expired = jwt_manager._encode(registered_user["user"]["id"], "access", timedelta(seconds=-1))

        response = client.get("/api/auth/me", headers=auth_headers(expired.token))

        assert response.status_code == 401
        assert response.headers["Token-Expired"] == "true"
        assert response.json()["error_code"] == "TOKEN_EXPIRED"

    def test_logout_denies_access_token_and_refresh(
        self,
        client: TestClient,
        registered_user: dict,
        user_token: str,
    ):
        response = client.post("/api/auth/logout", headers=auth_headers(user_token))
        assert response.status_code == 200
        assert response.json()["message"] == "Logout successful"

        me = client.get("/api/auth/me", headers=auth_headers(user_token))
        assert me.status_code == 401
        assert me.json()["error_code"] == "TOKEN_REVOKED"

        refresh = client.post(
            "/api/auth/refresh",
            json={"refresh_token": registered_user["refresh_token"]},
        )
        assert refresh.status_code == 401


class TestCookieSessions:
    """Cookie login / logout."""

    def test_cookie_login_sets_session_cookie(self, client: TestClient, registered_user: dict):
        response = client.post(
            "/api/auth/cookie/login",
            json={"email_or_username": "alice", "password": STRONG_PASSWORD},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["token"] is None
        assert body["user"]["user_name"] == "alice"

        set_cookie = response.headers["set-cookie"]
        assert settings.session_cookie_name in set_cookie
        assert "HttpOnly" in set_cookie
        assert "Max-Age" not in set_cookie

    def test_cookie_authenticates_requests(self, client: TestClient, registered_user: dict):
        client.post(
            "/api/auth/cookie/login",
            json={"email_or_username": "alice", "password": STRONG_PASSWORD},
        )

        response = client.get("/api/auth/me")

        assert response.status_code == 200
        assert response.json()["data"]["user_name"] == "alice"

    def test_remember_me_cookie_is_persistent(self, client: TestClient, registered_user: dict):
        response = client.post(
            "/api/auth/cookie/login",
            json={"email_or_username": "alice", "password": STRONG_PASSWORD, "remember_me": True},
        )

        assert "Max-Age" in response.headers["set-cookie"]

    def test_cookie_login_wrong_password(self, client: TestClient, registered_user: dict):
        response = client.post(
            "/api/auth/cookie/login",
            json={"email_or_username": "alice", "password": "Wr0ng!Password"},
        )

        assert response.status_code == 401
        assert settings.session_cookie_name not in client.cookies

    def test_cookie_logout_ends_session(self, client: TestClient, registered_user: dict):
        login_response = client.post(
            "/api/auth/cookie/login",
            json={"email_or_username": "alice", "password": STRONG_PASSWORD},
        )
        session_cookie = login_response.cookies[settings.session_cookie_name]

        response = client.post("/api/auth/cookie/logout")
        assert response.status_code == 200

        # Replaying the old cookie value no longer works
        client.cookies.set(settings.session_cookie_name, session_cookie)
        me = client.get("/api/auth/me")
        assert me.status_code == 401
        assert me.json()["error_code"] == "SESSION_INVALID"


class TestPlatform:
    """Health endpoints, envelopes and middleware headers."""

    def test_health_check(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_readiness_reports_components(self, client: TestClient):
        response = client.get("/health/ready")

        assert response.status_code == 200
        components = response.json()["components"]
        assert components["database"]["status"] == "healthy"
        assert components["redis"]["status"] == "healthy"

    def test_request_id_and_security_headers(self, client: TestClient):
        response = client.get("/health/live", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_unknown_route_uses_envelope(self, client: TestClient):
        response = client.get("/api/does-not-exist")

        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_rate_limit_on_login(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_enabled", True)
        monkeypatch.setattr(settings, "rate_limit_auth_per_minute", 2)

        for _ in range(2):
            assert login(client, "nobody@example.com").status_code == 401

        response = login(client, "nobody@example.com")

        assert response.status_code == 429
        assert response.json()["error_code"] == "RATE_LIMIT_EXCEEDED"
        assert "Retry-After" in response.headers
