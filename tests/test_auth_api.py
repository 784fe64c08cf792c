"""
HTTP tests for the /api routes, including the full register → login →
refresh → logout flow.
"""

import pytest

from lulemo.app.api import deps
from lulemo.app.services import email_verification

PASSWORD = "abcd1234"
ADMIN_EMAIL = "admin@example.com"


def signup(client, email, password=PASSWORD):
    code = client.post("/api/auth/send-code", json={"email": email}).json()["devCode"]
    response = client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "code": code, "region": "Hanoi"},
    )
    assert response.status_code == 200, response.text
    return response


def login(client, email, password=PASSWORD):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


# ===========================================================================
# End to end
# ===========================================================================

class TestSessionLifecycle:
    def test_register_login_refresh_logout(self, client, clock, monkeypatch):
        monkeypatch.setattr(email_verification, "generate_code", lambda: "482913")

        sent = client.post("/api/auth/send-code", json={"email": "new@example.com"})
        assert sent.status_code == 200
        assert sent.json() == {"ok": True, "devCode": "482913"}

        registered = client.post("/api/auth/register", json={
            "email": "new@example.com",
            "password": "abcd1234",
            "code": "482913",
            "region": "Hanoi",
        })
        assert registered.status_code == 200
        assert registered.json() == {"ok": True}

        session = login(client, "new@example.com", "abcd1234")
        assert set(session) == {"accessToken", "accessExpiresAt", "refreshToken", "refreshExpiresAt", "user"}
        assert session["user"]["email"] == "new@example.com"
        assert session["user"]["region"] == "Hanoi"
        assert "passwordHash" not in session["user"]

        clock.advance(minutes=1)
        refreshed = client.post("/api/auth/refresh", json={"refreshToken": session["refreshToken"]})
        assert refreshed.status_code == 200
        body = refreshed.json()
        assert body["accessExpiresAt"] > session["accessExpiresAt"]
        assert "refreshToken" not in body

        me = client.get("/api/auth/me", headers=bearer(body["accessToken"]))
        assert me.status_code == 200
        assert me.json()["user"]["id"] == session["user"]["id"]

        assert client.post("/api/auth/logout", json={"refreshToken": session["refreshToken"]}).json() == {"ok": True}

        rejected = client.post("/api/auth/refresh", json={"refreshToken": session["refreshToken"]})
        assert rejected.status_code == 401
        assert rejected.json() == {"error": "invalid refresh token"}

    def test_reset_password_logs_out_everywhere(self, client):
        signup(client, "user@example.com")
        first = login(client, "user@example.com")
        second = login(client, "user@example.com")

        code = client.post("/api/auth/send-reset-code", json={"email": "user@example.com"}).json()["devCode"]
        reset = client.post(
            "/api/auth/reset-password",
            json={"email": "user@example.com", "code": code, "password": "brand-new-pass"},
        )
        assert reset.json() == {"ok": True}

        for session in (first, second):
            response = client.post("/api/auth/refresh", json={"refreshToken": session["refreshToken"]})
            assert response.status_code == 401

        assert client.post("/api/auth/login", json={"email": "user@example.com", "password": PASSWORD}).status_code == 401
        login(client, "user@example.com", "brand-new-pass")


# ===========================================================================
# Error bodies
# ===========================================================================

class TestErrors:
    def test_health(self, client):
        assert client.get("/api/health").json() == {"ok": True, "service": "lulemo-auth-api"}

    def test_duplicate_registration(self, client):
        signup(client, "user@example.com")
        response = client.post("/api/auth/send-code", json={"email": "user@example.com"})
        assert response.status_code == 409
        assert "error" in response.json()

    def test_reset_code_for_unknown_email(self, client):
        response = client.post("/api/auth/send-reset-code", json={"email": "ghost@example.com"})
        assert response.status_code == 404
        assert response.json() == {"error": "email not registered"}

    def test_wrong_code(self, client):
        client.post("/api/auth/send-code", json={"email": "user@example.com"})
        response = client.post("/api/auth/register", json={
            "email": "user@example.com", "password": PASSWORD, "code": "12345", "region": "",
        })
        assert response.status_code == 400
        assert response.json() == {"error": "verification code is invalid or expired"}

    def test_invalid_email(self, client):
        response = client.post("/api/auth/send-code", json={"email": "not-an-email"})
        assert response.status_code == 400
        assert response.json() == {"error": "invalid email address"}

    def test_malformed_body(self, client):
        response = client.post(
            "/api/auth/login",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "invalid request body"}

    def test_wrong_password(self, client):
        signup(client, "user@example.com")
        response = client.post("/api/auth/login", json={"email": "user@example.com", "password": "nope-nope"})
        assert response.status_code == 401
        assert response.json() == {"error": "incorrect email or password"}

    def test_me_requires_token(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json() == {"error": "not logged in"}

    def test_me_rejects_tampered_token(self, client):
        signup(client, "user@example.com")
        token = login(client, "user@example.com")["accessToken"]
        payload, signature = token.split(".")
        response = client.get("/api/auth/me", headers=bearer(f"{payload}x.{signature}"))
        assert response.status_code == 401

    def test_refresh_without_token(self, client):
        response = client.post("/api/auth/refresh", json={})
        assert response.status_code == 400
        assert response.json() == {"error": "missing refresh token"}

    def test_logout_without_token(self, client):
        assert client.post("/api/auth/logout", json={}).json() == {"ok": True}

    def test_delivery_not_configured(self, client, app, settings):
        live = settings.model_copy(update={"DEV_BYPASS_EMAIL": False})
        app.dependency_overrides[deps.get_app_settings] = lambda: live
        response = client.post("/api/auth/send-code", json={"email": "user@example.com"})
        assert response.status_code == 502
        assert response.json() == {"error": "email delivery is not configured"}

    def test_unknown_route(self, client):
        response = client.get("/api/nope")
        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}


# ===========================================================================
# Rotation flag
# ===========================================================================

class TestRefreshRotation:
    def test_rotation_returns_new_refresh_token(self, client, app, settings):
        app.dependency_overrides[deps.get_app_settings] = lambda: settings.model_copy(
            update={"REFRESH_TOKEN_ROTATION": True}
        )
        signup(client, "user@example.com")
        session = login(client, "user@example.com")

        rotated = client.post("/api/auth/refresh", json={"refreshToken": session["refreshToken"]}).json()
        assert rotated["refreshToken"] != session["refreshToken"]
        assert "refreshExpiresAt" in rotated

        replay = client.post("/api/auth/refresh", json={"refreshToken": session["refreshToken"]})
        assert replay.status_code == 401


# ===========================================================================
# Admin
# ===========================================================================

class TestAdmin:
    @pytest.fixture
    def admin_token(self, client):
        signup(client, ADMIN_EMAIL)
        session = login(client, ADMIN_EMAIL)
        assert session["user"]["role"] == "admin"
        return session["accessToken"]

    def test_list_users(self, client, admin_token):
        signup(client, "user@example.com")
        login(client, "user@example.com")

        response = client.get("/api/admin/users", headers=bearer(admin_token))
        assert response.status_code == 200
        body = response.json()
        assert body["permissionTemplates"] == ["dashboard:view", "user:view", "user:edit", "leaderboard:view"]
        rows = {row["email"]: row for row in body["users"]}
        assert set(rows) == {ADMIN_EMAIL, "user@example.com"}
        assert rows["user@example.com"]["lastLoginAt"] is not None
        assert isinstance(rows["user@example.com"]["createdAt"], int)

    def test_regular_user_is_forbidden(self, client):
        signup(client, "user@example.com")
        token = login(client, "user@example.com")["accessToken"]
        response = client.get("/api/admin/users", headers=bearer(token))
        assert response.status_code == 403
        assert response.json() == {"error": "admin role required"}

    def test_disable_user(self, client, admin_token):
        signup(client, "user@example.com")
        session = login(client, "user@example.com")
        user_id = session["user"]["id"]

        response = client.post(
            f"/api/admin/users/{user_id}",
            headers=bearer(admin_token),
            json={"role": "user", "status": "disabled", "permissions": ["record:self"]},
        )
        assert response.json() == {"ok": True}

        assert client.post("/api/auth/refresh", json={"refreshToken": session["refreshToken"]}).status_code == 401
        blocked = client.post("/api/auth/login", json={"email": "user@example.com", "password": PASSWORD})
        assert blocked.status_code == 403

    def test_update_unknown_user(self, client, admin_token):
        response = client.post("/api/admin/users/usr_missing", headers=bearer(admin_token), json={})
        assert response.status_code == 404
