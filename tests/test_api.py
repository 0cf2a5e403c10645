"""
End-to-end HTTP tests through FastAPI's TestClient.
"""

import logging
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from tasktracker.auth.tokens import TokenService
from tasktracker.core.models import Role, User
from tasktracker.core.utils import generate_id, utc_now


REFRESH_COOKIE = "refreshToken"


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _future(days: int = 3) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def _create_task(client, token, title="Write report", **fields):
    payload = {"title": title, "description": "Quarterly numbers", **fields}
    response = client.post("/api/tasks", json=payload, headers=bearer(token))
    assert response.status_code == 201, response.text
    return response.json()["data"]["task"]


# =============================================================================
# Health / routing
# =============================================================================


class TestEdge:
    def test_health(self, client):
        body = client.get("/health").json()
        assert body["success"] is True
        assert body["environment"] == "test"
        assert body["timestamp"]

    def test_unknown_route(self, client):
        response = client.get("/api/nope")
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "message": "Route /api/nope not found",
            "code": "NOT_FOUND",
            "path": "/api/nope",
        }

    def test_wrong_method(self, client):
        response = client.delete("/api/auth/profile")
        assert response.status_code == 405
        assert response.json()["code"] == "METHOD_NOT_ALLOWED"

    def test_malformed_json(self, client):
        response = client.post(
            "/api/auth/login",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["errors"][0]["field"] == "body"

    def test_unhandled_error(self, app, caplog):
        async def boom():
            raise RuntimeError("kaboom")

        app.add_api_route("/boom", boom)
        with caplog.at_level(logging.INFO, logger="tasktracker.api.app"):
            # Nothing escapes the app, so the default client does not re-raise
            with TestClient(app) as client:
                response = client.get("/boom")

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert errors[0].exc_info[0] is RuntimeError
        assert any(r.getMessage().startswith("GET /boom 500 ") for r in caplog.records)

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "message": "Internal server error",
            "code": "INTERNAL_ERROR",
            "error": "kaboom",
        }


# =============================================================================
# Auth
# =============================================================================


class TestRegisterAndLogin:
    def test_register(self, client, app):
        response = client.post(
            "/api/auth/register", json={"email": "a@example.com", "password": "Abc123"}
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "User registered successfully"

        user = body["data"]["user"]
        assert user["email"] == "a@example.com"
        assert user["role"] == "user"
        assert user["isActive"] is True
        assert "passwordHash" not in user and "password_hash" not in user
        assert "refreshToken" not in body["data"]

        claims = app.state.tokens.verify_access_token(body["data"]["accessToken"])
        assert claims.role == Role.USER
        assert claims.principal_id == user["id"]

        cookie = response.headers["set-cookie"].lower()
        assert cookie.startswith(f"{REFRESH_COOKIE.lower()}=")
        assert "httponly" in cookie
        assert "samesite=strict" in cookie
        assert "max-age=604800" in cookie
        assert "secure" not in cookie

    def test_register_duplicate(self, client, register):
        register("a@example.com")
        response = client.post(
            "/api/auth/register", json={"email": "A@example.com", "password": "Abc123"}
        )
        assert response.status_code == 409
        assert response.json()["code"] == "USER_EXISTS"

    def test_register_cannot_choose_role(self, client):
        response = client.post(
            "/api/auth/register",
            json={"email": "sneaky@example.com", "password": "Abc123", "role": "admin"},
        )
        assert response.json()["data"]["user"]["role"] == "user"

    def test_register_reports_every_field(self, client):
        response = client.post(
            "/api/auth/register", json={"name": "1", "email": "bad", "password": "abc"}
        )
        assert response.status_code == 400
        errors = response.json()["errors"]
        # name: length and charset; email: format; password: length and complexity
        assert len(errors) == 5
        assert [e["field"] for e in errors].count("password") == 2
        assert all("value" not in e for e in errors if e["field"] == "password")

    def test_login(self, client, register):
        register("ana@example.com", name="Ana Lopez")
        response = client.post(
            "/api/auth/login", json={"email": "ANA@example.com", "password": "Secret123"}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"]["name"] == "Ana Lopez"
        assert data["accessToken"]
        assert REFRESH_COOKIE in response.cookies

    def test_wrong_password_and_unknown_email_look_the_same(self, client, register):
        register("ana@example.com")
        wrong = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "Nope1234"})
        unknown = client.post("/api/auth/login", json={"email": "who@example.com", "password": "Nope1234"})

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()
        assert wrong.json()["code"] == "INVALID_CREDENTIALS"

    def test_profile(self, client, register):
        user, token = register("ana@example.com")
        response = client.get("/api/auth/profile", headers=bearer(token))
        assert response.json()["data"]["user"]["id"] == user["id"]

    def test_bootstrap_admin_exists(self, client, admin_token):
        profile = client.get("/api/auth/profile", headers=bearer(admin_token)).json()
        assert profile["data"]["user"]["role"] == "admin"


class TestGuard:
    def test_missing_token(self, client):
        response = client.get("/api/tasks")
        assert response.status_code == 401
        assert response.json()["code"] == "MISSING_TOKEN"

    def test_invalid_token(self, client):
        response = client.get("/api/tasks", headers=bearer("garbage"))
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"

    def test_expired_token(self, client, register, app):
        user, _ = register("ana@example.com")
        principal = User(id=user["id"], name=user["name"], email=user["email"], password_hash="x:y")
        issued_earlier = TokenService(app.state.settings, clock=lambda: utc_now() - timedelta(hours=1))

        response = client.get(
            "/api/tasks", headers=bearer(issued_earlier.create_access_token(principal))
        )
        assert response.status_code == 401
        assert response.json()["code"] == "TOKEN_EXPIRED"

    def test_refresh_token_is_not_a_bearer(self, client, register):
        register("ana@example.com")
        refresh_token = client.cookies.get(REFRESH_COOKIE)

        response = client.get("/api/tasks", headers=bearer(refresh_token))
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"

    def test_deleted_principal(self, client, register, admin_token):
        user, token = register("ana@example.com")
        client.delete(f"/api/users/{user['id']}", headers=bearer(admin_token))

        response = client.get("/api/auth/profile", headers=bearer(token))
        assert response.status_code == 401
        assert response.json()["code"] == "USER_NOT_FOUND"


class TestRefresh:
    def test_refresh(self, client, register, app):
        user, _ = register("ana@example.com")
        response = client.post("/api/auth/refresh")

        assert response.status_code == 200
        claims = app.state.tokens.verify_access_token(response.json()["data"]["accessToken"])
        assert claims.principal_id == user["id"]

    def test_refresh_reflects_role_change(self, client, register, admin_token, app):
        user, _ = register("ana@example.com")  # cookie now belongs to ana
        promoted = client.put(
            f"/api/users/{user['id']}", json={"role": "admin"}, headers=bearer(admin_token)
        )
        assert promoted.status_code == 200

        response = client.post("/api/auth/refresh")
        claims = app.state.tokens.verify_access_token(response.json()["data"]["accessToken"])
        assert claims.role == Role.ADMIN

    def test_missing_cookie(self, client):
        client.cookies.clear()
        response = client.post("/api/auth/refresh")
        assert response.status_code == 401
        assert response.json()["code"] == "MISSING_REFRESH_TOKEN"

    def test_access_token_in_cookie_rejected(self, client, register):
        _, token = register("ana@example.com")
        client.cookies.clear()

        response = client.post("/api/auth/refresh", headers={"Cookie": f"{REFRESH_COOKIE}={token}"})
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"

    def test_inactive_principal(self, client, register):
        _, token = register("ana@example.com")
        cookie = client.cookies.get(REFRESH_COOKIE)
        client.put("/api/users/deactivate", headers=bearer(token))

        # Still-valid refresh token for a deactivated account
        response = client.post("/api/auth/refresh", headers={"Cookie": f"{REFRESH_COOKIE}={cookie}"})
        assert response.status_code == 401
        assert response.json()["code"] == "USER_NOT_FOUND"

    def test_logout_clears_cookie(self, client, register):
        register("ana@example.com")
        response = client.post("/api/auth/logout")

        assert response.status_code == 200
        assert response.json()["message"] == "Logout successful"
        assert REFRESH_COOKIE not in client.cookies
        assert client.post("/api/auth/refresh").json()["code"] == "MISSING_REFRESH_TOKEN"


# =============================================================================
# Tasks
# =============================================================================


class TestTasks:
    def test_create(self, client, register):
        user, token = register("ana@example.com", name="Ana Lopez")
        task = _create_task(client, token, dueDate=_future(), priority="high")

        assert task["userId"] == user["id"]
        assert task["owner"] == {"id": user["id"], "name": "Ana Lopez", "email": "ana@example.com"}
        assert task["status"] == "pending"
        assert task["priority"] == "high"
        assert task["dueDate"]

    def test_past_due_date(self, client, register):
        _, token = register("ana@example.com")
        response = client.post(
            "/api/tasks",
            json={"title": "Late", "description": "Too late", "dueDate": "2020-01-01T00:00:00Z"},
            headers=bearer(token),
        )

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert [e["field"] for e in body["errors"]] == ["dueDate"]

    def test_other_user_forbidden_admin_allowed(self, client, register, admin_token):
        _, token_a = register("ana@example.com")
        _, token_b = register("bob@example.com")
        task = _create_task(client, token_a)

        forbidden = client.get(f"/api/tasks/{task['id']}", headers=bearer(token_b))
        assert forbidden.status_code == 403
        assert forbidden.json()["code"] == "INSUFFICIENT_PERMISSIONS"

        allowed = client.get(f"/api/tasks/{task['id']}", headers=bearer(admin_token))
        assert allowed.status_code == 200
        assert allowed.json()["data"]["task"]["id"] == task["id"]

    def test_invalid_and_missing_ids(self, client, register):
        _, token = register("ana@example.com")

        invalid = client.get("/api/tasks/not-an-id", headers=bearer(token))
        assert invalid.status_code == 400
        assert invalid.json()["code"] == "INVALID_ID"

        missing = client.get(f"/api/tasks/{generate_id()}", headers=bearer(token))
        assert missing.status_code == 404
        assert missing.json()["code"] == "TASK_NOT_FOUND"

    def test_list_scoped_to_caller(self, client, register):
        user_a, token_a = register("ana@example.com")
        user_b, token_b = register("bob@example.com")
        _create_task(client, token_a)
        _create_task(client, token_b)

        response = client.get(f"/api/tasks?userId={user_a['id']}", headers=bearer(token_b))
        data = response.json()["data"]

        assert [t["userId"] for t in data["tasks"]] == [user_b["id"]]
        assert data["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}

    def test_admin_filters_by_owner(self, client, register, admin_token):
        user_a, token_a = register("ana@example.com")
        _, token_b = register("bob@example.com")
        _create_task(client, token_a)
        _create_task(client, token_b)

        everything = client.get("/api/tasks", headers=bearer(admin_token)).json()["data"]
        only_a = client.get(f"/api/tasks?userId={user_a['id']}", headers=bearer(admin_token)).json()["data"]

        assert everything["pagination"]["total"] == 2
        assert [t["userId"] for t in only_a["tasks"]] == [user_a["id"]]

    def test_list_filters_and_paging(self, client, register):
        _, token = register("ana@example.com")
        _create_task(client, token, title="Quarterly report", status="completed")
        _create_task(client, token, title="Groceries")
        _create_task(client, token, title="Call plumber")

        search = client.get("/api/tasks?search=REPORT", headers=bearer(token)).json()["data"]
        assert [t["title"] for t in search["tasks"]] == ["Quarterly report"]

        completed = client.get("/api/tasks?status=completed", headers=bearer(token)).json()["data"]
        assert completed["pagination"]["total"] == 1

        page = client.get("/api/tasks?page=2&limit=2", headers=bearer(token)).json()["data"]
        assert len(page["tasks"]) == 1
        assert page["pagination"]["pages"] == 2

    def test_list_query_validation(self, client, register):
        _, token = register("ana@example.com")
        response = client.get("/api/tasks?limit=500&status=bogus", headers=bearer(token))

        assert response.status_code == 400
        assert {e["field"] for e in response.json()["errors"]} == {"limit", "status"}

    def test_update_and_delete(self, client, register):
        _, token = register("ana@example.com")
        task = _create_task(client, token)

        updated = client.put(
            f"/api/tasks/{task['id']}", json={"status": "in-progress"}, headers=bearer(token)
        ).json()["data"]["task"]
        assert updated["status"] == "in-progress"
        assert updated["title"] == task["title"]

        deleted = client.delete(f"/api/tasks/{task['id']}", headers=bearer(token))
        assert deleted.json() == {"success": True, "message": "Task deleted successfully"}
        assert client.get(f"/api/tasks/{task['id']}", headers=bearer(token)).status_code == 404

    def test_stats(self, client, register):
        _, token = register("ana@example.com")
        _create_task(client, token, status="completed", priority="high")
        _create_task(client, token, status="in-progress")

        response = client.get("/api/tasks/stats", headers=bearer(token))
        assert response.status_code == 200
        assert response.json()["data"]["stats"] == {
            "total": 2,
            "pending": 0,
            "inProgress": 1,
            "completed": 1,
            "highPriority": 1,
            "overdue": 0,
            "completionRate": 50,
        }


# =============================================================================
# Users
# =============================================================================


class TestUsers:
    def test_admin_only(self, client, register):
        _, token = register("ana@example.com")
        response = client.get("/api/users", headers=bearer(token))

        assert response.status_code == 403
        body = response.json()
        assert body["code"] == "INSUFFICIENT_PERMISSIONS"
        assert body["requiredRoles"] == ["admin"]
        assert body["userRole"] == "user"

    def test_admin_list(self, client, register, admin_token):
        register("ana@example.com")
        data = client.get("/api/users?role=user", headers=bearer(admin_token)).json()["data"]

        assert [u["email"] for u in data["users"]] == ["ana@example.com"]
        assert data["pagination"]["total"] == 1

    def test_admin_get_and_update(self, client, register, admin_token):
        user, _ = register("ana@example.com")

        fetched = client.get(f"/api/users/{user['id']}", headers=bearer(admin_token))
        assert fetched.json()["data"]["user"]["email"] == "ana@example.com"

        updated = client.put(
            f"/api/users/{user['id']}", json={"isActive": False}, headers=bearer(admin_token)
        )
        assert updated.json()["data"]["user"]["isActive"] is False

    def test_admin_update_email_conflict(self, client, register, admin_token):
        user, _ = register("ana@example.com")
        register("bob@example.com")

        response = client.put(
            f"/api/users/{user['id']}", json={"email": "bob@example.com"}, headers=bearer(admin_token)
        )
        assert response.status_code == 409
        assert response.json()["code"] == "EMAIL_IN_USE"

    def test_admin_cannot_delete_self(self, client, admin_token):
        admin = client.get("/api/auth/profile", headers=bearer(admin_token)).json()["data"]["user"]
        response = client.delete(f"/api/users/{admin['id']}", headers=bearer(admin_token))

        assert response.status_code == 400
        assert response.json()["code"] == "CANNOT_DELETE_SELF"

    def test_admin_delete_cascades(self, client, register, admin_token):
        user, token = register("ana@example.com")
        _create_task(client, token)

        response = client.delete(f"/api/users/{user['id']}", headers=bearer(admin_token))
        assert response.status_code == 200

        missing = client.get(f"/api/users/{user['id']}", headers=bearer(admin_token))
        assert missing.json()["code"] == "USER_NOT_FOUND"
        tasks = client.get(f"/api/tasks?userId={user['id']}", headers=bearer(admin_token)).json()
        assert tasks["data"]["pagination"]["total"] == 0


class TestSelfService:
    def test_update_profile(self, client, register):
        _, token = register("ana@example.com")
        response = client.put("/api/users/profile", json={"name": "Ana María"}, headers=bearer(token))

        assert response.status_code == 200
        assert response.json()["data"]["user"]["name"] == "Ana María"

    def test_update_profile_email_in_use(self, client, register):
        register("bob@example.com")
        _, token = register("ana@example.com")
        response = client.put(
            "/api/users/profile", json={"email": "bob@example.com"}, headers=bearer(token)
        )
        assert response.status_code == 409
        assert response.json()["code"] == "EMAIL_IN_USE"

    def test_change_password(self, client, register):
        _, token = register("ana@example.com")

        wrong = client.put(
            "/api/users/change-password",
            json={"currentPassword": "Nope1234", "newPassword": "Newpass1"},
            headers=bearer(token),
        )
        assert wrong.status_code == 400
        assert wrong.json()["code"] == "INVALID_CURRENT_PASSWORD"

        ok = client.put(
            "/api/users/change-password",
            json={"currentPassword": "Secret123", "newPassword": "Newpass1"},
            headers=bearer(token),
        )
        assert ok.status_code == 200
        login = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "Newpass1"})
        assert login.status_code == 200

    def test_deactivate(self, client, register):
        _, token = register("ana@example.com")
        response = client.put("/api/users/deactivate", headers=bearer(token))

        assert response.status_code == 200
        assert REFRESH_COOKIE not in client.cookies

        after = client.get("/api/auth/profile", headers=bearer(token))
        assert after.status_code == 401
        assert after.json()["code"] == "USER_INACTIVE"

        login = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "Secret123"})
        assert login.json()["code"] == "USER_INACTIVE"
