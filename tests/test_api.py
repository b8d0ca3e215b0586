"""End-to-end tests through the HTTP API (FastAPI TestClient, in-memory SQLite)."""

import unittest
import uuid
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from helpers import bearer, make_database, make_settings, start_client
from taskapi.core.errors import DatabaseUnavailableError
from taskapi.main import create_app


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = make_settings()
        self.database = make_database()
        self.client = start_client(self.settings, self.database)
        self.addCleanup(self.client.__exit__, None, None, None)

    def register(self, username: str, email: str, password: str = "pw1-secret", **extra) -> dict:
        resp = self.client.post(
            "/api/v1/auth/register",
            json={"username": username, "email": email, "password": password, **extra},
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()["data"]

    def login(self, email: str, password: str = "pw1-secret") -> str:
        resp = self.client.post("/api/v1/auth/login", json={"email": email, "password": password})
        self.assertEqual(resp.status_code, 200, resp.text)
        return resp.json()["data"]["token"]

    def create_task(self, token: str, **body) -> dict:
        resp = self.client.post("/api/v1/tasks", json=body, headers=bearer(token))
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()["data"]


class TestAuthEndpoints(ApiTestCase):
    def test_register_returns_user_and_token(self) -> None:
        resp = self.client.post(
            "/api/v1/auth/register",
            json={"username": "u1", "email": "a@x.com", "password": "pw1-secret"},
        )
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["message"], "User registered successfully.")
        self.assertEqual(
            {k: body["data"][k] for k in ("username", "email", "role")},
            {"username": "u1", "email": "a@x.com", "role": "user"},
        )
        self.assertTrue(body["data"]["token"])
        self.assertNotIn("password", body["data"])
        self.assertNotIn("password_hash", body["data"])

    def test_register_missing_field_is_400(self) -> None:
        resp = self.client.post("/api/v1/auth/register", json={"username": "u1", "email": "a@x.com"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(
            resp.json(),
            {"success": False, "message": "Please provide username, email, and password."},
        )

    def test_register_unknown_field_is_400(self) -> None:
        resp = self.client.post(
            "/api/v1/auth/register",
            json={"username": "u1", "email": "a@x.com", "password": "pw", "is_superuser": True},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(resp.json()["success"])

    def test_duplicate_email_is_409(self) -> None:
        self.register("u1", "a@x.com")
        resp = self.client.post(
            "/api/v1/auth/register",
            json={"username": "u2", "email": "a@x.com", "password": "pw1-secret"},
        )
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["message"], "User already exists with this email or username.")

    def test_login(self) -> None:
        registered = self.register("u1", "a@x.com")
        resp = self.client.post("/api/v1/auth/login", json={"email": "a@x.com", "password": "pw1-secret"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "Login successful.")
        self.assertEqual(resp.json()["data"]["id"], registered["id"])

    def test_login_wrong_password_is_401(self) -> None:
        self.register("u1", "a@x.com")
        resp = self.client.post("/api/v1/auth/login", json={"email": "a@x.com", "password": "nope"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["message"], "Invalid email or password.")

    def test_login_missing_field_is_400(self) -> None:
        resp = self.client.post("/api/v1/auth/login", json={"email": "a@x.com"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Please provide email and password.")


class TestTaskScenario(ApiTestCase):
    def test_owner_lifecycle_and_isolation(self) -> None:
        self.register("u1", "a@x.com", password="pw1")
        token_a = self.login("a@x.com", password="pw1")

        created = self.create_task(token_a, title="buy milk")
        self.assertEqual(created["status"], "pending")
        self.assertEqual(created["description"], "")

        listed = self.client.get("/api/v1/tasks", headers=bearer(token_a)).json()
        self.assertEqual(listed["total"], 1)
        self.assertEqual(len(listed["data"]), 1)
        self.assertEqual(listed["data"][0]["status"], "pending")

        resp = self.client.put(
            f"/api/v1/tasks/{created['id']}", json={"status": "completed"}, headers=bearer(token_a)
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["title"], "buy milk")

        fetched = self.client.get(f"/api/v1/tasks/{created['id']}", headers=bearer(token_a))
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(fetched.json()["data"]["status"], "completed")

        self.register("u2", "b@x.com", password="pw2")
        token_b = self.login("b@x.com", password="pw2")
        listed_b = self.client.get("/api/v1/tasks", headers=bearer(token_b)).json()
        self.assertEqual((listed_b["total"], listed_b["data"]), (0, []))

        hidden = self.client.get(f"/api/v1/tasks/{created['id']}", headers=bearer(token_b))
        self.assertEqual(hidden.status_code, 404)

    def test_task_json_shape(self) -> None:
        token = self.register("u1", "a@x.com")["token"]
        task = self.create_task(token, title="  t  ", description=" d ", status="completed")
        self.assertEqual(
            set(task), {"id", "title", "description", "status", "createdBy", "createdAt", "updatedAt"}
        )
        self.assertEqual((task["title"], task["description"], task["status"]), ("t", "d", "completed"))
        self.assertEqual(set(task["createdBy"]), {"id", "username", "email"})
        self.assertEqual(task["createdBy"]["username"], "u1")

    def test_admin_deletes_other_users_task(self) -> None:
        token_a = self.register("u1", "a@x.com")["token"]
        task = self.create_task(token_a, title="mine")
        admin_token = self.register("root", "root@x.com", role="admin")["token"]

        resp = self.client.delete(f"/api/v1/tasks/{task['id']}", headers=bearer(admin_token))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["id"], task["id"])
        self.assertEqual(resp.json()["message"], "Task deleted successfully.")

        gone = self.client.get(f"/api/v1/tasks/{task['id']}", headers=bearer(token_a))
        self.assertEqual(gone.status_code, 404)

    def test_non_admin_cannot_delete_even_own_task(self) -> None:
        token = self.register("u1", "a@x.com")["token"]
        task = self.create_task(token, title="mine")
        resp = self.client.delete(f"/api/v1/tasks/{task['id']}", headers=bearer(token))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["message"], "Access denied. Admins only.")

    def test_delete_without_token_is_401(self) -> None:
        resp = self.client.delete(f"/api/v1/tasks/{uuid.uuid4()}")
        self.assertEqual(resp.status_code, 401)

    def test_admin_delete_missing_and_malformed(self) -> None:
        admin_token = self.register("root", "root@x.com", role="admin")["token"]
        self.assertEqual(
            self.client.delete(f"/api/v1/tasks/{uuid.uuid4()}", headers=bearer(admin_token)).status_code, 404
        )
        self.assertEqual(
            self.client.delete("/api/v1/tasks/not-an-id", headers=bearer(admin_token)).status_code, 400
        )

    def test_invalid_id_is_400_not_404(self) -> None:
        token = self.register("u1", "a@x.com")["token"]
        for method in ("get", "put"):
            with self.subTest(method=method):
                kwargs = {"json": {"status": "completed"}} if method == "put" else {}
                resp = getattr(self.client, method)("/api/v1/tasks/not-an-id", headers=bearer(token), **kwargs)
                self.assertEqual(resp.status_code, 400)
                self.assertEqual(resp.json()["message"], "Invalid task ID format.")

    def test_create_requires_title(self) -> None:
        token = self.register("u1", "a@x.com")["token"]
        resp = self.client.post("/api/v1/tasks", json={"title": "   "}, headers=bearer(token))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Title is required to create a task.")

    def test_update_validation(self) -> None:
        token = self.register("u1", "a@x.com")["token"]
        task = self.create_task(token, title="t")
        url = f"/api/v1/tasks/{task['id']}"
        empty = self.client.put(url, json={}, headers=bearer(token))
        self.assertEqual(empty.status_code, 400)
        bad_status = self.client.put(url, json={"status": "done"}, headers=bearer(token))
        self.assertEqual(bad_status.status_code, 400)
        self.assertEqual(bad_status.json()["message"], "Status must be either 'pending' or 'completed'.")
        missing = self.client.put(f"/api/v1/tasks/{uuid.uuid4()}", json={"status": "completed"}, headers=bearer(token))
        self.assertEqual(missing.status_code, 404)


class TestTaskListing(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.token = self.register("u1", "a@x.com")["token"]
        for i in range(12):
            self.create_task(self.token, title=f"task {i:02d}")
        self.create_task(self.token, title="Buy Milk")

    def list(self, **params) -> dict:
        resp = self.client.get("/api/v1/tasks", params=params, headers=bearer(self.token))
        self.assertEqual(resp.status_code, 200, resp.text)
        return resp.json()

    def test_defaults(self) -> None:
        body = self.list()
        self.assertEqual((body["page"], body["limit"], body["total"], body["totalPages"]), (1, 10, 13, 2))
        self.assertEqual(len(body["data"]), 10)
        self.assertEqual(body["message"], "Tasks fetched successfully.")

    def test_last_page(self) -> None:
        body = self.list(page=3, limit=5)
        self.assertEqual(len(body["data"]), 3)
        self.assertEqual(body["totalPages"], 3)

    def test_limit_is_clamped(self) -> None:
        self.assertEqual(self.list(limit=500)["limit"], 100)

    def test_bad_page_values_coerce_to_one(self) -> None:
        for page in ("0", "-5", "abc"):
            with self.subTest(page=page):
                self.assertEqual(self.list(page=page)["page"], 1)

    def test_page_far_past_the_end_is_empty(self) -> None:
        body = self.list(page="100000000000000000")
        self.assertEqual(body["data"], [])
        self.assertEqual(body["page"], 100000000000000000)
        self.assertEqual((body["total"], body["totalPages"]), (13, 2))

    def test_search(self) -> None:
        body = self.list(search="MILK")
        self.assertEqual([t["title"] for t in body["data"]], ["Buy Milk"])
        self.assertEqual(body["totalPages"], 1)

    def test_sort(self) -> None:
        body = self.list(sort="title:asc", limit=2)
        self.assertEqual([t["title"] for t in body["data"]], ["Buy Milk", "task 00"])
        body = self.list(sort="title:desc", limit=1)
        self.assertEqual(body["data"][0]["title"], "task 11")

    def test_all_tasks_is_admin_only(self) -> None:
        other = self.register("u2", "b@x.com")["token"]
        self.create_task(other, title="other")
        self.assertEqual(
            self.client.get("/api/v1/tasks/all", headers=bearer(self.token)).status_code, 403
        )
        admin = self.register("root", "root@x.com", role="admin")["token"]
        body = self.client.get("/api/v1/tasks/all", params={"limit": 100}, headers=bearer(admin)).json()
        self.assertEqual(body["total"], 14)
        self.assertEqual({t["createdBy"]["username"] for t in body["data"]}, {"u1", "u2"})


class TestInfrastructure(ApiTestCase):
    def test_root_and_health(self) -> None:
        self.assertEqual(self.client.get("/").json(), {"message": "API is running..."})
        health = self.client.get("/api/v1/health/").json()
        self.assertEqual((health["status"], health["database"]), ("ok", "connected"))

    def test_database_error_during_request_is_500(self) -> None:
        token = self.register("u1", "a@x.com")["token"]
        error = OperationalError("SELECT 1", {}, Exception("connection lost"))
        with patch("taskapi.services.tasks.list_owned", side_effect=error):
            resp = self.client.get("/api/v1/tasks", headers=bearer(token))
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["success"], False)

    def test_unknown_route_uses_envelope(self) -> None:
        resp = self.client.get("/api/v1/nope")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["success"], False)

    def test_default_jwt_secret_logs_startup_warning(self) -> None:
        app = create_app(make_settings(JWT_SECRET=""), make_database())
        with self.assertLogs("taskapi.main", "WARNING") as logs:
            with TestClient(app):
                pass
        self.assertTrue(any("JWT_SECRET is not set" in line for line in logs.output))

    def test_startup_fails_without_database_url(self) -> None:
        app = create_app(make_settings(DATABASE_URL=None))
        with self.assertRaises(DatabaseUnavailableError):
            with TestClient(app):
                pass

    def test_cors_allows_configured_client(self) -> None:
        resp = self.client.options(
            "/api/v1/tasks",
            headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "GET"},
        )
        self.assertEqual(resp.headers.get("access-control-allow-origin"), "http://localhost:3000")


if __name__ == "__main__":
    unittest.main()
