"""
HTTP-level tests for the task API, health and readiness endpoints.
"""

import uuid

import pytest
from fastapi.testclient import TestClient

from taskcal.exceptions import StorageError


def _create(client, **body):
    return client.post("/api/tasks", json=body)


class TestTaskLifecycleScenario:
    def test_create_complete_query_delete(self, client):
        resp = _create(client, title="Pay bills", date="2024-03-15")
        assert resp.status_code == 201
        task = resp.json()
        assert task["completed"] is False
        assert task["description"] == ""
        assert task["date"] == "2024-03-15"
        assert set(task) == {"id", "title", "description", "date", "completed", "createdAt", "updatedAt"}

        resp = client.put(
            f"/api/tasks/{task['id']}",
            json={"title": "Pay bills", "description": "", "date": "2024-03-15", "completed": True},
        )
        assert resp.status_code == 200
        updated = resp.json()
        assert updated["completed"] is True
        assert updated["updatedAt"] != task["updatedAt"]
        assert updated["createdAt"] == task["createdAt"]

        resp = client.get("/api/tasks/2024-03-15")
        assert resp.status_code == 200
        assert [t["id"] for t in resp.json()] == [task["id"]]

        resp = client.delete(f"/api/tasks/{task['id']}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Task deleted successfully"
        assert body["task"]["id"] == task["id"]

        resp = client.get("/api/tasks/2024-03-15")
        assert resp.status_code == 200
        assert resp.json() == []


class TestCreateValidation:
    @pytest.mark.parametrize(
        "body",
        [
            {"date": "2024-03-15"},
            {"title": "", "date": "2024-03-15"},
            {"title": "Pay bills"},
            {"title": "Pay bills", "date": ""},
            {},
        ],
    )
    def test_missing_title_or_date_is_400(self, client, body):
        resp = client.post("/api/tasks", json=body)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Title and date are required"}
        assert client.get("/api/tasks").json() == []

    def test_unparsable_date_is_400(self, client):
        resp = _create(client, title="Pay bills", date="next tuesday")
        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_non_json_body_is_400(self, client):
        resp = client.post(
            "/api/tasks", content=b"title=x", headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 400
        assert "error" in resp.json()


class TestQueries:
    def test_list_all_ordering(self, client):
        a = _create(client, title="a", date="2024-03-15").json()
        b = _create(client, title="b", date="2024-03-16").json()
        c = _create(client, title="c", date="2024-03-15").json()

        resp = client.get("/api/tasks")
        assert resp.status_code == 200
        assert [t["id"] for t in resp.json()] == [b["id"], c["id"], a["id"]]

    def test_empty_list(self, client):
        resp = client.get("/api/tasks")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_malformed_date_yields_empty_list(self, client):
        _create(client, title="a", date="2024-03-15")
        resp = client.get("/api/tasks/not-a-date")
        assert resp.status_code == 200
        assert resp.json() == []


class TestUpdateAndDelete:
    def test_put_unknown_id_is_404(self, client):
        resp = client.put(
            f"/api/tasks/{uuid.uuid4()}",
            json={"title": "x", "description": "", "date": "2024-03-15", "completed": False},
        )
        assert resp.status_code == 404
        assert resp.json() == {"error": "Task not found"}

    def test_put_is_full_replace(self, client):
        task = _create(client, title="a", description="keep me?", date="2024-03-15").json()
        resp = client.put(f"/api/tasks/{task['id']}", json={"title": "b", "date": "2024-03-16"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["title"] == "b"
        assert body["description"] == ""
        assert body["completed"] is False
        assert body["date"] == "2024-03-16"

    def test_put_without_title_is_400(self, client):
        task = _create(client, title="a", date="2024-03-15").json()
        resp = client.put(f"/api/tasks/{task['id']}", json={"date": "2024-03-15"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Title and date are required"}
        assert client.get("/api/tasks/2024-03-15").json()[0]["title"] == "a"

    def test_delete_twice(self, client):
        task = _create(client, title="a", date="2024-03-15").json()
        assert client.delete(f"/api/tasks/{task['id']}").status_code == 200
        resp = client.delete(f"/api/tasks/{task['id']}")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Task not found"}

    def test_delete_malformed_id_is_404(self, client):
        assert client.delete("/api/tasks/12345").status_code == 404


class TestStorageFailureMapping:
    def test_storage_error_is_500_without_detail(self, client, app):
        class BrokenRepository:
            async def list_all(self):
                raise StorageError("Failed to fetch tasks")

        app.state.repository = BrokenRepository()
        resp = client.get("/api/tasks")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to fetch tasks"}

    @pytest.mark.parametrize(
        "method,path,body,message",
        [
            ("post", "/api/tasks", {"title": "a", "date": "2024-03-15"}, "Failed to create task"),
            (
                "put",
                "/api/tasks/00000000-0000-4000-8000-000000000000",
                {"title": "a", "date": "2024-03-15"},
                "Failed to update task",
            ),
            ("delete", "/api/tasks/00000000-0000-4000-8000-000000000000", None, "Failed to delete task"),
        ],
    )
    def test_mutation_storage_errors_are_500(self, client, app, method, path, body, message):
        class BrokenRepository:
            async def create(self, *args):
                raise StorageError("Failed to create task")

            async def update(self, *args):
                raise StorageError("Failed to update task")

            async def delete(self, *args):
                raise StorageError("Failed to delete task")

        app.state.repository = BrokenRepository()
        kwargs = {"json": body} if body is not None else {}
        resp = getattr(client, method)(path, **kwargs)
        assert resp.status_code == 500
        assert resp.json() == {"error": message}


class TestServiceEndpoints:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "Backend is running", "store": "ready"}

    def test_readyz(self, client):
        resp = client.get("/readyz")
        assert resp.status_code == 200
        assert resp.json()["deps"] == {"db": "ok"}

    def test_metrics_counts_operations(self, client):
        _create(client, title="a", date="2024-03-15")
        resp = client.get("/metrics")
        assert resp.status_code == 200
        assert "taskcal_task_operations_total" in resp.text

    def test_unknown_route_uses_error_payload(self, client):
        resp = client.get("/api/nope/nope")
        assert resp.status_code == 404
        assert "error" in resp.json()

    def test_cors_preflight(self, client):
        resp = client.options(
            "/api/tasks",
            headers={
                "Origin": "http://localhost:8080",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "http://localhost:8080"


class TestReadinessGate:
    def test_api_refuses_traffic_before_bootstrap(self, app):
        # no lifespan: the store bootstrap never ran
        client = TestClient(app)
        resp = client.get("/api/tasks")
        assert resp.status_code == 503
        assert resp.json() == {"error": "Service is starting"}

        health = client.get("/health")
        assert health.status_code == 200
        assert health.json()["store"] == "starting"

        assert client.get("/readyz").status_code == 503
