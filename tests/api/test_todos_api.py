"""Tests for the todo HTTP API."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from todo_api.api.app import create_app
from todo_api.config.settings import clear_settings_cache
from todo_api.container import get_container, reset_container
from todo_api.domain.models import TaskId, TaskPriority
from todo_api.repositories.memory import InMemoryTaskStore


@pytest.fixture
def api_store() -> InMemoryTaskStore:
    return InMemoryTaskStore()


@pytest.fixture
def client(monkeypatch, api_store, user_directory):
    """TestClient wired to in-memory stores holding alice, bob and carol."""
    monkeypatch.delenv("MONGO_URI", raising=False)
    monkeypatch.delenv("TODO_POLICY_DELETE_REQUIRES_OWNER", raising=False)
    clear_settings_cache()
    reset_container()
    container = get_container()
    container.configure_task_store(lambda: api_store)
    container.configure_user_directory(lambda: user_directory)

    with TestClient(create_app()) as test_client:
        yield test_client

    reset_container()
    clear_settings_cache()


@pytest.fixture
def seed(api_store):
    """Insert tasks synchronously."""

    def _seed(*tasks):
        for task in tasks:
            asyncio.run(api_store.create(task))
        return tasks

    return _seed


def auth(user) -> dict:
    return {"X-User-Id": user.id.value}


class TestAuthentication:
    """Tests for actor resolution."""

    def test_missing_header(self, client):
        response = client.get("/api/todos")

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Not authorized, no user"}

    def test_malformed_user_id(self, client):
        response = client.get("/api/todos", headers={"X-User-Id": "nope"})

        assert response.status_code == 401

    def test_unknown_user(self, client):
        response = client.get("/api/todos", headers={"X-User-Id": TaskId.generate().value})

        assert response.status_code == 401
        assert response.json()["message"] == "Not authorized, user not found"

    def test_health_needs_no_user(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestListTodos:
    """Tests for GET /api/todos."""

    def test_empty(self, client, alice):
        response = client.get("/api/todos", headers=auth(alice))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"] == []
        assert body["pagination"] == {
            "currentPage": 1,
            "totalPages": 0,
            "totalItems": 0,
            "itemsPerPage": 10,
            "hasNextPage": False,
            "hasPrevPage": False,
        }

    def test_pagination(self, client, seed, alice, make_task):
        seed(*[make_task(alice, f"Task {i}", minute=i) for i in range(25)])

        response = client.get("/api/todos?page=3&limit=10", headers=auth(alice))

        body = response.json()
        assert len(body["data"]) == 5
        assert body["pagination"]["totalPages"] == 3
        assert body["pagination"]["hasNextPage"] is False
        assert body["pagination"]["hasPrevPage"] is True

    def test_lenient_page_parsing(self, client, seed, alice, make_task):
        seed(*[make_task(alice, f"Task {i}", minute=i) for i in range(3)])

        response = client.get("/api/todos?page=abc&limit=2xyz", headers=auth(alice))

        pagination = response.json()["pagination"]
        assert pagination["currentPage"] == 1
        assert pagination["itemsPerPage"] == 2

    def test_sort_ascending(self, client, seed, alice, make_task):
        seed(make_task(alice, "b"), make_task(alice, "a"), make_task(alice, "c"))

        response = client.get(
            "/api/todos?sortBy=title&sortOrder=asc", headers=auth(alice)
        )

        assert [t["title"] for t in response.json()["data"]] == ["a", "b", "c"]

    def test_filters_combine(self, client, seed, alice, bob, make_task):
        seed(
            make_task(alice, "Match", priority=TaskPriority.HIGH, tags=["work"], mentions=[bob.id]),
            make_task(alice, "Wrong tag", priority=TaskPriority.HIGH, tags=["home"], mentions=[bob.id]),
            make_task(alice, "No mention", priority=TaskPriority.HIGH, tags=["work"]),
            make_task(bob, "Other owner", priority=TaskPriority.HIGH, tags=["work"]),
        )

        response = client.get(
            "/api/todos?priority=high&tag=work&mention=bob", headers=auth(alice)
        )

        assert [t["title"] for t in response.json()["data"]] == ["Match"]

    def test_completed_only_literal_true(self, client, seed, alice, make_task):
        seed(make_task(alice, "Done", completed=True), make_task(alice, "Open"))

        done = client.get("/api/todos?completed=true", headers=auth(alice)).json()
        other = client.get("/api/todos?completed=yes", headers=auth(alice)).json()

        assert [t["title"] for t in done["data"]] == ["Done"]
        assert [t["title"] for t in other["data"]] == ["Open"]

    def test_unknown_mention(self, client, seed, alice, make_task):
        seed(make_task(alice))

        response = client.get("/api/todos?mention=ghost&page=2", headers=auth(alice))

        body = response.json()
        assert response.status_code == 200
        assert body["data"] == []
        assert body["pagination"]["totalItems"] == 0
        assert body["pagination"]["hasPrevPage"] is False

    def test_search(self, client, seed, alice, make_task):
        seed(make_task(alice, "Quarterly Report"), make_task(alice, "Groceries"))

        response = client.get("/api/todos?search=report", headers=auth(alice))

        assert [t["title"] for t in response.json()["data"]] == ["Quarterly Report"]

    def test_invalid_search_pattern(self, client, alice):
        response = client.get("/api/todos?search=(", headers=auth(alice))

        assert response.status_code == 500
        assert response.json()["message"] == "Error fetching todos"
        assert "error" in response.json()

    def test_invalid_priority(self, client, alice):
        response = client.get("/api/todos?priority=urgent", headers=auth(alice))

        assert response.status_code == 400
        assert response.json()["message"] == "Validation error"
        assert response.json()["errors"] == ["priority: Must be one of: low, medium, high"]

    def test_empty_priority_is_ignored(self, client, seed, alice, make_task):
        """An empty value imposes no constraint, like tag and search."""
        seed(
            make_task(alice, "High", priority=TaskPriority.HIGH),
            make_task(alice, "Low", priority=TaskPriority.LOW),
        )

        response = client.get("/api/todos?priority=&tag=", headers=auth(alice))

        assert response.status_code == 200
        assert sorted(t["title"] for t in response.json()["data"]) == ["High", "Low"]

    def test_populated_fields(self, client, seed, alice, bob, make_task):
        task = make_task(alice, mentions=[bob.id])
        task.add_note("hello", bob.id)
        seed(task)

        todo = client.get("/api/todos", headers=auth(alice)).json()["data"][0]

        assert todo["userId"] == {
            "id": alice.id.value,
            "name": "Alice",
            "email": "alice@example.com",
            "username": "alice",
        }
        assert [m["username"] for m in todo["mentions"]] == ["bob"]
        assert todo["notes"][0]["createdBy"]["username"] == "bob"
        assert "createdAt" in todo and "updatedAt" in todo


class TestGetTodo:
    """Tests for GET /api/todos/{id}."""

    def test_get(self, client, seed, alice, make_task):
        (task,) = seed(make_task(alice, "Find me"))

        response = client.get(f"/api/todos/{task.id}", headers=auth(alice))

        assert response.status_code == 200
        assert response.json()["data"]["title"] == "Find me"

    def test_not_found(self, client, alice):
        response = client.get(f"/api/todos/{TaskId.generate()}", headers=auth(alice))

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Todo not found"}

    def test_invalid_id(self, client, alice):
        response = client.get("/api/todos/nonexistent", headers=auth(alice))

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid todo ID format"


class TestCreateTodo:
    """Tests for POST /api/todos."""

    def test_create(self, client, alice, bob):
        response = client.post(
            "/api/todos",
            headers=auth(alice),
            json={"title": "New", "tags": ["x", "y"], "mentions": ["bob", "ghost"]},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Todo created successfully"
        assert body["data"]["tags"] == ["x", "y"]
        assert body["data"]["priority"] == "medium"
        assert body["data"]["completed"] is False
        assert [m["id"] for m in body["data"]["mentions"]] == [bob.id.value]
        assert body["data"]["userId"]["id"] == alice.id.value

    def test_missing_title(self, client, alice):
        response = client.post("/api/todos", headers=auth(alice), json={})

        assert response.status_code == 400
        assert response.json()["message"] == "Validation error"
        assert response.json()["errors"]

    def test_title_too_long(self, client, alice):
        response = client.post("/api/todos", headers=auth(alice), json={"title": "x" * 201})

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Validation error",
            "errors": ["Title cannot exceed 200 characters"],
        }

    def test_invalid_priority(self, client, alice):
        response = client.post(
            "/api/todos", headers=auth(alice), json={"title": "t", "priority": "urgent"}
        )

        assert response.status_code == 400


class TestUpdateTodo:
    """Tests for PUT /api/todos/{id}."""

    def test_update(self, client, seed, alice, make_task):
        (task,) = seed(make_task(alice, description="keep"))

        response = client.put(
            f"/api/todos/{task.id}",
            headers=auth(alice),
            json={"completed": True, "userId": "ignored", "notes": []},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert response.json()["message"] == "Todo updated successfully"
        assert data["completed"] is True
        assert data["description"] == "keep"
        assert data["userId"]["id"] == alice.id.value

    def test_other_users_task(self, client, seed, alice, bob, make_task):
        (task,) = seed(make_task(alice))

        response = client.put(
            f"/api/todos/{task.id}", headers=auth(bob), json={"title": "Hijack"}
        )

        assert response.status_code == 404
        assert (
            response.json()["message"]
            == "Todo not found or you do not have permission to update it"
        )

    def test_update_mentions(self, client, seed, alice, make_task):
        (task,) = seed(make_task(alice))

        response = client.put(
            f"/api/todos/{task.id}",
            headers=auth(alice),
            json={"mentions": ["alice", "ghost"]},
        )

        assert [m["username"] for m in response.json()["data"]["mentions"]] == ["alice"]

    def test_null_title_rejected(self, client, seed, alice, make_task):
        (task,) = seed(make_task(alice))

        response = client.put(
            f"/api/todos/{task.id}", headers=auth(alice), json={"title": None}
        )

        assert response.status_code == 400
        assert response.json()["errors"] == ["Title is required"]

    def test_invalid_id(self, client, alice):
        response = client.put("/api/todos/bad", headers=auth(alice), json={"title": "x"})

        assert response.status_code == 400


class TestAddNote:
    """Tests for POST /api/todos/{id}/notes."""

    def test_add_note(self, client, seed, alice, bob, make_task):
        (task,) = seed(make_task(alice))

        response = client.post(
            f"/api/todos/{task.id}/notes", headers=auth(bob), json={"content": "hi"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Note added successfully"
        assert body["data"]["notes"][0]["content"] == "hi"
        assert body["data"]["notes"][0]["createdBy"]["username"] == "bob"

    def test_empty_note(self, client, seed, alice, make_task):
        (task,) = seed(make_task(alice))

        response = client.post(
            f"/api/todos/{task.id}/notes", headers=auth(alice), json={"content": ""}
        )

        assert response.status_code == 400
        assert "Note content is required" in response.json()["errors"]

    def test_missing_todo(self, client, alice):
        response = client.post(
            f"/api/todos/{TaskId.generate()}/notes",
            headers=auth(alice),
            json={"content": "hi"},
        )

        assert response.status_code == 404


class TestDeleteTodo:
    """Tests for DELETE /api/todos/{id}."""

    def test_delete(self, client, seed, alice, make_task):
        (task,) = seed(make_task(alice))

        response = client.delete(f"/api/todos/{task.id}", headers=auth(alice))

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Todo deleted successfully"}
        assert client.get(f"/api/todos/{task.id}", headers=auth(alice)).status_code == 404

    def test_delete_missing(self, client, alice):
        response = client.delete(f"/api/todos/{TaskId.generate()}", headers=auth(alice))

        assert response.status_code == 404


class TestStats:
    """Tests for GET /api/todos/stats."""

    def test_no_todos(self, client, alice):
        response = client.get("/api/todos/stats", headers=auth(alice))

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": {
                "totalTodos": 0,
                "completedTodos": 0,
                "highPriority": 0,
                "mediumPriority": 0,
                "lowPriority": 0,
                "pendingTodos": 0,
                "completionRate": 0,
            },
        }

    def test_completion_rate(self, client, seed, alice, bob, make_task):
        seed(
            make_task(alice, completed=True, priority=TaskPriority.HIGH),
            make_task(alice),
            make_task(alice),
            make_task(alice, priority=TaskPriority.LOW),
            make_task(bob, completed=True),
        )

        data = client.get("/api/todos/stats", headers=auth(alice)).json()["data"]

        assert data["totalTodos"] == 4
        assert data["pendingTodos"] == 3
        assert data["mediumPriority"] == 2
        assert data["completionRate"] == "25.00"
