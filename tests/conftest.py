"""Shared pytest fixtures."""

import pytest
from datetime import datetime, timedelta, timezone

from todo_api.domain.models import Task, TaskId, User, UserId
from todo_api.repositories.memory import InMemoryTaskStore, InMemoryUserDirectory


BASE_TIME = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def alice() -> User:
    return User(
        id=UserId.generate(), username="alice", name="Alice", email="alice@example.com"
    )


@pytest.fixture
def bob() -> User:
    return User(id=UserId.generate(), username="bob", name="Bob", email="bob@example.com")


@pytest.fixture
def carol() -> User:
    return User(
        id=UserId.generate(), username="carol", name="Carol", email="carol@example.com"
    )


@pytest.fixture
def user_directory(alice, bob, carol) -> InMemoryUserDirectory:
    """Directory pre-populated with alice, bob and carol."""
    return InMemoryUserDirectory([alice, bob, carol])


@pytest.fixture
def task_store() -> InMemoryTaskStore:
    return InMemoryTaskStore()


@pytest.fixture
def make_task():
    """Factory for tasks; minute sets created_at relative to a fixed base time."""

    def _make(
        owner: User,
        title: str = "Test task",
        minute: int = 0,
        **kwargs,
    ) -> Task:
        created = BASE_TIME + timedelta(minutes=minute)
        return Task(
            id=TaskId.generate(),
            title=title,
            user_id=owner.id,
            created_at=created,
            updated_at=created,
            **kwargs,
        )

    return _make
