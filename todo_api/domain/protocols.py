"""Protocol definitions for dependency injection."""

from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from .models import (
    PageRequest,
    Task,
    TaskFilter,
    TaskId,
    TaskTotals,
    User,
    UserId,
)


@runtime_checkable
class TaskStore(Protocol):
    """Protocol for task persistence operations."""

    async def open(self) -> None:
        """Prepare the store for use."""
        ...

    async def close(self) -> None:
        """Release the store's resources."""
        ...

    async def find(self, filter: TaskFilter, page: PageRequest) -> Sequence[Task]:
        """Return one sorted page of tasks matching filter."""
        ...

    async def count(self, filter: TaskFilter) -> int:
        """Count tasks matching filter."""
        ...

    async def get_by_id(self, task_id: TaskId) -> Optional[Task]:
        """Retrieve a single task by ID."""
        ...

    async def create(self, task: Task) -> Task:
        """Persist a new task, return the stored task."""
        ...

    async def create_many(self, tasks: Sequence[Task]) -> Sequence[Task]:
        """Persist several new tasks."""
        ...

    async def update_owned(
        self, task_id: TaskId, owner_id: UserId, changes: dict[str, Any]
    ) -> Optional[Task]:
        """Atomically apply changes to a task matching both id and owner.

        Returns the updated task, or None when nothing matched.
        """
        ...

    async def save(self, task: Task) -> Task:
        """Replace a stored task with the given state."""
        ...

    async def delete(
        self, task_id: TaskId, owner_id: Optional[UserId] = None
    ) -> Optional[Task]:
        """Delete a task, return the removed task or None."""
        ...

    async def aggregate_totals(self, owner_id: UserId) -> Optional[TaskTotals]:
        """Group one user's tasks into totals, None if the user has none."""
        ...

    async def clear(self) -> None:
        """Remove every task."""
        ...


@runtime_checkable
class UserDirectory(Protocol):
    """Protocol for read access to users."""

    async def open(self) -> None:
        """Prepare the directory for use."""
        ...

    async def close(self) -> None:
        """Release the directory's resources."""
        ...

    async def get_by_id(self, user_id: UserId) -> Optional[User]:
        """Retrieve a single user by ID."""
        ...

    async def get_by_username(self, username: str) -> Optional[User]:
        """Retrieve a single user by username."""
        ...

    async def find_by_usernames(self, usernames: Sequence[str]) -> Sequence[User]:
        """Return the users whose username is in usernames."""
        ...

    async def get_many(self, user_ids: Sequence[UserId]) -> Sequence[User]:
        """Return the users with the given IDs, skipping unknown IDs."""
        ...

    async def create(self, user: User) -> User:
        """Persist a new user."""
        ...

    async def create_many(self, users: Sequence[User]) -> Sequence[User]:
        """Persist several new users."""
        ...

    async def clear(self) -> None:
        """Remove every user."""
        ...
