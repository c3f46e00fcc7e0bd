"""In-memory implementations of the stores for testing and local use."""

import re
from copy import deepcopy
from dataclasses import replace
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from todo_api.domain.errors import StoreError, TaskNotFoundError, ValidationError
from todo_api.domain.models import (
    PageRequest,
    SortOrder,
    Task,
    TaskFilter,
    TaskId,
    TaskPriority,
    TaskTotals,
    User,
    UserId,
    utcnow,
)


# Wire-level sort field names mapped to Task attributes.
SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "title": "title",
    "description": "description",
    "priority": "priority",
    "completed": "completed",
}


def _sort_key(attribute: str) -> Callable[[Task], tuple]:
    def key(task: Task) -> tuple:
        value = getattr(task, attribute)
        if isinstance(value, Enum):
            value = value.value
        # Missing values sort first, as in a document store
        return (value is not None, value)

    return key


class InMemoryTaskStore:
    """In-memory implementation of TaskStore."""

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}

    async def open(self) -> None:
        """Nothing to prepare."""

    async def close(self) -> None:
        """Nothing to release."""

    def _matching(self, filter: TaskFilter) -> list[Task]:
        tasks = [t for t in self._tasks.values() if t.is_owned_by(filter.owner_id)]

        if filter.priority is not None:
            tasks = [t for t in tasks if t.priority == filter.priority]
        if filter.completed is not None:
            tasks = [t for t in tasks if t.completed == filter.completed]
        if filter.tag is not None:
            tasks = [t for t in tasks if filter.tag in t.tags]
        if filter.mention_id is not None:
            tasks = [t for t in tasks if filter.mention_id in t.mentions]
        if filter.search is not None:
            try:
                pattern = re.compile(filter.search, re.IGNORECASE)
            except re.error as e:
                raise StoreError(f"Invalid search pattern: {e}", e)
            tasks = [
                t
                for t in tasks
                if pattern.search(t.title)
                or (t.description is not None and pattern.search(t.description))
            ]

        return tasks

    async def find(self, filter: TaskFilter, page: PageRequest) -> Sequence[Task]:
        """Return one sorted page of tasks matching filter."""
        tasks = self._matching(filter)

        attribute = SORT_FIELDS.get(page.sort_by)
        if attribute:
            tasks = sorted(
                tasks,
                key=_sort_key(attribute),
                reverse=page.sort_order == SortOrder.DESC,
            )

        return [deepcopy(t) for t in tasks[page.skip : page.skip + page.limit]]

    async def count(self, filter: TaskFilter) -> int:
        """Count tasks matching filter."""
        return len(self._matching(filter))

    async def get_by_id(self, task_id: TaskId) -> Optional[Task]:
        """Retrieve a single task by ID."""
        task = self._tasks.get(task_id.value)
        return deepcopy(task) if task else None

    async def create(self, task: Task) -> Task:
        """Create a new task."""
        if task.id.value in self._tasks:
            raise ValueError(f"Task {task.id.value} already exists")
        task.validate()
        self._tasks[task.id.value] = deepcopy(task)
        return deepcopy(task)

    async def create_many(self, tasks: Sequence[Task]) -> Sequence[Task]:
        """Create several tasks."""
        return [await self.create(task) for task in tasks]

    async def update_owned(
        self, task_id: TaskId, owner_id: UserId, changes: dict[str, Any]
    ) -> Optional[Task]:
        """Apply changes if the task exists and belongs to owner_id."""
        stored = self._tasks.get(task_id.value)
        if stored is None or not stored.is_owned_by(owner_id):
            return None

        updated = replace(deepcopy(stored), **changes, updated_at=utcnow())
        updated.validate()
        self._tasks[task_id.value] = updated
        return deepcopy(updated)

    async def save(self, task: Task) -> Task:
        """Replace an existing task."""
        if task.id.value not in self._tasks:
            raise TaskNotFoundError(task.id.value)
        task.validate()
        saved = replace(deepcopy(task), updated_at=utcnow())
        self._tasks[task.id.value] = saved
        return deepcopy(saved)

    async def delete(
        self, task_id: TaskId, owner_id: Optional[UserId] = None
    ) -> Optional[Task]:
        """Delete a task, optionally only if owned by owner_id."""
        task = self._tasks.get(task_id.value)
        if task is None:
            return None
        if owner_id is not None and not task.is_owned_by(owner_id):
            return None
        del self._tasks[task_id.value]
        return task

    async def aggregate_totals(self, owner_id: UserId) -> Optional[TaskTotals]:
        """Count one user's tasks by completion and priority."""
        total = completed = high = medium = low = 0
        for task in self._tasks.values():
            if not task.is_owned_by(owner_id):
                continue
            total += 1
            completed += task.completed is True
            high += task.priority == TaskPriority.HIGH
            medium += task.priority == TaskPriority.MEDIUM
            low += task.priority == TaskPriority.LOW

        if total == 0:
            return None

        return TaskTotals(
            total=total,
            completed=completed,
            high_priority=high,
            medium_priority=medium,
            low_priority=low,
        )

    async def clear(self) -> None:
        """Remove every task."""
        self._tasks.clear()


class InMemoryUserDirectory:
    """In-memory implementation of UserDirectory."""

    def __init__(self, users: Optional[Sequence[User]] = None) -> None:
        self._users: dict[str, User] = {}
        for user in users or []:
            self._users[user.id.value] = user

    async def open(self) -> None:
        """Nothing to prepare."""

    async def close(self) -> None:
        """Nothing to release."""

    async def get_by_id(self, user_id: UserId) -> Optional[User]:
        """Retrieve a single user by ID."""
        return self._users.get(user_id.value)

    async def get_by_username(self, username: str) -> Optional[User]:
        """Retrieve a single user by username."""
        for user in self._users.values():
            if user.username == username:
                return user
        return None

    async def find_by_usernames(self, usernames: Sequence[str]) -> Sequence[User]:
        """Return users whose username is in usernames, in directory order."""
        wanted = set(usernames)
        return [u for u in self._users.values() if u.username in wanted]

    async def get_many(self, user_ids: Sequence[UserId]) -> Sequence[User]:
        """Return known users for the given IDs."""
        return [self._users[i.value] for i in user_ids if i.value in self._users]

    async def create(self, user: User) -> User:
        """Create a new user."""
        if await self.get_by_username(user.username):
            raise ValidationError([f"Username already exists: {user.username}"])
        self._users[user.id.value] = user
        return user

    async def create_many(self, users: Sequence[User]) -> Sequence[User]:
        """Create several users."""
        return [await self.create(user) for user in users]

    async def clear(self) -> None:
        """Remove every user."""
        self._users.clear()
