"""Todo service: list, read and mutate one user's tasks."""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from todo_api.domain.errors import TaskNotFoundError
from todo_api.domain.models import (
    UPDATABLE_FIELDS,
    PageRequest,
    Pagination,
    Task,
    TaskDetails,
    TaskId,
    TaskPage,
    TaskPriority,
    UserId,
    utcnow,
)
from todo_api.domain.protocols import TaskStore, UserDirectory
from todo_api.services.query import TaskFilterBuilder, TodoQuery

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OwnershipPolicy:
    """Which operations besides update require the actor to own the task."""

    note_requires_owner: bool = False
    delete_requires_owner: bool = False


@dataclass
class CreateTodo:
    """Validated input for creating a task."""

    title: str
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    tags: list[str] = field(default_factory=list)
    # Usernames, resolved to ids on create
    mentions: list[str] = field(default_factory=list)


class TodoService:
    """Task command and query handlers for an authenticated actor."""

    def __init__(
        self,
        task_store: TaskStore,
        user_directory: UserDirectory,
        policy: Optional[OwnershipPolicy] = None,
    ) -> None:
        self._store = task_store
        self._users = user_directory
        self._policy = policy or OwnershipPolicy()
        self._filters = TaskFilterBuilder(user_directory)

    async def _populate_many(self, tasks: Sequence[Task]) -> list[TaskDetails]:
        """Join owner, mention and note author display fields."""
        ids: dict[UserId, None] = {}
        for task in tasks:
            ids[task.user_id] = None
            ids.update(dict.fromkeys(task.mentions))
            ids.update(dict.fromkeys(n.created_by for n in task.notes))

        users = {u.id: u for u in await self._users.get_many(list(ids))}

        return [
            TaskDetails(
                task=task,
                owner=users.get(task.user_id),
                mentions=[users[m] for m in task.mentions if m in users],
                note_authors={
                    n.created_by: users[n.created_by]
                    for n in task.notes
                    if n.created_by in users
                },
            )
            for task in tasks
        ]

    async def _populate(self, task: Task) -> TaskDetails:
        return (await self._populate_many([task]))[0]

    async def _resolve_mentions(self, usernames: Sequence[str]) -> list[UserId]:
        if not usernames:
            return []
        users = await self._users.find_by_usernames(usernames)
        return [u.id for u in users]

    async def list_todos(
        self, actor_id: UserId, query: TodoQuery, page: PageRequest
    ) -> TaskPage:
        """List the actor's tasks matching query, one page at a time."""
        task_filter = await self._filters.build(actor_id, query)
        if task_filter is None:
            return TaskPage(items=[], pagination=Pagination.empty(page))

        tasks = await self._store.find(task_filter, page)
        total = await self._store.count(task_filter)

        return TaskPage(
            items=await self._populate_many(tasks),
            pagination=page.paginate(total),
        )

    async def get_todo(self, task_id: TaskId) -> TaskDetails:
        """Get a task by ID.

        Raises:
            TaskNotFoundError: If no task has this ID
        """
        task = await self._store.get_by_id(task_id)
        if task is None:
            raise TaskNotFoundError(task_id.value)
        return await self._populate(task)

    async def create_todo(self, actor_id: UserId, command: CreateTodo) -> TaskDetails:
        """Create a task owned by the actor.

        Unknown mention usernames are dropped.
        """
        now = utcnow()
        task = Task(
            id=TaskId.generate(),
            title=command.title,
            description=command.description,
            priority=command.priority,
            tags=list(command.tags or []),
            mentions=await self._resolve_mentions(command.mentions),
            user_id=actor_id,
            created_at=now,
            updated_at=now,
        )

        created = await self._store.create(task)
        logger.info(f"Created todo {created.id} for user {actor_id}")
        return await self._populate(created)

    async def update_todo(
        self, actor_id: UserId, task_id: TaskId, fields: dict[str, Any]
    ) -> TaskDetails:
        """Apply allow-listed field changes to a task the actor owns.

        Fields outside the allow-list are ignored. Mention usernames that
        cannot be resolved are dropped and logged rather than reported.

        Raises:
            TaskNotFoundError: If the task is missing or owned by someone else
            ValidationError: If a changed field violates a constraint
        """
        changes = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS}

        if "mentions" in changes:
            usernames = changes["mentions"] or []
            resolved = await self._resolve_mentions(usernames)
            if len(resolved) != len(usernames):
                logger.warning(
                    f"Some mentioned users were not found while updating todo {task_id}"
                )
            changes["mentions"] = resolved

        updated = await self._store.update_owned(task_id, actor_id, changes)
        if updated is None:
            raise TaskNotFoundError(task_id.value)

        logger.info(f"Updated todo {task_id}: {sorted(changes)}")
        return await self._populate(updated)

    async def add_note(
        self, actor_id: UserId, task_id: TaskId, content: str
    ) -> TaskDetails:
        """Append a note by the actor to a task.

        Raises:
            TaskNotFoundError: If the task is missing, or not owned by the
                actor while the note policy requires ownership
            ValidationError: If the note is empty
        """
        task = await self._store.get_by_id(task_id)
        if task is None:
            raise TaskNotFoundError(task_id.value)
        if self._policy.note_requires_owner and not task.is_owned_by(actor_id):
            raise TaskNotFoundError(task_id.value)

        task.add_note(content, actor_id)
        saved = await self._store.save(task)
        logger.info(f"Added note to todo {task_id} by user {actor_id}")
        return await self._populate(saved)

    async def delete_todo(self, actor_id: UserId, task_id: TaskId) -> None:
        """Delete a task.

        Raises:
            TaskNotFoundError: If nothing was deleted
        """
        owner_id = actor_id if self._policy.delete_requires_owner else None
        deleted = await self._store.delete(task_id, owner_id=owner_id)
        if deleted is None:
            raise TaskNotFoundError(task_id.value)
        logger.info(f"Deleted todo {task_id}")
