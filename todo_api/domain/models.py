"""Domain models for the todo list API."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from math import ceil
from typing import Any, Optional, Union

from bson import ObjectId

from .errors import InvalidIdError, ValidationError


TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000

# Fields a caller may change on an existing task.
UPDATABLE_FIELDS = ("title", "description", "priority", "tags", "mentions", "completed")


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class TaskPriority(Enum):
    """Task priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SortOrder(Enum):
    """Sort direction for list queries."""

    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class EntityId:
    """Value object wrapping a 24-hex object id."""

    value: str

    @classmethod
    def generate(cls):
        """Generate a new unique id."""
        return cls(str(ObjectId()))

    @classmethod
    def parse(cls, raw: str):
        """Parse an id supplied by a caller.

        Raises:
            InvalidIdError: If the value is not a valid object id
        """
        if not isinstance(raw, str) or not ObjectId.is_valid(raw):
            raise InvalidIdError(str(raw))
        return cls(raw)

    def __str__(self) -> str:
        return self.value


class TaskId(EntityId):
    """Identifier of a task."""


class UserId(EntityId):
    """Identifier of a user."""


@dataclass
class User:
    """A user referenced by tasks. Owned by the identity subsystem."""

    id: UserId
    username: str
    name: str
    email: str


@dataclass
class Note:
    """Freeform note appended to a task."""

    content: str
    created_by: UserId
    created_at: datetime = field(default_factory=utcnow)


def _field_errors(values: dict[str, Any]) -> list[str]:
    errors = []

    if "title" in values:
        title = values["title"]
        if not isinstance(title, str) or not title.strip():
            errors.append("Title is required")
        elif len(title) > TITLE_MAX_LENGTH:
            errors.append(f"Title cannot exceed {TITLE_MAX_LENGTH} characters")

    description = values.get("description")
    if description is not None and len(description) > DESCRIPTION_MAX_LENGTH:
        errors.append(
            f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters"
        )

    if "priority" in values and not isinstance(values["priority"], TaskPriority):
        allowed = ", ".join(p.value for p in TaskPriority)
        errors.append(f"Priority must be one of: {allowed}")

    if "completed" in values and not isinstance(values["completed"], bool):
        errors.append("Completed must be a boolean")

    if "tags" in values and not isinstance(values["tags"], list):
        errors.append("Tags must be a list")

    return errors


def validate_changes(changes: dict[str, Any]) -> None:
    """Validate a partial update before it is written.

    Raises:
        ValidationError: With one message per violated constraint
    """
    errors = _field_errors(changes)
    if errors:
        raise ValidationError(errors)


@dataclass
class Task:
    """Core task entity, owned by exactly one user."""

    id: TaskId
    title: str
    user_id: UserId
    created_at: datetime
    updated_at: datetime
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    completed: bool = False
    tags: list[str] = field(default_factory=list)
    mentions: list[UserId] = field(default_factory=list)
    notes: list[Note] = field(default_factory=list)

    def is_owned_by(self, user_id: UserId) -> bool:
        """Check whether the given user owns this task."""
        return self.user_id == user_id

    def add_note(self, content: str, author: UserId) -> Note:
        """Append a note attributed to author."""
        note = Note(content=content, created_by=author)
        self.notes.append(note)
        return note

    def validate(self) -> None:
        """Validate the whole record.

        Raises:
            ValidationError: With one message per violated constraint
        """
        errors = _field_errors(
            {
                "title": self.title,
                "description": self.description,
                "priority": self.priority,
                "completed": self.completed,
                "tags": self.tags,
            }
        )
        for note in self.notes:
            if not isinstance(note.content, str) or not note.content.strip():
                errors.append("Note content is required")
        if errors:
            raise ValidationError(errors)


@dataclass
class TaskDetails:
    """A task joined with the display fields of the users it references."""

    task: Task
    owner: Optional[User] = None
    mentions: list[User] = field(default_factory=list)
    note_authors: dict[UserId, User] = field(default_factory=dict)

    def note_author(self, note: Note) -> Optional[User]:
        return self.note_authors.get(note.created_by)


@dataclass
class TaskFilter:
    """Conjunctive filter over a single user's tasks.

    None means "no constraint" for every optional field.
    """

    owner_id: UserId
    priority: Optional[TaskPriority] = None
    completed: Optional[bool] = None
    tag: Optional[str] = None
    mention_id: Optional[UserId] = None
    search: Optional[str] = None


@dataclass(frozen=True)
class PageRequest:
    """Page, size and sort key of a list query."""

    page: int = 1
    limit: int = 10
    sort_by: str = "createdAt"
    sort_order: SortOrder = SortOrder.DESC

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def paginate(self, total: int) -> "Pagination":
        """Build the pagination envelope for a filtered total."""
        total_pages = ceil(total / self.limit) if total else 0
        return Pagination(
            current_page=self.page,
            total_pages=total_pages,
            total_items=total,
            items_per_page=self.limit,
            has_next_page=self.page < total_pages,
            has_prev_page=self.page > 1,
        )


@dataclass(frozen=True)
class Pagination:
    """Pagination envelope returned with list results."""

    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def empty(cls, page: PageRequest) -> "Pagination":
        """Envelope for a query that matched nothing without touching the store."""
        return cls(
            current_page=page.page,
            total_pages=0,
            total_items=0,
            items_per_page=page.limit,
            has_next_page=False,
            has_prev_page=False,
        )


@dataclass
class TaskPage:
    """One page of joined tasks."""

    items: list[TaskDetails]
    pagination: Pagination


@dataclass(frozen=True)
class TaskTotals:
    """Grouped counts over one user's tasks."""

    total: int = 0
    completed: int = 0
    high_priority: int = 0
    medium_priority: int = 0
    low_priority: int = 0


@dataclass(frozen=True)
class TaskStats:
    """Aggregate statistics for one user."""

    total_todos: int
    completed_todos: int
    high_priority: int
    medium_priority: int
    low_priority: int
    pending_todos: int
    # Two-decimal percentage string, or the number 0 when there are no tasks.
    completion_rate: Union[str, int]
