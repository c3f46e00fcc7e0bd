"""Domain models and protocols."""

from .errors import (
    TodoError,
    TaskNotFoundError,
    ValidationError,
    InvalidIdError,
    StoreError,
)
from .models import (
    Task,
    TaskId,
    TaskPriority,
    TaskFilter,
    TaskDetails,
    TaskPage,
    TaskTotals,
    TaskStats,
    Note,
    User,
    UserId,
    PageRequest,
    Pagination,
    SortOrder,
)
from .protocols import TaskStore, UserDirectory

__all__ = [
    "TodoError",
    "TaskNotFoundError",
    "ValidationError",
    "InvalidIdError",
    "StoreError",
    "Task",
    "TaskId",
    "TaskPriority",
    "TaskFilter",
    "TaskDetails",
    "TaskPage",
    "TaskTotals",
    "TaskStats",
    "Note",
    "User",
    "UserId",
    "PageRequest",
    "Pagination",
    "SortOrder",
    "TaskStore",
    "UserDirectory",
]
