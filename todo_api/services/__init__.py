"""Service layer implementations."""

from .todo_service import TodoService, CreateTodo, OwnershipPolicy
from .stats_service import StatsService
from .query import TaskFilterBuilder, TodoQuery, parse_page_request

__all__ = [
    "TodoService",
    "CreateTodo",
    "OwnershipPolicy",
    "StatsService",
    "TaskFilterBuilder",
    "TodoQuery",
    "parse_page_request",
]
