"""Domain exceptions."""

from typing import Optional


class TodoError(Exception):
    """Base class for todo domain errors."""


class TaskNotFoundError(TodoError):
    """Raised when a task does not exist or is not visible to the actor.

    Ownership failures are reported with this error too, so callers cannot
    tell a foreign task from a missing one.
    """

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Todo not found: {task_id}")
        self.task_id = task_id


class ValidationError(TodoError):
    """Raised when a task violates a field constraint."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


class InvalidIdError(TodoError):
    """Raised when an identifier is not a well-formed object id."""

    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid id format: {value!r}")
        self.value = value


class StoreError(TodoError):
    """Raised when the backing store fails."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.cause = cause
