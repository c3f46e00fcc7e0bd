"""Per-user todo statistics."""

from todo_api.domain.models import TaskStats, TaskTotals, UserId
from todo_api.domain.protocols import TaskStore


def completion_rate(completed: int, total: int):
    """Percentage of completed tasks as a two-decimal string.

    Returns the number 0 when there are no tasks.
    """
    if total <= 0:
        return 0
    return f"{completed / total * 100:.2f}"


def stats_from_totals(totals: TaskTotals) -> TaskStats:
    """Derive pending count and completion rate from grouped totals."""
    return TaskStats(
        total_todos=totals.total,
        completed_todos=totals.completed,
        high_priority=totals.high_priority,
        medium_priority=totals.medium_priority,
        low_priority=totals.low_priority,
        pending_todos=totals.total - totals.completed,
        completion_rate=completion_rate(totals.completed, totals.total),
    )


class StatsService:
    """Computes aggregate statistics over one user's tasks."""

    def __init__(self, task_store: TaskStore) -> None:
        self._store = task_store

    async def get_stats(self, owner_id: UserId) -> TaskStats:
        """Statistics for owner_id; a user with no tasks gets all zeros."""
        totals = await self._store.aggregate_totals(owner_id)
        return stats_from_totals(totals or TaskTotals())
