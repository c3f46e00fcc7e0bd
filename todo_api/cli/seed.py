"""Demo users and todos for local development."""

from datetime import timedelta

from ..domain.models import Task, TaskId, TaskPriority, User, UserId, utcnow
from ..domain.protocols import TaskStore, UserDirectory


DEMO_USERS = [
    ("krishna", "krish@example.com"),
    ("kshitij", "kshitij@example.com"),
    ("gautam", "gautam@example.com"),
    ("keshav", "keshav@example.com"),
    ("mayank", "mayank@example.com"),
]

# (title, description, priority, index of owner in DEMO_USERS)
DEMO_TODOS = [
    ("Complete project documentation", "Write comprehensive documentation for the new project", "high", 0),
    ("Review code changes", "Review pull requests from team members", "medium", 0),
    ("Plan team meeting", "Schedule and prepare agenda for weekly team meeting", "low", 0),
    ("Update client presentation", "Revise slides for upcoming client presentation", "high", 1),
    ("Database optimization", "Optimize database queries for better performance", "medium", 1),
    ("Setup development environment", "Configure local development environment for new team member", "medium", 2),
    ("Write unit tests", "Create comprehensive unit tests for user authentication", "high", 2),
    ("Research new technologies", "Investigate new frameworks and tools for next project", "low", 2),
]


async def seed_demo_data(
    task_store: TaskStore, user_directory: UserDirectory
) -> tuple[list[User], list[Task]]:
    """Replace all users and todos with the demo data set."""
    await user_directory.clear()
    await task_store.clear()

    users = [
        User(id=UserId.generate(), username=name, name=name, email=email)
        for name, email in DEMO_USERS
    ]
    await user_directory.create_many(users)

    # Spread creation times so the default newest-first sort is deterministic
    start = utcnow()
    todos = []
    for i, (title, description, priority, owner) in enumerate(DEMO_TODOS):
        created = start + timedelta(seconds=i)
        todos.append(
            Task(
                id=TaskId.generate(),
                title=title,
                description=description,
                priority=TaskPriority(priority),
                user_id=users[owner].id,
                created_at=created,
                updated_at=created,
            )
        )
    await task_store.create_many(todos)

    return users, todos
