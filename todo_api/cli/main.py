"""CLI commands for the todo API."""

import asyncio
import json
from typing import Optional

import click

from ..config.settings import get_settings
from ..container import get_container, setup_container
from ..domain.models import PageRequest, TaskPriority
from ..logging_setup import configure_logging
from ..services.query import TodoQuery

PRIORITY_ICONS = {
    "low": "🟢",
    "medium": "🔵",
    "high": "🟠",
}


def run_async(coro):
    """Run async coroutine in sync context."""
    return asyncio.run(coro)


@click.group()
@click.version_option(version="1.0.0")
def cli():
    """Per-user todo list API."""
    configure_logging(get_settings().log_level)
    setup_container()


@cli.command("serve")
@click.option("--host", "-h", default=None, help="Host to bind to (default HOST)")
@click.option("--port", "-p", default=None, type=int, help="Port to bind to (default PORT)")
@click.option("--reload", is_flag=True, help="Enable auto-reload")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Start the API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port

    click.echo(f"Starting server at http://{host}:{port}")
    click.echo("Press Ctrl+C to stop")

    uvicorn.run(
        "todo_api.api.app:app",
        host=host,
        port=port,
        reload=reload,
    )


@cli.command("seed")
def seed():
    """Replace all users and todos with demo data."""
    from .seed import seed_demo_data

    if not get_settings().mongo.enabled:
        click.echo(
            "⚠️  MONGO_URI is not set: demo data goes to in-memory stores "
            "and is discarded on exit",
            err=True,
        )

    async def _seed():
        container = get_container()
        try:
            await container.open()
            return await seed_demo_data(container.task_store, container.user_directory)
        finally:
            await container.close()

    try:
        users, todos = run_async(_seed())
    except Exception as e:
        click.echo(f"Error seeding database: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"✅ Created {len(users)} users and {len(todos)} todos\n")
    click.echo("--- Created Users ---")
    for user in users:
        click.echo(f"ID: {user.id}, Username: {user.username}, Email: {user.email}")


@cli.command("list")
@click.option("--user", "-u", "username", required=True, help="Username whose todos to list")
@click.option(
    "--priority",
    "-p",
    type=click.Choice([p.value for p in TaskPriority]),
    help="Filter by priority",
)
@click.option("--completed", type=click.Choice(["true", "false"]), help="Filter by completion")
@click.option("--tag", "-t", help="Filter by tag")
@click.option("--mention", "-m", help="Filter by mentioned username")
@click.option("--search", "-s", help="Search title and description")
@click.option("--page", default=1, type=click.IntRange(min=1), help="Page number")
@click.option("--limit", "-l", default=10, type=click.IntRange(min=1), help="Page size")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def list_todos(
    username: str,
    priority: Optional[str],
    completed: Optional[str],
    tag: Optional[str],
    mention: Optional[str],
    search: Optional[str],
    page: int,
    limit: int,
    output_json: bool,
):
    """List a user's todos with optional filters."""
    query = TodoQuery(
        priority=TaskPriority(priority) if priority else None,
        completed=completed,
        tag=tag,
        mention=mention,
        search=search,
    )

    async def _list():
        container = get_container()
        try:
            await container.open()
            user = await container.user_directory.get_by_username(username)
            if user is None:
                return None
            return await container.todo_service.list_todos(
                user.id, query, PageRequest(page=page, limit=limit)
            )
        finally:
            await container.close()

    result = run_async(_list())
    if result is None:
        click.echo(f"User not found: {username}", err=True)
        raise SystemExit(1)

    if output_json:
        output = {
            "todos": [
                {
                    "id": d.task.id.value,
                    "title": d.task.title,
                    "priority": d.task.priority.value,
                    "completed": d.task.completed,
                    "tags": d.task.tags,
                    "mentions": [u.username for u in d.mentions],
                }
                for d in result.items
            ],
            "page": result.pagination.current_page,
            "totalPages": result.pagination.total_pages,
            "total": result.pagination.total_items,
        }
        click.echo(json.dumps(output, indent=2, ensure_ascii=False))
        return

    if not result.items:
        click.echo("No todos found.")
        return

    pagination = result.pagination
    click.echo(
        f"Found {pagination.total_items} todo(s), "
        f"page {pagination.current_page}/{pagination.total_pages}:\n"
    )
    for details in result.items:
        task = details.task
        status_icon = "✅" if task.completed else "📋"
        priority_icon = PRIORITY_ICONS.get(task.priority.value, "⚪")
        tags = f" #{' #'.join(task.tags)}" if task.tags else ""
        click.echo(f"{status_icon} {priority_icon} [{task.id.value[-8:]}] {task.title}{tags}")


@cli.command("stats")
@click.option("--user", "-u", "username", required=True, help="Username to summarize")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def stats(username: str, output_json: bool):
    """Show a user's todo statistics."""

    async def _stats():
        container = get_container()
        try:
            await container.open()
            user = await container.user_directory.get_by_username(username)
            if user is None:
                return None
            return await container.stats_service.get_stats(user.id)
        finally:
            await container.close()

    result = run_async(_stats())
    if result is None:
        click.echo(f"User not found: {username}", err=True)
        raise SystemExit(1)

    if output_json:
        click.echo(
            json.dumps(
                {
                    "totalTodos": result.total_todos,
                    "completedTodos": result.completed_todos,
                    "pendingTodos": result.pending_todos,
                    "highPriority": result.high_priority,
                    "mediumPriority": result.medium_priority,
                    "lowPriority": result.low_priority,
                    "completionRate": result.completion_rate,
                },
                indent=2,
            )
        )
        return

    click.echo(f"📊 Todo Summary for {username}\n")
    click.echo(f"Total todos: {result.total_todos}")
    click.echo(f"  ✅ completed: {result.completed_todos}")
    click.echo(f"  📋 pending: {result.pending_todos}")
    click.echo("\nBy Priority:")
    click.echo(f"  {PRIORITY_ICONS['high']} high: {result.high_priority}")
    click.echo(f"  {PRIORITY_ICONS['medium']} medium: {result.medium_priority}")
    click.echo(f"  {PRIORITY_ICONS['low']} low: {result.low_priority}")
    click.echo(f"\nCompletion rate: {result.completion_rate}%")


def main():
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
