"""FastAPI dependencies for services and the authenticated actor."""

from fastapi import Request

from ..container import get_container
from ..domain.errors import InvalidIdError
from ..domain.models import User, UserId
from ..services.stats_service import StatsService
from ..services.todo_service import TodoService
from .errors import ApiError


def get_todo_service() -> TodoService:
    """Get TodoService from container."""
    return get_container().todo_service


def get_stats_service() -> StatsService:
    """Get StatsService from container."""
    return get_container().stats_service


async def get_current_user(request: Request) -> User:
    """Resolve the actor from the header set by the authentication layer."""
    container = get_container()
    header = container.settings.auth.user_header

    raw = request.headers.get(header)
    if not raw:
        raise ApiError(401, "Not authorized, no user")

    try:
        user_id = UserId.parse(raw)
    except InvalidIdError:
        raise ApiError(401, "Not authorized, invalid user") from None

    user = await container.user_directory.get_by_id(user_id)
    if user is None:
        raise ApiError(401, "Not authorized, user not found")
    return user
