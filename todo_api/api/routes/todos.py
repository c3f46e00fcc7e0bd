"""Todo routes."""

from datetime import datetime
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...container import get_container
from ...domain.models import (
    Pagination,
    TaskDetails,
    TaskId,
    TaskPriority,
    TaskStats,
    User,
)
from ...services.query import TodoQuery, parse_page_request
from ...services.todo_service import CreateTodo
from ..deps import get_current_user, get_stats_service, get_todo_service
from ..errors import ApiError, read_failure, write_failure


router = APIRouter(prefix="/api/todos", tags=["todos"])

UPDATE_NOT_FOUND = "Todo not found or you do not have permission to update it"


class ApiModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserSummary(ApiModel):
    """Display fields of a referenced user."""

    id: str
    name: str
    email: str
    username: str


class NoteResponse(ApiModel):
    content: str
    created_by: Optional[UserSummary] = None
    created_at: datetime


class TodoResponse(ApiModel):
    """Todo joined with its users' display fields."""

    id: str
    title: str
    description: Optional[str] = None
    priority: str
    completed: bool
    tags: list[str] = Field(default_factory=list)
    mentions: list[UserSummary] = Field(default_factory=list)
    notes: list[NoteResponse] = Field(default_factory=list)
    user_id: Optional[UserSummary] = None
    created_at: datetime
    updated_at: datetime


class PaginationResponse(ApiModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool


class TodoListEnvelope(ApiModel):
    success: bool = True
    data: list[TodoResponse]
    pagination: PaginationResponse


class TodoEnvelope(ApiModel):
    success: bool = True
    data: TodoResponse
    message: Optional[str] = None


class StatsResponse(ApiModel):
    total_todos: int
    completed_todos: int
    high_priority: int
    medium_priority: int
    low_priority: int
    pending_todos: int
    completion_rate: Union[str, int]


class StatsEnvelope(ApiModel):
    success: bool = True
    data: StatsResponse


class MessageEnvelope(ApiModel):
    success: bool = True
    message: str


class TodoCreateRequest(BaseModel):
    """Todo creation request model."""

    title: str
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    tags: Optional[list[str]] = None
    mentions: Optional[list[str]] = Field(default=None, description="Usernames")


class TodoUpdateRequest(BaseModel):
    """Todo update request model.

    Only these fields can change; anything else in the body is ignored.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    tags: Optional[list[str]] = None
    mentions: Optional[list[str]] = Field(default=None, description="Usernames")
    completed: Optional[bool] = None


class NoteCreateRequest(BaseModel):
    content: str


def user_to_summary(user: Optional[User]) -> Optional[UserSummary]:
    if user is None:
        return None
    return UserSummary(
        id=user.id.value, name=user.name, email=user.email, username=user.username
    )


def details_to_response(details: TaskDetails) -> TodoResponse:
    """Convert TaskDetails to TodoResponse."""
    task = details.task
    return TodoResponse(
        id=task.id.value,
        title=task.title,
        description=task.description,
        priority=task.priority.value,
        completed=task.completed,
        tags=task.tags,
        mentions=[user_to_summary(u) for u in details.mentions],
        notes=[
            NoteResponse(
                content=note.content,
                created_by=user_to_summary(details.note_author(note)),
                created_at=note.created_at,
            )
            for note in task.notes
        ],
        user_id=user_to_summary(details.owner),
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


def parse_priority(raw: Optional[str]) -> Optional[TaskPriority]:
    """An empty value imposes no constraint; anything else must be a priority."""
    if not raw:
        return None
    try:
        return TaskPriority(raw)
    except ValueError:
        allowed = ", ".join(p.value for p in TaskPriority)
        raise ApiError(
            400, "Validation error", errors=[f"priority: Must be one of: {allowed}"]
        ) from None


def pagination_to_response(pagination: Pagination) -> PaginationResponse:
    return PaginationResponse(
        current_page=pagination.current_page,
        total_pages=pagination.total_pages,
        total_items=pagination.total_items,
        items_per_page=pagination.items_per_page,
        has_next_page=pagination.has_next_page,
        has_prev_page=pagination.has_prev_page,
    )


def stats_to_response(stats: TaskStats) -> StatsResponse:
    return StatsResponse(
        total_todos=stats.total_todos,
        completed_todos=stats.completed_todos,
        high_priority=stats.high_priority,
        medium_priority=stats.medium_priority,
        low_priority=stats.low_priority,
        pending_todos=stats.pending_todos,
        completion_rate=stats.completion_rate,
    )


# Static routes must come before dynamic routes
@router.get("", response_model=TodoListEnvelope)
async def list_todos(
    page: Optional[str] = Query(None, description="Page number (default 1)"),
    limit: Optional[str] = Query(None, description="Page size (default 10)"),
    sort_by: Optional[str] = Query(None, alias="sortBy", description="Sort field"),
    sort_order: Optional[str] = Query(None, alias="sortOrder", description="asc or desc"),
    priority: Optional[str] = Query(None, description="Filter by priority"),
    completed: Optional[str] = Query(None, description="Filter by completion (true/false)"),
    tag: Optional[str] = Query(None, description="Filter by tag"),
    mention: Optional[str] = Query(None, description="Filter by mentioned username"),
    search: Optional[str] = Query(None, description="Search title and description"),
    user: User = Depends(get_current_user),
) -> TodoListEnvelope:
    """List the current user's todos with filters and pagination."""
    service = get_todo_service()
    page_request = parse_page_request(
        page,
        limit,
        sort_by,
        sort_order,
        default_limit=get_container().settings.pagination.default_limit,
    )
    query = TodoQuery(
        priority=parse_priority(priority),
        completed=completed,
        tag=tag,
        mention=mention,
        search=search,
    )

    try:
        result = await service.list_todos(user.id, query, page_request)
    except Exception as e:
        raise read_failure(e, "Error fetching todos") from e

    return TodoListEnvelope(
        data=[details_to_response(d) for d in result.items],
        pagination=pagination_to_response(result.pagination),
    )


@router.get("/stats", response_model=StatsEnvelope)
async def get_stats(user: User = Depends(get_current_user)) -> StatsEnvelope:
    """Aggregate statistics over the current user's todos."""
    service = get_stats_service()

    try:
        stats = await service.get_stats(user.id)
    except Exception as e:
        raise read_failure(e, "Error fetching todo statistics") from e

    return StatsEnvelope(data=stats_to_response(stats))


@router.post("", response_model=TodoEnvelope, status_code=201)
async def create_todo(
    request: TodoCreateRequest, user: User = Depends(get_current_user)
) -> TodoEnvelope:
    """Create a todo owned by the current user."""
    service = get_todo_service()
    command = CreateTodo(
        title=request.title,
        description=request.description,
        priority=request.priority,
        tags=request.tags or [],
        mentions=request.mentions or [],
    )

    try:
        details = await service.create_todo(user.id, command)
    except Exception as e:
        raise write_failure(e, "Error creating todo") from e

    return TodoEnvelope(
        data=details_to_response(details), message="Todo created successfully"
    )


# Dynamic routes must come after static routes
@router.get("/{todo_id}", response_model=TodoEnvelope)
async def get_todo(todo_id: str, user: User = Depends(get_current_user)) -> TodoEnvelope:
    """Get todo by ID."""
    service = get_todo_service()

    try:
        details = await service.get_todo(TaskId.parse(todo_id))
    except Exception as e:
        raise read_failure(e, "Error fetching todo") from e

    return TodoEnvelope(data=details_to_response(details))


@router.put("/{todo_id}", response_model=TodoEnvelope)
async def update_todo(
    todo_id: str, request: TodoUpdateRequest, user: User = Depends(get_current_user)
) -> TodoEnvelope:
    """Update a todo the current user owns."""
    service = get_todo_service()

    try:
        details = await service.update_todo(
            user.id, TaskId.parse(todo_id), request.model_dump(exclude_unset=True)
        )
    except Exception as e:
        raise write_failure(e, "Error updating todo", UPDATE_NOT_FOUND) from e

    return TodoEnvelope(
        data=details_to_response(details), message="Todo updated successfully"
    )


@router.post("/{todo_id}/notes", response_model=TodoEnvelope)
async def add_note(
    todo_id: str, request: NoteCreateRequest, user: User = Depends(get_current_user)
) -> TodoEnvelope:
    """Append a note by the current user."""
    service = get_todo_service()

    try:
        details = await service.add_note(user.id, TaskId.parse(todo_id), request.content)
    except Exception as e:
        raise write_failure(e, "Error adding note") from e

    return TodoEnvelope(
        data=details_to_response(details), message="Note added successfully"
    )


@router.delete("/{todo_id}", response_model=MessageEnvelope)
async def delete_todo(
    todo_id: str, user: User = Depends(get_current_user)
) -> MessageEnvelope:
    """Delete a todo."""
    service = get_todo_service()

    try:
        await service.delete_todo(user.id, TaskId.parse(todo_id))
    except Exception as e:
        raise write_failure(e, "Error deleting todo") from e

    return MessageEnvelope(message="Todo deleted successfully")
