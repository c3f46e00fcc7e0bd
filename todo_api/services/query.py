"""Translate list query parameters into a store filter and page request."""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from todo_api.domain.models import (
    PageRequest,
    SortOrder,
    TaskFilter,
    TaskPriority,
    UserId,
)
from todo_api.domain.protocols import UserDirectory

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_SORT_BY = "createdAt"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class TodoQuery:
    """Optional list filters as supplied by a caller."""

    priority: Optional[TaskPriority] = None
    completed: Optional[str] = None
    tag: Optional[str] = None
    mention: Optional[str] = None
    search: Optional[str] = None


def parse_positive_int(raw: Optional[str], default: int) -> int:
    """Parse the leading integer of raw, falling back to default.

    "3abc" parses as 3. Missing, unparseable and non-positive values
    give the default.
    """
    if raw is None:
        return default
    match = _LEADING_INT.match(str(raw))
    if not match:
        return default
    value = int(match.group(1))
    return value if value > 0 else default


def parse_page_request(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    default_limit: int = DEFAULT_LIMIT,
) -> PageRequest:
    """Build a PageRequest from raw query values.

    Only "asc" sorts ascending; anything else sorts descending.
    """
    return PageRequest(
        page=parse_positive_int(page, DEFAULT_PAGE),
        limit=parse_positive_int(limit, default_limit),
        sort_by=sort_by or DEFAULT_SORT_BY,
        sort_order=SortOrder.ASC if sort_order == "asc" else SortOrder.DESC,
    )


def parse_completed(raw: Optional[str]) -> Optional[bool]:
    """Only the literal "true" means completed; absent means unconstrained."""
    if raw is None:
        return None
    return raw == "true"


class TaskFilterBuilder:
    """Builds the conjunctive task filter, resolving mention usernames."""

    def __init__(self, users: UserDirectory) -> None:
        self._users = users

    async def build(self, owner_id: UserId, query: TodoQuery) -> Optional[TaskFilter]:
        """Build a filter restricted to owner_id.

        Returns None when the mentioned username does not exist, in which
        case nothing can match and the store need not be queried.
        """
        mention_id = None
        if query.mention:
            user = await self._users.get_by_username(query.mention)
            if user is None:
                logger.info(f"Mention filter references unknown user: {query.mention}")
                return None
            mention_id = user.id

        return TaskFilter(
            owner_id=owner_id,
            priority=query.priority,
            completed=parse_completed(query.completed),
            tag=query.tag or None,
            mention_id=mention_id,
            search=query.search or None,
        )
