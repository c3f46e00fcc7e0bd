"""Tests for list query parsing and the filter builder."""

import pytest
from unittest.mock import AsyncMock

from todo_api.domain.models import PageRequest, SortOrder, TaskFilter, TaskPriority
from todo_api.services.query import (
    TaskFilterBuilder,
    TodoQuery,
    parse_completed,
    parse_page_request,
    parse_positive_int,
)


class TestParsePositiveInt:
    """Tests for lenient integer parsing."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            (None, 7),
            ("", 7),
            ("abc", 7),
            ("0", 7),
            ("-2", 7),
            ("3", 3),
            ("3abc", 3),
            (" 12", 12),
        ],
    )
    def test_parse(self, raw, expected):
        assert parse_positive_int(raw, 7) == expected


class TestParsePageRequest:
    """Tests for PageRequest construction."""

    def test_defaults(self):
        assert parse_page_request() == PageRequest(
            page=1, limit=10, sort_by="createdAt", sort_order=SortOrder.DESC
        )

    def test_explicit_values(self):
        page = parse_page_request("2", "25", "title", "asc")

        assert page.page == 2
        assert page.limit == 25
        assert page.sort_by == "title"
        assert page.sort_order == SortOrder.ASC

    def test_anything_but_asc_is_descending(self):
        assert parse_page_request(sort_order="ASC").sort_order == SortOrder.DESC
        assert parse_page_request(sort_order="up").sort_order == SortOrder.DESC

    def test_default_limit_override(self):
        assert parse_page_request(default_limit=50).limit == 50

    def test_no_upper_bound(self):
        page = parse_page_request("9999", "100000")

        assert page.page == 9999
        assert page.limit == 100000


class TestParseCompleted:
    """Tests for the completed flag."""

    def test_absent_is_unconstrained(self):
        assert parse_completed(None) is None

    def test_only_literal_true_is_true(self):
        assert parse_completed("true") is True
        assert parse_completed("false") is False
        assert parse_completed("True") is False
        assert parse_completed("1") is False
        assert parse_completed("") is False


class TestTaskFilterBuilder:
    """Tests for TaskFilterBuilder."""

    @pytest.fixture
    def builder(self, user_directory) -> TaskFilterBuilder:
        return TaskFilterBuilder(user_directory)

    @pytest.mark.asyncio
    async def test_owner_only(self, builder, alice):
        """An empty query constrains only the owner."""
        result = await builder.build(alice.id, TodoQuery())

        assert result == TaskFilter(owner_id=alice.id)

    @pytest.mark.asyncio
    async def test_all_fields(self, builder, alice, bob):
        """All optional fields combine."""
        query = TodoQuery(
            priority=TaskPriority.HIGH,
            completed="true",
            tag="work",
            mention="bob",
            search="report",
        )

        result = await builder.build(alice.id, query)

        assert result == TaskFilter(
            owner_id=alice.id,
            priority=TaskPriority.HIGH,
            completed=True,
            tag="work",
            mention_id=bob.id,
            search="report",
        )

    @pytest.mark.asyncio
    async def test_unknown_mention_returns_none(self, builder, alice):
        result = await builder.build(alice.id, TodoQuery(mention="ghost"))
        assert result is None

    @pytest.mark.asyncio
    async def test_empty_strings_impose_no_constraint(self, builder, alice):
        result = await builder.build(alice.id, TodoQuery(tag="", search="", mention=""))

        assert result == TaskFilter(owner_id=alice.id)

    @pytest.mark.asyncio
    async def test_no_lookup_without_mention(self, alice):
        """The directory is only consulted for a mention filter."""
        users = AsyncMock()
        builder = TaskFilterBuilder(users)

        await builder.build(alice.id, TodoQuery(tag="work"))

        users.get_by_username.assert_not_called()
