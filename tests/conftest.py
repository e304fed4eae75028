"""Shared test fixtures: raw Notion wire records and a scripted fetcher."""

import asyncio
import uuid

import pytest

from notion_source.api.fetcher import BlockRecord, DetailOptions, FetchResult, PageDetail, SearchQuery
from notion_source.errors import FetchError
from notion_source.types.common import ObjectKind

TIMESTAMP = "2025-01-15T10:30:00Z"


def notion_id(n: int) -> str:
    """Deterministic canonical (dashed, lowercase) Notion ID."""
    return str(uuid.UUID(int=n))


def rich_text(content: str) -> dict:
    return {
        "type": "text",
        "text": {"content": content, "link": None},
        "plain_text": content,
        "href": None,
    }


def page_record(n: int = 1, title: str | None = None, **overrides) -> dict:
    record = {
        "object": "page",
        "id": notion_id(n),
        "created_time": TIMESTAMP,
        "last_edited_time": TIMESTAMP,
        "created_by": {"object": "user", "id": notion_id(900)},
        "last_edited_by": {"object": "user", "id": notion_id(901)},
        "parent": {"type": "workspace", "workspace": True},
        "archived": False,
        "in_trash": False,
        "url": f"https://www.notion.so/Page-{uuid.UUID(int=n).hex}",
        "properties": {
            "Name": {"id": "title", "type": "title", "title": [rich_text(title or f"Page {n}")]},
        },
    }
    record.update(overrides)
    return record


def database_record(n: int = 1, title: str | None = None, **overrides) -> dict:
    record = {
        "object": "data_source",
        "id": notion_id(n),
        "created_time": TIMESTAMP,
        "last_edited_time": TIMESTAMP,
        "parent": {"type": "database_id", "database_id": notion_id(n + 5000)},
        "title": [rich_text(title or f"Database {n}")],
        "archived": False,
        "in_trash": False,
        "properties": {
            "Name": {"id": "title", "name": "Name", "type": "title", "title": {}},
        },
    }
    record.update(overrides)
    return record


def block_record(n: int, page: int, text: str = "Hello", **overrides) -> dict:
    record = {
        "object": "block",
        "id": notion_id(n),
        "parent": {"type": "page_id", "page_id": notion_id(page)},
        "created_time": TIMESTAMP,
        "last_edited_time": TIMESTAMP,
        "has_children": False,
        "archived": False,
        "in_trash": False,
        "type": "paragraph",
        "paragraph": {"rich_text": [rich_text(text)], "color": "default"},
    }
    record.update(overrides)
    return record


def comment_record(n: int, page: int, text: str = "Looks good") -> dict:
    return {
        "object": "comment",
        "id": notion_id(n),
        "parent": {"type": "page_id", "page_id": notion_id(page)},
        "discussion_id": notion_id(n + 7000),
        "created_time": TIMESTAMP,
        "last_edited_time": TIMESTAMP,
        "created_by": {"object": "user", "id": notion_id(900)},
        "rich_text": [rich_text(text)],
    }


def user_record(n: int, name: str = "Ada", email: str | None = "ada@example.com") -> dict:
    return {
        "object": "user",
        "id": notion_id(n),
        "type": "person",
        "name": name,
        "avatar_url": None,
        "person": {"email": email},
    }


def search_response(records: list[dict], next_cursor: str | None = None) -> dict:
    return {
        "object": "list",
        "results": records,
        "next_cursor": next_cursor,
        "has_more": next_cursor is not None,
    }


class StubFetcher:
    """PaginatedFetcher double serving canned results.

    Tracks how many detail fetches are in flight at once and which page IDs
    were fetched. ``detail_delay`` makes each detail fetch take that long.
    """

    def __init__(
        self,
        pages: list | None = None,
        databases: list | None = None,
        users: list | None = None,
        details: dict[str, PageDetail] | None = None,
        detail_delay: float = 0.0,
        failing_details: set[str] | None = None,
    ):
        self.results = {
            ObjectKind.PAGE: [_as_result(item) for item in pages or []],
            ObjectKind.DATABASE: [_as_result(item) for item in databases or []],
        }
        self.user_results = [_as_result(item) for item in users or []]
        self.details = details or {}
        self.detail_delay = detail_delay
        self.failing_details = failing_details or set()
        self.searches: list[SearchQuery] = []
        self.detail_calls: list[str] = []
        self.detail_options: list[DetailOptions] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def search(self, query: SearchQuery):
        self.searches.append(query)
        for result in self.results[query.kind]:
            await asyncio.sleep(0)
            yield result

    async def list_users(self):
        for result in self.user_results:
            await asyncio.sleep(0)
            yield result

    async def get_page_detail(self, page_id: str, options: DetailOptions) -> PageDetail:
        self.detail_calls.append(page_id)
        self.detail_options.append(options)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.detail_delay)
            if page_id in self.failing_details:
                raise FetchError("detail fetch failed", kind="page", record_id=page_id)
            if page_id in self.details:
                return self.details[page_id]
            return PageDetail(page=self._hit(page_id))
        finally:
            self.in_flight -= 1

    def _hit(self, page_id: str) -> dict:
        for result in self.results[ObjectKind.PAGE]:
            if result.record and result.record.get("id") == page_id:
                return result.record
        raise AssertionError(f"unexpected detail fetch for {page_id}")


def _as_result(item) -> FetchResult:
    if isinstance(item, FetchResult):
        return item
    if isinstance(item, Exception):
        return FetchResult(error=item)
    return FetchResult(record=item)


@pytest.fixture
def detail_with_content():
    """A PageDetail for page 1 with a nested block tree and one comment."""
    return PageDetail(
        page=page_record(1),
        blocks=[
            BlockRecord(record=block_record(10, page=1, has_children=True), parent_id=notion_id(1), depth=1),
            BlockRecord(
                record=block_record(11, page=1, parent={"type": "block_id", "block_id": notion_id(10)}),
                parent_id=notion_id(10),
                depth=2,
            ),
        ],
        comments=[comment_record(20, page=1)],
    )
