"""Paginated fetching from the Notion API.

``PaginatedFetcher`` is the interface the stream coordinator consumes.
``NotionFetcher`` implements it over ``notion_client.AsyncClient``: cursor
pagination, client-side pacing, and tenacity retries on transient failures
(429, 5xx, timeouts, transport errors). Retrying lives here and nowhere else.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
from notion_client import AsyncClient
from notion_client.errors import HTTPResponseError, RequestTimeoutError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from notion_source.api.pacing import RequestPacer
from notion_source.errors import FetchError
from notion_source.types.common import ObjectKind

logger = logging.getLogger(__name__)

# Search object filter values per kind (Notion API 2025-09-03 searches data sources)
SEARCH_OBJECT_FILTER = {
    ObjectKind.PAGE: "page",
    ObjectKind.DATABASE: "data_source",
}


@dataclass(frozen=True)
class FetchResult:
    """One element of a paginated sequence: a raw record or the error that ended it."""

    record: dict | None = None
    error: Exception | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class SearchQuery:
    kind: ObjectKind
    query: str | None = None
    sort_direction: str | None = None


@dataclass(frozen=True)
class DetailOptions:
    include_blocks: bool = True
    include_comments: bool = False
    max_depth: int = 0


@dataclass(frozen=True)
class BlockRecord:
    """A raw block with its position in the page tree (depth 1 = top level)."""

    record: dict
    parent_id: str
    depth: int


@dataclass(frozen=True)
class PageDetail:
    page: dict
    blocks: list[BlockRecord] = field(default_factory=list)
    comments: list[dict] = field(default_factory=list)


class PaginatedFetcher(Protocol):
    """Source of raw Notion records consumed by NotionSource."""

    def search(self, query: SearchQuery) -> AsyncIterator[FetchResult]: ...

    def list_users(self) -> AsyncIterator[FetchResult]: ...

    async def get_page_detail(self, page_id: str, options: DetailOptions) -> PageDetail: ...


def _is_retryable(error: BaseException) -> bool:
    """Return True for rate limits (429), server errors (5xx), timeouts and transport errors."""
    if isinstance(error, RequestTimeoutError):
        return True
    if isinstance(error, HTTPResponseError):
        return error.status == 429 or error.status >= 500
    return isinstance(error, httpx.TransportError)


_CLIENT_ERRORS = (HTTPResponseError, RequestTimeoutError, httpx.HTTPError)


class NotionFetcher:
    """PaginatedFetcher backed by the official async Notion client."""

    def __init__(
        self,
        client: AsyncClient,
        *,
        page_size: int = 100,
        requests_per_second: float = 3.0,
        max_retries: int = 3,
        on_request: Callable[[], None] | None = None,
        retry_wait: wait_base | None = None,
    ):
        self._client = client
        self._page_size = page_size
        self._pacer = RequestPacer(requests_per_second)
        self._max_retries = max_retries
        self._on_request = on_request
        self._retry_wait = retry_wait or wait_exponential_jitter(initial=1, max=30, jitter=2)

    async def _call(self, method: Callable[..., Awaitable[Any]], **kwargs) -> dict:
        """Issue one API call with pacing and retries.

        Raises FetchError once retries are exhausted or on a permanent error.
        """
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception(_is_retryable),
                wait=self._retry_wait,
                stop=stop_after_attempt(self._max_retries + 1),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    await self._pacer.wait()
                    if self._on_request is not None:
                        self._on_request()
                    response = await method(**kwargs)
        except _CLIENT_ERRORS as exc:
            raise FetchError(f"Notion request failed: {exc}") from exc
        return response

    async def _paginate(
        self, method: Callable[..., Awaitable[Any]], **params
    ) -> AsyncIterator[FetchResult]:
        """Yield every record across all pages. A failed page yields one error and ends."""
        cursor: str | None = None
        while True:
            kwargs = dict(params, page_size=self._page_size)
            if cursor:
                kwargs["start_cursor"] = cursor
            try:
                response = await self._call(method, **kwargs)
            except FetchError as exc:
                yield FetchResult(error=exc)
                return

            for record in response.get("results", []):
                yield FetchResult(record=record)

            cursor = response.get("next_cursor")
            if not response.get("has_more") or not cursor:
                return

    async def _collect(self, method: Callable[..., Awaitable[Any]], **params) -> list[dict]:
        """Return all records of a paginated listing, raising FetchError on any failed page."""
        records: list[dict] = []
        async for result in self._paginate(method, **params):
            if result.is_error:
                raise result.error
            records.append(result.record)
        return records

    def search(self, query: SearchQuery) -> AsyncIterator[FetchResult]:
        params: dict[str, Any] = {
            "filter": {"property": "object", "value": SEARCH_OBJECT_FILTER[query.kind]},
        }
        if query.query:
            params["query"] = query.query
        if query.sort_direction:
            params["sort"] = {"direction": query.sort_direction, "timestamp": "last_edited_time"}
        logger.debug("Searching Notion", extra={"kind": query.kind.value, "query": query.query})
        return self._paginate(self._client.search, **params)

    def list_users(self) -> AsyncIterator[FetchResult]:
        return self._paginate(self._client.users.list)

    async def get_page_detail(self, page_id: str, options: DetailOptions) -> PageDetail:
        """Fetch a page with its block tree (down to ``max_depth``) and comments."""
        page = await self._call(self._client.pages.retrieve, page_id=page_id)

        blocks: list[BlockRecord] = []
        if options.include_blocks:
            await self._walk_blocks(page_id, depth=1, max_depth=max(options.max_depth, 1), into=blocks)

        comments: list[dict] = []
        if options.include_comments:
            comments = await self._collect(self._client.comments.list, block_id=page_id)

        return PageDetail(page=page, blocks=blocks, comments=comments)

    async def _walk_blocks(self, parent_id: str, depth: int, max_depth: int, into: list[BlockRecord]) -> None:
        """Depth-first walk of block children; descends while depth < max_depth."""
        children = await self._collect(self._client.blocks.children.list, block_id=parent_id)
        for record in children:
            into.append(BlockRecord(record=record, parent_id=parent_id, depth=depth))
            # child pages/databases are separate search hits, not part of this tree
            if (
                record.get("has_children")
                and depth < max_depth
                and record.get("type") not in ("child_page", "child_database")
            ):
                await self._walk_blocks(record["id"], depth + 1, max_depth, into)
