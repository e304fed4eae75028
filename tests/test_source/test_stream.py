"""Tests for NotionSource read operations and ReadStream."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from conftest import (
    StubFetcher,
    block_record,
    database_record,
    notion_id,
    page_record,
    search_response,
    user_record,
)
from notion_source import MetricsRecorder, NotionSource, ReadRequest, ReadStream, SourceConfig, StreamState
from notion_source.api.fetcher import BlockRecord, PageDetail
from notion_source.errors import FetchError
from notion_source.types import Page
from notion_source.types.common import ObjectKind


async def _collect(stream, timeout: float = 5.0) -> list:
    """Consume the whole stream, failing the test instead of hanging."""
    async with asyncio.timeout(timeout):
        return [item async for item in stream]


def _request(*kinds: str, **overrides) -> ReadRequest:
    return ReadRequest(kinds=set(kinds), **overrides)


# --- End-to-end over a mocked Notion client ---


@pytest.mark.asyncio
async def test_pages_end_to_end_over_client():
    """Five search hits over three result pages, enriched two at a time."""
    records = {notion_id(n): page_record(n) for n in range(1, 6)}
    client = AsyncMock()
    client.search.side_effect = [
        search_response([records[notion_id(1)], records[notion_id(2)]], next_cursor="c1"),
        search_response([records[notion_id(3)], records[notion_id(4)]], next_cursor="c2"),
        search_response([records[notion_id(5)]]),
    ]
    client.pages.retrieve.side_effect = lambda page_id, **kwargs: records[page_id]
    source = NotionSource(client, SourceConfig(requests_per_second=1000))

    stream = await source.start(_request("page", page_size=2, max_concurrent=2))
    items = await _collect(stream)

    assert len(items) == 5
    assert all(item.kind == ObjectKind.PAGE for item in items)
    assert {item.id for item in items} == set(records)
    assert all(isinstance(item.data, Page) for item in items)

    metrics = source.get_metrics()
    assert metrics.pages_read == 5
    assert metrics.objects_read == 5
    assert metrics.errors_encountered == 0
    assert metrics.requests_made == 8
    assert metrics.finished
    assert client.search.await_count == 3
    client.blocks.children.list.assert_not_awaited()


@pytest.mark.asyncio
async def test_stream_metrics_match_source_metrics():
    fetcher = StubFetcher(pages=[page_record(1)])
    source = NotionSource(fetcher=fetcher)

    stream = await source.start(_request("page"))
    await _collect(stream)

    assert stream.metrics == source.get_metrics()


# --- Error accounting ---


@pytest.mark.asyncio
async def test_failed_hits_are_counted_not_fatal():
    """Three good hits and two failed search pages: three items, two errors."""
    fetcher = StubFetcher(
        pages=[
            page_record(1),
            FetchError("search page failed"),
            page_record(2),
            FetchError("search page failed"),
            page_record(3),
        ]
    )
    source = NotionSource(fetcher=fetcher)

    items = await _collect(await source.start(_request("page")))

    assert len(items) == 3
    metrics = source.get_metrics()
    assert metrics.pages_read == 3
    assert metrics.errors_encountered == 2


@pytest.mark.asyncio
async def test_failed_detail_fetch_is_counted():
    fetcher = StubFetcher(pages=[page_record(1), page_record(2), page_record(3)], failing_details={notion_id(2)})
    source = NotionSource(fetcher=fetcher)

    items = await _collect(await source.start(_request("page")))

    assert {item.id for item in items} == {notion_id(1), notion_id(3)}
    assert source.get_metrics().errors_encountered == 1


@pytest.mark.asyncio
async def test_decode_failure_is_counted():
    fetcher = StubFetcher(databases=[database_record(2), database_record(3, id="not-a-notion-id")])
    source = NotionSource(fetcher=fetcher)

    items = await _collect(await source.start(_request("database")))

    assert [item.id for item in items] == [notion_id(2)]
    metrics = source.get_metrics()
    assert metrics.databases_read == 1
    assert metrics.errors_encountered == 1


@pytest.mark.asyncio
async def test_bad_block_does_not_drop_page():
    detail = PageDetail(
        page=page_record(1),
        blocks=[
            BlockRecord(record=block_record(10, page=1), parent_id=notion_id(1), depth=1),
            BlockRecord(record=block_record(11, page=1, id="broken"), parent_id=notion_id(1), depth=1),
        ],
    )
    fetcher = StubFetcher(pages=[page_record(1)], details={notion_id(1): detail})
    source = NotionSource(fetcher=fetcher)

    items = await _collect(await source.start(_request("page", "block")))

    assert sorted(item.kind.value for item in items) == ["block", "page"]
    assert source.get_metrics().errors_encountered == 1


# --- Concurrency and backpressure ---


@pytest.mark.asyncio
async def test_enrichment_concurrency_ceiling():
    fetcher = StubFetcher(pages=[page_record(n) for n in range(1, 13)], detail_delay=0.02)
    source = NotionSource(fetcher=fetcher)

    items = await _collect(await source.start(_request("page", max_concurrent=3)))

    assert len(items) == 12
    assert fetcher.max_in_flight == 3


@pytest.mark.asyncio
async def test_capacity_one_buffer_delivers_everything():
    """With a one-slot queue every producer waits for the consumer; nothing is lost."""
    fetcher = StubFetcher(pages=[page_record(n) for n in range(1, 11)])
    source = NotionSource(fetcher=fetcher, buffer_size=1)

    stream = await source.start(_request("page", max_concurrent=4))
    items = []
    async with asyncio.timeout(5):
        async for item in stream:
            items.append(item)
            await asyncio.sleep(0.001)

    assert len({item.id for item in items}) == 10
    assert source.get_metrics().pages_read == 10


@pytest.mark.asyncio
async def test_slow_consumer_holds_back_detail_fetches():
    """A stalled consumer stops the page search from fetching ahead of it."""
    fetcher = StubFetcher(pages=[page_record(n) for n in range(1, 201)])
    source = NotionSource(fetcher=fetcher, buffer_size=1)

    stream = await source.start(_request("page", max_concurrent=2))
    first = await anext(stream)
    await asyncio.sleep(0.2)

    # one consumed, one buffered, and at most max_concurrent + capacity waiting to send
    assert len(fetcher.detail_calls) <= 5
    assert source.get_metrics().pages_read <= 2

    rest = await _collect(stream)
    assert len({item.id for item in [first, *rest]}) == 200
    assert len(fetcher.detail_calls) == 200


@pytest.mark.asyncio
async def test_zero_buffer_size_means_one_slot():
    fetcher = StubFetcher(pages=[page_record(n) for n in range(1, 6)])
    source = NotionSource(fetcher=fetcher, buffer_size=0)

    stream = await source.start(_request("page", max_concurrent=2))
    assert stream.capacity == 1

    items = await _collect(stream)
    assert len(items) == 5


@pytest.mark.asyncio
async def test_default_capacity_scales_with_page_size_and_concurrency():
    source = NotionSource(fetcher=StubFetcher())

    stream = await source.start(_request("page", page_size=5, max_concurrent=2))

    assert stream.capacity == 100
    await _collect(stream)


# --- Cancellation and deadline ---


@pytest.mark.asyncio
async def test_cancel_stops_all_work():
    fetcher = StubFetcher(pages=[page_record(n) for n in range(1, 51)], detail_delay=0.05)
    source = NotionSource(fetcher=fetcher)
    stream = await source.start(_request("page", max_concurrent=2))

    consumed = [await anext(stream), await anext(stream)]
    stream.cancel()
    await asyncio.wait_for(stream.wait_closed(), timeout=1)
    calls = len(fetcher.detail_calls)
    await asyncio.sleep(0.1)

    assert len(fetcher.detail_calls) == calls
    assert calls < 50
    assert stream.closed
    assert stream.state == StreamState.CLOSED

    remaining = await _collect(stream)
    metrics = source.get_metrics()
    assert metrics.finished
    # only completed sends are counted
    assert metrics.pages_read == len(consumed) + len(remaining)


@pytest.mark.asyncio
async def test_async_with_exit_cancels():
    fetcher = StubFetcher(pages=[page_record(n) for n in range(1, 51)], detail_delay=0.05)
    source = NotionSource(fetcher=fetcher)

    async with await source.start(_request("page", max_concurrent=2)) as stream:
        first = await anext(stream)

    assert first.kind == ObjectKind.PAGE
    assert stream.closed
    assert len(fetcher.detail_calls) < 50


@pytest.mark.asyncio
async def test_close_cancels_running_read():
    fetcher = StubFetcher(pages=[page_record(n) for n in range(1, 21)], detail_delay=0.05)
    source = NotionSource(fetcher=fetcher)
    stream = await source.start(_request("page"))

    await source.close()

    assert stream.closed
    assert source.state == StreamState.CLOSED
    assert source.get_metrics().finished


class _IdleOperation:
    """Read operation double that never finishes; tests feed its queue directly."""

    def __init__(self):
        self.queue = asyncio.Queue(maxsize=4)
        self.recorder = MetricsRecorder()
        self.state = StreamState.RUNNING

    async def run(self):
        await asyncio.Event().wait()


@pytest.mark.asyncio
async def test_cancelled_read_keeps_dequeued_item():
    """An item taken off the queue as the waiting consumer is cancelled is not lost."""
    operation = _IdleOperation()
    stream = ReadStream(operation)
    consumer = asyncio.create_task(anext(stream))
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    item = object()
    operation.queue.put_nowait(item)
    consumer.cancel()
    with pytest.raises(asyncio.CancelledError):
        await consumer

    async with asyncio.timeout(1):
        assert await anext(stream) is item
    await stream.aclose()


@pytest.mark.asyncio
async def test_stream_starts_operation_and_reports_its_state():
    operation = _IdleOperation()
    stream = ReadStream(operation)
    assert stream.state == StreamState.RUNNING
    assert not stream.closed

    operation.state = StreamState.DRAINING
    assert stream.state == StreamState.DRAINING

    await stream.aclose()
    assert stream.closed
    assert stream.state == StreamState.CLOSED
    assert operation.recorder.snapshot().finished



@pytest.mark.asyncio
async def test_deadline_ends_stream():
    fetcher = StubFetcher(pages=[page_record(1), page_record(2)], detail_delay=10)
    source = NotionSource(fetcher=fetcher)

    stream = await source.start(_request("page", timeout=0.1))
    items = await _collect(stream, timeout=2)

    assert items == []
    assert stream.closed
    metrics = source.get_metrics()
    assert metrics.finished
    assert metrics.errors_encountered == 0


# --- Worker groups ---


@pytest.mark.asyncio
async def test_pages_blocks_and_comments(detail_with_content):
    fetcher = StubFetcher(pages=[page_record(1)], details={notion_id(1): detail_with_content})
    source = NotionSource(fetcher=fetcher)

    items = await _collect(await source.start(_request("page", "block", "comment", max_depth=2)))

    by_kind = {kind: [item for item in items if item.kind == kind] for kind in ObjectKind}
    assert len(by_kind[ObjectKind.PAGE]) == 1
    assert len(by_kind[ObjectKind.BLOCK]) == 2
    assert len(by_kind[ObjectKind.COMMENT]) == 1

    page = by_kind[ObjectKind.PAGE][0]
    assert page.metadata.properties["blocks_count"] == 2
    assert page.metadata.properties["comments_count"] == 1

    nested = next(item for item in by_kind[ObjectKind.BLOCK] if item.id == notion_id(11))
    assert nested.metadata.properties["depth"] == 2
    assert nested.metadata.properties["parent_id"] == notion_id(10)
    assert by_kind[ObjectKind.COMMENT][0].metadata.properties["page_id"] == notion_id(1)

    options = fetcher.detail_options[0]
    assert options.include_blocks is True
    assert options.include_comments is True
    assert options.max_depth == 2

    metrics = source.get_metrics()
    assert metrics.pages_read == 1
    assert metrics.blocks_read == 2
    assert metrics.comments_read == 1


@pytest.mark.asyncio
async def test_blocks_only_still_walks_pages(detail_with_content):
    """Requesting blocks alone searches pages but does not emit them."""
    fetcher = StubFetcher(pages=[page_record(1)], details={notion_id(1): detail_with_content})
    source = NotionSource(fetcher=fetcher)

    items = await _collect(await source.start(_request("block")))

    assert [item.kind for item in items] == [ObjectKind.BLOCK, ObjectKind.BLOCK]
    assert fetcher.detail_options[0].include_comments is False
    assert source.get_metrics().pages_read == 0


@pytest.mark.asyncio
async def test_pages_only_skips_block_fetch():
    fetcher = StubFetcher(pages=[page_record(1)])
    source = NotionSource(fetcher=fetcher)

    await _collect(await source.start(_request("page")))

    options = fetcher.detail_options[0]
    assert options.include_blocks is False
    assert options.include_comments is False


@pytest.mark.asyncio
async def test_disabled_comments_are_not_fetched(detail_with_content):
    fetcher = StubFetcher(pages=[page_record(1)], details={notion_id(1): detail_with_content})
    source = NotionSource(fetcher=fetcher, config=SourceConfig(include_comments=False))

    items = await _collect(await source.start(_request("page", "comment")))

    assert [item.kind for item in items] == [ObjectKind.PAGE]
    assert fetcher.detail_options[0].include_comments is False


@pytest.mark.asyncio
async def test_databases_and_users():
    fetcher = StubFetcher(
        databases=[database_record(2), database_record(3)],
        users=[user_record(30), user_record(31, name="Grace")],
    )
    source = NotionSource(fetcher=fetcher, config=SourceConfig(include_users=True))

    items = await _collect(await source.start(_request("database", "user")))

    assert sorted(item.kind.value for item in items) == ["database", "database", "user", "user"]
    assert fetcher.detail_calls == []
    assert [query.kind for query in fetcher.searches] == [ObjectKind.DATABASE]
    metrics = source.get_metrics()
    assert metrics.databases_read == 2
    assert metrics.users_read == 2


@pytest.mark.asyncio
async def test_users_disabled_by_default():
    fetcher = StubFetcher(users=[user_record(30)])
    source = NotionSource(fetcher=fetcher)

    items = await _collect(await source.start(_request("user")))

    assert items == []
    assert source.state == StreamState.CLOSED


@pytest.mark.asyncio
async def test_empty_workspace():
    source = NotionSource(fetcher=StubFetcher())

    stream = await source.start(_request("page", "database"))
    items = await _collect(stream)

    assert items == []
    assert stream.state == StreamState.CLOSED
    assert source.get_metrics().objects_read == 0


# --- Filters ---


@pytest.mark.asyncio
async def test_archived_records_skipped_by_default():
    fetcher = StubFetcher(
        pages=[page_record(1), page_record(2, archived=True), page_record(3, in_trash=True)],
    )
    source = NotionSource(fetcher=fetcher)

    items = await _collect(await source.start(_request("page")))

    assert [item.id for item in items] == [notion_id(1)]
    assert fetcher.detail_calls == [notion_id(1)]
    assert source.get_metrics().errors_encountered == 0


@pytest.mark.asyncio
async def test_include_archived_override():
    fetcher = StubFetcher(pages=[page_record(1), page_record(2, archived=True)])
    source = NotionSource(fetcher=fetcher)

    items = await _collect(await source.start(_request("page", include_archived=True)))

    assert len(items) == 2


@pytest.mark.asyncio
async def test_edited_after_filter():
    fetcher = StubFetcher(
        pages=[
            page_record(1, last_edited_time="2025-01-01T00:00:00Z"),
            page_record(2, last_edited_time="2025-03-01T00:00:00Z"),
        ]
    )
    source = NotionSource(fetcher=fetcher)

    request = _request("page", edited_after=datetime(2025, 2, 1, tzinfo=timezone.utc))
    items = await _collect(await source.start(request))

    assert [item.id for item in items] == [notion_id(2)]


@pytest.mark.asyncio
async def test_created_before_filter_with_naive_datetime():
    """Naive bounds are taken as UTC."""
    fetcher = StubFetcher(
        databases=[
            database_record(2, created_time="2024-06-01T00:00:00Z"),
            database_record(3, created_time="2025-06-01T00:00:00Z"),
        ]
    )
    source = NotionSource(fetcher=fetcher)

    items = await _collect(await source.start(_request("database", created_before=datetime(2025, 1, 1))))

    assert [item.id for item in items] == [notion_id(2)]


@pytest.mark.asyncio
async def test_predicate_filter():
    fetcher = StubFetcher(databases=[database_record(2, title="Keep me"), database_record(3, title="Drop me")])
    source = NotionSource(fetcher=fetcher)

    request = _request("database", predicates={"database": lambda raw: raw["title"][0]["plain_text"].startswith("Keep")})
    items = await _collect(await source.start(request))

    assert [item.id for item in items] == [notion_id(2)]


@pytest.mark.asyncio
async def test_query_passed_to_search():
    fetcher = StubFetcher()
    source = NotionSource(fetcher=fetcher, config=SourceConfig(search_query="from config"))

    await _collect(await source.start(_request("page", query="roadmap", sort_direction="ascending")))
    await _collect(await source.start(_request("database")))

    assert fetcher.searches[0].query == "roadmap"
    assert fetcher.searches[0].sort_direction == "ascending"
    assert fetcher.searches[1].query == "from config"


# --- Lifecycle ---


@pytest.mark.asyncio
async def test_state_transitions():
    fetcher = StubFetcher(pages=[page_record(1)])
    source = NotionSource(fetcher=fetcher)
    assert source.state == StreamState.IDLE

    stream = await source.start(_request("page"))
    assert stream.state == StreamState.RUNNING

    await _collect(stream)
    assert stream.state == StreamState.CLOSED
    assert source.state == StreamState.CLOSED


@pytest.mark.asyncio
async def test_each_read_has_fresh_metrics():
    fetcher = StubFetcher(pages=[page_record(1), page_record(2)])
    source = NotionSource(fetcher=fetcher)

    first = await source.start(_request("page"))
    await _collect(first)
    second = await source.start(_request("page"))
    await _collect(second)

    assert first.metrics.pages_read == 2
    assert second.metrics.pages_read == 2
    assert source.get_metrics().pages_read == 2


@pytest.mark.asyncio
async def test_unexpected_worker_failure_reaches_consumer():
    """A bug in a worker is re-raised to the consumer once the buffer drains."""

    def broken(raw):
        raise RuntimeError("predicate bug")

    fetcher = StubFetcher(pages=[page_record(1)])
    source = NotionSource(fetcher=fetcher)

    stream = await source.start(_request("page", predicates={"page": broken}))
    with pytest.raises(ExceptionGroup):
        await _collect(stream)

    assert stream.closed
    assert source.get_metrics().finished
