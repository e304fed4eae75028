"""NotionSource: streams Notion entities into a single bounded item queue.

A read operation runs one worker group per requested kind under a supervisor
task. The page group fans out one enrichment task per search hit; a shared
semaphore bounds how many detail fetches are in flight. Every item goes
through the same bounded queue, which the caller consumes via ReadStream.
The page search pauses once ``max_concurrent + capacity`` enrichment tasks
are alive, so a slow consumer holds back detail fetches as well.

Per-record fetch and decode failures are counted and logged, never fatal.
The stream ends when every worker group has returned, the deadline passes,
or the caller cancels it.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from notion_client import AsyncClient

from notion_source.api.fetcher import DetailOptions, FetchResult, NotionFetcher, PaginatedFetcher, SearchQuery
from notion_source.config import SourceConfig
from notion_source.decoder import RecordDecoder
from notion_source.errors import DecodeError, FetchError, RequestValidationError
from notion_source.metrics import MetricsRecorder, MetricsView
from notion_source.models.item import NormalizedItem
from notion_source.models.request import ReadRequest
from notion_source.types.common import ObjectKind
from notion_source.types.ids import IDParser

logger = logging.getLogger(__name__)

# Queue capacity multiplier, sized to absorb enrichment bursts
_BUFFER_FACTOR = 10

_SUPPORTED_KINDS = frozenset(kind.value for kind in ObjectKind)


class StreamState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    RUNNING = "running"
    DRAINING = "draining"
    CLOSED = "closed"


@dataclass(frozen=True)
class _ReadPlan:
    """Effective settings of one read: request overrides applied over SourceConfig."""

    page_size: int
    requests_per_second: float
    max_concurrent: int
    max_depth: int
    max_retries: int
    include_archived: bool
    query: str | None
    emit_pages: bool
    emit_blocks: bool
    emit_comments: bool
    read_databases: bool
    read_users: bool

    @classmethod
    def build(cls, config: SourceConfig, request: ReadRequest) -> "_ReadPlan":
        def pick(override, default):
            return default if override is None else override

        return cls(
            page_size=pick(request.page_size, config.page_size),
            requests_per_second=pick(request.requests_per_second, config.requests_per_second),
            max_concurrent=pick(request.max_concurrent, config.max_concurrent),
            max_depth=pick(request.max_depth, config.max_depth),
            max_retries=config.max_retries,
            include_archived=pick(request.include_archived, config.include_archived),
            query=request.query or config.search_query or None,
            emit_pages=request.wants(ObjectKind.PAGE.value) and config.include_pages,
            emit_blocks=request.wants(ObjectKind.BLOCK.value) and config.include_blocks,
            emit_comments=request.wants(ObjectKind.COMMENT.value) and config.include_comments,
            read_databases=request.wants(ObjectKind.DATABASE.value) and config.include_databases,
            read_users=request.wants(ObjectKind.USER.value) and config.include_users,
        )

    @property
    def read_pages(self) -> bool:
        return self.emit_pages or self.emit_blocks or self.emit_comments

    @property
    def buffer_size(self) -> int:
        return max(1, self.page_size * self.max_concurrent * _BUFFER_FACTOR)


class ReadStream:
    """Async iterator over the NormalizedItems of one read operation.

    The stream starts the operation's supervisor task when it is created and
    is closed once that task has finished; items still buffered at that point
    are delivered before iteration stops. Exiting an ``async with`` block,
    ``cancel()`` or ``aclose()`` cancel the operation.
    """

    def __init__(self, operation: "_ReadOperation"):
        self._operation = operation
        self._queue = operation.queue
        self._recorder = operation.recorder
        self._held: deque[NormalizedItem] = deque()
        self._task = asyncio.create_task(operation.run(), name="notion-source-read")

    @property
    def state(self) -> StreamState:
        # a task cancelled before it ever ran never reaches its own cleanup
        if self.closed:
            return StreamState.CLOSED
        return self._operation.state

    @property
    def closed(self) -> bool:
        return self._task.done()

    @property
    def capacity(self) -> int:
        """Number of items the stream buffers ahead of the consumer."""
        return self._queue.maxsize

    @property
    def metrics(self) -> MetricsView:
        return self._recorder.snapshot()

    def __aiter__(self) -> "ReadStream":
        return self

    async def __anext__(self) -> NormalizedItem:
        while True:
            if self._held:
                return self._held.popleft()
            if not self._queue.empty():
                return self._queue.get_nowait()
            if self._task.done():
                self._raise_if_failed()
                raise StopAsyncIteration

            getter = asyncio.ensure_future(self._queue.get())
            try:
                await asyncio.wait({getter, self._task}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                if not getter.done():
                    # Queue.get leaves the item in place when cancelled
                    getter.cancel()
                elif not getter.cancelled():
                    # already dequeued; the next call returns it even if this one is cancelled
                    self._held.append(getter.result())

    def _raise_if_failed(self) -> None:
        if self._task.cancelled():
            return
        exc = self._task.exception()
        if exc is not None:
            raise exc

    def cancel(self) -> None:
        """Stop the operation. In-flight fetches and sends are abandoned."""
        if not self._task.done():
            self._operation.state = StreamState.DRAINING
            self._task.cancel()

    async def wait_closed(self) -> None:
        """Wait until every worker has returned. Does not raise worker errors."""
        await asyncio.wait({self._task})

    async def aclose(self) -> None:
        self.cancel()
        await self.wait_closed()
        self._recorder.finalize()

    async def __aenter__(self) -> "ReadStream":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


class _ReadOperation:
    """State and workers of a single read: queue, enrichment gate, metrics."""

    def __init__(
        self,
        request: ReadRequest,
        plan: _ReadPlan,
        fetcher: PaginatedFetcher,
        decoder: RecordDecoder,
        recorder: MetricsRecorder,
        queue: asyncio.Queue,
    ):
        self.queue = queue
        self.recorder = recorder
        self.state = StreamState.RUNNING
        self._request = request
        self._plan = plan
        self._fetcher = fetcher
        self._decoder = decoder
        self._gate = asyncio.Semaphore(plan.max_concurrent)
        # enrichment tasks alive at once: those fetching plus those waiting to send
        self._outstanding = asyncio.Semaphore(plan.max_concurrent + queue.maxsize)
        self._active_listings = 0
        self._detail_options = DetailOptions(
            include_blocks=plan.emit_blocks,
            include_comments=plan.emit_comments,
            max_depth=plan.max_depth,
        )

    async def run(self) -> None:
        groups = []
        if self._plan.read_pages:
            groups.append(self._read_pages())
        if self._plan.read_databases:
            groups.append(self._read_databases())
        if self._plan.read_users:
            groups.append(self._read_users())
        self._active_listings = len(groups)

        logger.info(
            "Notion read started",
            extra={"kinds": sorted(self._request.kinds), "worker_groups": len(groups)},
        )
        try:
            async with asyncio.timeout(self._request.timeout):
                async with asyncio.TaskGroup() as tg:
                    for group in groups:
                        tg.create_task(group)
        except TimeoutError:
            logger.warning("Notion read deadline of %.1fs exceeded, stopping", self._request.timeout)
        finally:
            self.recorder.finalize()
            self.state = StreamState.CLOSED
            logger.info("Notion read finished", extra=self.recorder.snapshot().as_log_fields())

    def _listing_done(self) -> None:
        self._active_listings -= 1
        if self._active_listings == 0 and self.state == StreamState.RUNNING:
            self.state = StreamState.DRAINING

    async def _emit(self, item: NormalizedItem) -> None:
        await self.queue.put(item)
        self.recorder.increment_kind(item.kind)

    def _record_error(self, kind: ObjectKind, error: Exception, record_id: str | None = None) -> None:
        self.recorder.increment_error()
        logger.warning(
            "Skipping %s record: %s",
            kind.value,
            error,
            extra={"kind": kind.value, "record_id": record_id, "error": str(error)},
        )

    def _accept(self, kind: ObjectKind, raw: dict) -> bool:
        """Apply the request's client-side filters to a raw record."""
        if not isinstance(raw, dict):
            # let the decoder reject it as a decode error
            return True
        request = self._request
        if not self._plan.include_archived and (raw.get("archived") or raw.get("in_trash")):
            return False

        edited = _parse_time(raw.get("last_edited_time"))
        if edited is not None:
            if request.edited_after and edited <= _as_utc(request.edited_after):
                return False
            if request.edited_before and edited >= _as_utc(request.edited_before):
                return False
        created = _parse_time(raw.get("created_time"))
        if created is not None:
            if request.created_after and created <= _as_utc(request.created_after):
                return False
            if request.created_before and created >= _as_utc(request.created_before):
                return False

        predicate = request.predicates.get(kind.value)
        return predicate is None or bool(predicate(raw))

    async def _read_pages(self) -> None:
        query = SearchQuery(ObjectKind.PAGE, self._plan.query, self._request.sort_direction)
        async with asyncio.TaskGroup() as tg:
            async for result in self._fetcher.search(query):
                if result.is_error:
                    self._record_error(ObjectKind.PAGE, result.error)
                    continue
                if not self._accept(ObjectKind.PAGE, result.record):
                    continue
                # stop pulling search hits while the consumer is behind
                await self._outstanding.acquire()
                tg.create_task(self._enrich_with_slot(result.record))
            self._listing_done()

    async def _enrich_with_slot(self, hit: dict) -> None:
        try:
            await self._enrich_page(hit)
        finally:
            self._outstanding.release()

    async def _enrich_page(self, hit: dict) -> None:
        """Fetch one page in full, then send it and its blocks and comments."""
        page_id = hit.get("id") if isinstance(hit, dict) else None
        if not page_id:
            self._record_error(ObjectKind.PAGE, DecodeError("Search hit without id", kind="page"))
            return

        async with self._gate:
            try:
                detail = await self._fetcher.get_page_detail(page_id, self._detail_options)
            except FetchError as exc:
                self._record_error(ObjectKind.PAGE, exc, page_id)
                return

        if self._plan.emit_pages:
            try:
                item = self._decoder.decode_page_detail(detail)
            except DecodeError as exc:
                self._record_error(ObjectKind.PAGE, exc, page_id)
            else:
                await self._emit(item)

        if self._plan.emit_blocks:
            for block in detail.blocks:
                try:
                    item = self._decoder.decode(
                        ObjectKind.BLOCK, block.record, parent_id=block.parent_id, depth=block.depth
                    )
                except DecodeError as exc:
                    self._record_error(ObjectKind.BLOCK, exc, exc.record_id)
                    continue
                await self._emit(item)

        if self._plan.emit_comments:
            for comment in detail.comments:
                try:
                    item = self._decoder.decode(ObjectKind.COMMENT, comment, extra={"page_id": page_id})
                except DecodeError as exc:
                    self._record_error(ObjectKind.COMMENT, exc, exc.record_id)
                    continue
                await self._emit(item)

    async def _read_databases(self) -> None:
        query = SearchQuery(ObjectKind.DATABASE, self._plan.query, self._request.sort_direction)
        async for result in self._fetcher.search(query):
            await self._decode_and_emit(ObjectKind.DATABASE, result)
        self._listing_done()

    async def _read_users(self) -> None:
        async for result in self._fetcher.list_users():
            await self._decode_and_emit(ObjectKind.USER, result)
        self._listing_done()

    async def _decode_and_emit(self, kind: ObjectKind, result: FetchResult) -> None:
        """Send a lightweight listing result as-is; no enrichment fetch."""
        if result.is_error:
            self._record_error(kind, result.error)
            return
        if not self._accept(kind, result.record):
            return
        try:
            item = self._decoder.decode(kind, result.record)
        except DecodeError as exc:
            self._record_error(kind, exc, exc.record_id)
            return
        await self._emit(item)


def _parse_time(value) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return _as_utc(datetime.fromisoformat(value))
    except ValueError:
        return None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class NotionSource:
    """Reads pages, databases, blocks, comments and users from Notion as a stream.

    Either ``client`` or ``fetcher`` must be given. With a client, a
    NotionFetcher is built per read so that the read's pacing settings apply
    and its HTTP calls are counted in that read's metrics. An injected fetcher
    is used as-is and counts requests itself, if at all.
    """

    def __init__(
        self,
        client: AsyncClient | None = None,
        config: SourceConfig | None = None,
        *,
        fetcher: PaginatedFetcher | None = None,
        decoder: RecordDecoder | None = None,
        id_parser: IDParser | None = None,
        buffer_size: int | None = None,
    ):
        self._client = client
        self._config = config or SourceConfig()
        self._fetcher = fetcher
        self._decoder = decoder or RecordDecoder(id_parser or IDParser())
        self._buffer_size = buffer_size
        self._recorder = MetricsRecorder()
        self._stream: ReadStream | None = None
        self._state = StreamState.IDLE

    @property
    def config(self) -> SourceConfig:
        return self._config

    @property
    def state(self) -> StreamState:
        """State of the most recent read operation."""
        if self._stream is not None:
            return self._stream.state
        return self._state

    @staticmethod
    def supports_kind(kind: str) -> bool:
        return kind in _SUPPORTED_KINDS

    def describe(self) -> dict:
        return self._config.describe()

    def validate(self, request: ReadRequest) -> None:
        """Raise RequestValidationError if the request cannot be served."""
        if self._client is None and self._fetcher is None:
            raise RequestValidationError("A Notion client is required")
        if not request.kinds:
            raise RequestValidationError("At least one object kind must be requested")
        unsupported = sorted(kind for kind in request.kinds if not self.supports_kind(kind))
        if unsupported:
            raise RequestValidationError(f"Object kinds not supported by the Notion source: {unsupported}")

    async def start(self, request: ReadRequest) -> ReadStream:
        """Validate the request and start reading in the background.

        Returns immediately with the stream. Raises RequestValidationError
        before any background work starts.
        """
        self._stream = None
        self._state = StreamState.VALIDATING
        try:
            self.validate(request)
        except RequestValidationError:
            self._state = StreamState.IDLE
            raise

        plan = _ReadPlan.build(self._config, request)
        recorder = MetricsRecorder()
        self._recorder = recorder
        fetcher = self._fetcher or NotionFetcher(
            self._client,
            page_size=plan.page_size,
            requests_per_second=plan.requests_per_second,
            max_retries=plan.max_retries,
            on_request=recorder.increment_request,
        )
        capacity = plan.buffer_size if self._buffer_size is None else max(1, self._buffer_size)
        operation = _ReadOperation(request, plan, fetcher, self._decoder, recorder, asyncio.Queue(maxsize=capacity))
        stream = ReadStream(operation)
        self._stream = stream
        return stream

    def get_metrics(self) -> MetricsView:
        """Snapshot of the most recent read operation's metrics."""
        return self._recorder.snapshot()

    async def close(self) -> None:
        """Cancel any running read and finalize its metrics."""
        if self._stream is not None:
            await self._stream.aclose()
        self._recorder.finalize()
