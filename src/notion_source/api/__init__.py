"""Notion API access: client construction, pacing and paginated fetching."""

from notion_source.api.client import build_notion_client
from notion_source.api.fetcher import (
    BlockRecord,
    DetailOptions,
    FetchResult,
    NotionFetcher,
    PageDetail,
    PaginatedFetcher,
    SearchQuery,
)
from notion_source.api.pacing import RequestPacer

__all__ = [
    "BlockRecord",
    "build_notion_client",
    "DetailOptions",
    "FetchResult",
    "NotionFetcher",
    "PageDetail",
    "PaginatedFetcher",
    "RequestPacer",
    "SearchQuery",
]
