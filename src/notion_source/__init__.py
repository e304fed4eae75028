"""Streaming Notion connector.

Reads pages, databases, blocks, comments and users through the Notion API and
emits them as NormalizedItems on a single bounded async stream.
"""

from notion_source.config import Settings, SourceConfig, get_settings
from notion_source.decoder import RecordDecoder
from notion_source.errors import (
    DecodeError,
    FetchError,
    InvalidIDError,
    NotionSourceError,
    RequestValidationError,
)
from notion_source.metrics import MetricsRecorder, MetricsView
from notion_source.models import NormalizedItem, ReadRequest
from notion_source.source import NotionSource, ReadStream, StreamState
from notion_source.types import IDParser, ObjectKind

__all__ = [
    "DecodeError",
    "FetchError",
    "get_settings",
    "IDParser",
    "InvalidIDError",
    "MetricsRecorder",
    "MetricsView",
    "NormalizedItem",
    "NotionSource",
    "NotionSourceError",
    "ObjectKind",
    "ReadRequest",
    "ReadStream",
    "RecordDecoder",
    "RequestValidationError",
    "Settings",
    "SourceConfig",
    "StreamState",
]
