"""Async Notion client construction.

The client is created explicitly and handed to NotionSource; there is no
module-level instance, so tests and concurrent sources never share one.
"""

from notion_client import AsyncClient

from notion_source.config import Settings, get_settings


def build_notion_client(settings: Settings | None = None) -> AsyncClient:
    """Create an AsyncClient from settings (cached application settings by default)."""
    settings = settings or get_settings()
    return AsyncClient(auth=settings.notion_api_key, notion_version=settings.notion_version)
