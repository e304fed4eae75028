"""Connector configuration via pydantic-settings."""

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Notion
    notion_api_key: str = ""
    notion_version: str = "2025-09-03"

    # What to read
    include_pages: bool = True
    include_databases: bool = True
    include_blocks: bool = True
    include_comments: bool = True
    include_users: bool = False
    include_archived: bool = False
    search_query: str = ""

    # Pagination and concurrency
    max_depth: int = 0
    page_size: int = 100
    requests_per_second: float = 3.0
    max_concurrent: int = 5
    max_retries: int = 3

    # App
    environment: str = "development"
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings. Lazy initialization to avoid import-time errors."""
    return Settings()


class SourceConfig(BaseModel):
    """Configuration of a single NotionSource instance.

    Defaults mirror ``Settings``; use ``from_settings`` to build one from the
    environment.
    """

    include_pages: bool = True
    include_databases: bool = True
    include_blocks: bool = True
    include_comments: bool = True
    include_users: bool = False
    include_archived: bool = False
    search_query: str = ""
    max_depth: int = Field(default=0, ge=0)
    page_size: int = Field(default=100, ge=1, le=100)
    requests_per_second: float = Field(default=3.0, gt=0)
    max_concurrent: int = Field(default=5, ge=1)
    max_retries: int = Field(default=3, ge=0)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "SourceConfig":
        """Build a SourceConfig from application settings (cached settings by default)."""
        settings = settings or get_settings()
        return cls(
            include_pages=settings.include_pages,
            include_databases=settings.include_databases,
            include_blocks=settings.include_blocks,
            include_comments=settings.include_comments,
            include_users=settings.include_users,
            include_archived=settings.include_archived,
            search_query=settings.search_query,
            max_depth=settings.max_depth,
            page_size=settings.page_size,
            requests_per_second=settings.requests_per_second,
            max_concurrent=settings.max_concurrent,
            max_retries=settings.max_retries,
        )

    def describe(self) -> dict:
        """Return the connector descriptor: type, name and tuning knobs."""
        return {
            "type": "notion",
            "name": "Notion API Source",
            "properties": {
                "include_databases": self.include_databases,
                "include_pages": self.include_pages,
                "include_blocks": self.include_blocks,
                "include_comments": self.include_comments,
                "include_users": self.include_users,
                "include_archived": self.include_archived,
                "max_depth": self.max_depth,
                "page_size": self.page_size,
                "requests_per_second": self.requests_per_second,
                "max_concurrent": self.max_concurrent,
            },
        }
