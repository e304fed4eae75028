"""Notion database (and data source) model."""

from typing import Literal

from notion_source.types.common import FileObject, Icon, NotionModel, NotionObject, Parent
from notion_source.types.ids import NotionID
from notion_source.types.richtext import RichText, plain_text


class DatabasePropertySchema(NotionModel):
    """Column definition. Type-specific configuration is kept in extra fields."""

    id: str | None = None
    name: str
    type: str


class DataSourceRef(NotionModel):
    id: NotionID
    name: str | None = None


class Database(NotionObject):
    """A database. Search returns ``data_source`` objects on newer API versions;
    both shapes decode into this model."""

    object: Literal["database", "data_source"] = "database"
    parent: Parent | None = None
    title: list[RichText] = []
    description: list[RichText] = []
    icon: Icon | None = None
    cover: FileObject | None = None
    url: str | None = None
    public_url: str | None = None
    archived: bool = False
    in_trash: bool = False
    is_inline: bool = False
    is_locked: bool = False
    properties: dict[str, DatabasePropertySchema] = {}
    data_sources: list[DataSourceRef] = []

    @property
    def plain_title(self) -> str:
        return plain_text(self.title)

    def parent_id(self) -> str | None:
        if self.parent is None:
            return None
        return self.parent.parent_id()
