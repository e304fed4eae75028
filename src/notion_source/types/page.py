"""Notion page model."""

from typing import Literal

from notion_source.types.common import (
    DatabaseParent,
    DataSourceParent,
    FileObject,
    Icon,
    NotionObject,
    Parent,
    WorkspaceParent,
)
from notion_source.types.properties import PropertyValue, title_of


class Page(NotionObject):
    """A page, either standalone or a row of a database."""

    object: Literal["page"] = "page"
    parent: Parent | None = None
    icon: Icon | None = None
    cover: FileObject | None = None
    url: str | None = None
    public_url: str | None = None
    archived: bool = False
    in_trash: bool = False
    properties: dict[str, PropertyValue] = {}

    @property
    def title(self) -> str:
        return title_of(self.properties)

    def is_in_database(self) -> bool:
        """True if the page is a database row."""
        return isinstance(self.parent, (DatabaseParent, DataSourceParent))

    def is_top_level(self) -> bool:
        """True if the page sits directly under the workspace."""
        return isinstance(self.parent, WorkspaceParent)

    def parent_id(self) -> str | None:
        """Return the parent's ID, or None for workspace-level or parentless pages."""
        if self.parent is None:
            return None
        return self.parent.parent_id()
