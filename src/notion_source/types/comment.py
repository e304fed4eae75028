"""Notion comment model."""

from typing import Literal

from notion_source.types.common import NotionObject, Parent
from notion_source.types.richtext import RichText, plain_text


class Comment(NotionObject):
    object: Literal["comment"] = "comment"
    parent: Parent
    discussion_id: str
    rich_text: list[RichText] = []
    attachments: list[dict] = []
    display_name: dict | None = None

    @property
    def text(self) -> str:
        return plain_text(self.rich_text)

    def parent_id(self) -> str | None:
        return self.parent.parent_id()
