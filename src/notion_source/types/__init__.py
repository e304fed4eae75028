"""Typed models of Notion entities (pages, databases, blocks, users, comments)."""

from notion_source.types.block import Block, UnsupportedBlock, block_text
from notion_source.types.comment import Comment
from notion_source.types.common import NotionModel, ObjectKind, Parent, PartialUser
from notion_source.types.database import Database
from notion_source.types.ids import IDParser, NotionID, canonical_id
from notion_source.types.page import Page
from notion_source.types.properties import PropertyValue, get_property, property_text, title_of
from notion_source.types.richtext import RichText, plain_text
from notion_source.types.user import BotUser, PersonUser, User

__all__ = [
    "Block",
    "block_text",
    "BotUser",
    "canonical_id",
    "Comment",
    "Database",
    "get_property",
    "IDParser",
    "NotionID",
    "NotionModel",
    "ObjectKind",
    "Page",
    "Parent",
    "PartialUser",
    "PersonUser",
    "plain_text",
    "property_text",
    "PropertyValue",
    "RichText",
    "title_of",
    "UnsupportedBlock",
    "User",
]
