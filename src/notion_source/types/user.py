"""Notion user models: people and bots."""

from typing import Annotated, Literal, Union

from pydantic import Tag

from notion_source.types.common import UNSUPPORTED, NotionModel, type_discriminator
from notion_source.types.ids import NotionID


class PersonInfo(NotionModel):
    email: str | None = None


class BotInfo(NotionModel):
    owner: dict | None = None
    workspace_name: str | None = None


class _UserBase(NotionModel):
    object: Literal["user"] = "user"
    id: NotionID
    name: str | None = None
    avatar_url: str | None = None


class PersonUser(_UserBase):
    type: Literal["person"] = "person"
    person: PersonInfo = PersonInfo()


class BotUser(_UserBase):
    type: Literal["bot"] = "bot"
    bot: BotInfo = BotInfo()


class UnsupportedUser(_UserBase):
    """A user of unknown type, or a partial user without ``type``."""

    type: str | None = None


User = Annotated[
    Union[
        Annotated[PersonUser, Tag("person")],
        Annotated[BotUser, Tag("bot")],
        Annotated[UnsupportedUser, Tag(UNSUPPORTED)],
    ],
    type_discriminator(frozenset({"person", "bot"})),
]
