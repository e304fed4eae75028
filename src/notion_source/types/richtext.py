"""Rich text values: text runs, mentions and inline equations."""

from typing import Annotated, Literal, Union

from pydantic import Tag

from notion_source.types.common import UNSUPPORTED, NotionModel, type_discriminator


class Annotations(NotionModel):
    bold: bool = False
    italic: bool = False
    strikethrough: bool = False
    underline: bool = False
    code: bool = False
    color: str = "default"


class Link(NotionModel):
    url: str


class TextContent(NotionModel):
    content: str
    link: Link | None = None


class Mention(NotionModel):
    """Mention payload. The nested user/page/database/date value is kept as-is."""

    type: str


class Equation(NotionModel):
    expression: str


class _RichTextBase(NotionModel):
    plain_text: str = ""
    href: str | None = None
    annotations: Annotations | None = None


class TextRichText(_RichTextBase):
    type: Literal["text"] = "text"
    text: TextContent

    def as_plain(self) -> str:
        return self.plain_text or self.text.content


class MentionRichText(_RichTextBase):
    type: Literal["mention"] = "mention"
    mention: Mention

    def as_plain(self) -> str:
        return self.plain_text


class EquationRichText(_RichTextBase):
    type: Literal["equation"] = "equation"
    equation: Equation

    def as_plain(self) -> str:
        return self.plain_text or self.equation.expression


class UnsupportedRichText(_RichTextBase):
    type: str | None = None

    def as_plain(self) -> str:
        return self.plain_text


RichText = Annotated[
    Union[
        Annotated[TextRichText, Tag("text")],
        Annotated[MentionRichText, Tag("mention")],
        Annotated[EquationRichText, Tag("equation")],
        Annotated[UnsupportedRichText, Tag(UNSUPPORTED)],
    ],
    type_discriminator(frozenset({"text", "mention", "equation"})),
]


def plain_text(items: list) -> str:
    """Concatenate the plain text of a rich text array."""
    return "".join(item.as_plain() for item in items)
