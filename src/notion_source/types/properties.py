"""Page property values and typed accessors.

A page's ``properties`` is a plain ``dict[str, PropertyValue]``; the helpers
below give typed access to it by composition (no container base class).
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Annotated, Literal, TypeVar, Union

from pydantic import Tag

from notion_source.types.common import UNSUPPORTED, FileObject, NotionModel, PartialUser, type_discriminator
from notion_source.types.ids import NotionID
from notion_source.types.richtext import RichText, plain_text


class SelectOption(NotionModel):
    id: str | None = None
    name: str
    color: str | None = None


class DateValue(NotionModel):
    """Date range. Kept as strings: Notion mixes date-only and datetime values."""

    start: str
    end: str | None = None
    time_zone: str | None = None


class RelationRef(NotionModel):
    id: NotionID


class FormulaValue(NotionModel):
    type: str
    string: str | None = None
    number: int | float | None = None
    boolean: bool | None = None
    date: DateValue | None = None


class RollupValue(NotionModel):
    type: str
    function: str | None = None
    number: int | float | None = None
    date: DateValue | None = None
    array: list[dict] | None = None


class UniqueIdValue(NotionModel):
    number: int | None = None
    prefix: str | None = None


class _PropertyBase(NotionModel):
    id: str | None = None


class TitleProperty(_PropertyBase):
    type: Literal["title"] = "title"
    title: list[RichText] = []


class RichTextProperty(_PropertyBase):
    type: Literal["rich_text"] = "rich_text"
    rich_text: list[RichText] = []


class NumberProperty(_PropertyBase):
    type: Literal["number"] = "number"
    number: int | float | None = None


class SelectProperty(_PropertyBase):
    type: Literal["select"] = "select"
    select: SelectOption | None = None


class MultiSelectProperty(_PropertyBase):
    type: Literal["multi_select"] = "multi_select"
    multi_select: list[SelectOption] = []


class StatusProperty(_PropertyBase):
    type: Literal["status"] = "status"
    status: SelectOption | None = None


class DateProperty(_PropertyBase):
    type: Literal["date"] = "date"
    date: DateValue | None = None


class CheckboxProperty(_PropertyBase):
    type: Literal["checkbox"] = "checkbox"
    checkbox: bool = False


class UrlProperty(_PropertyBase):
    type: Literal["url"] = "url"
    url: str | None = None


class EmailProperty(_PropertyBase):
    type: Literal["email"] = "email"
    email: str | None = None


class PhoneNumberProperty(_PropertyBase):
    type: Literal["phone_number"] = "phone_number"
    phone_number: str | None = None


class PeopleProperty(_PropertyBase):
    type: Literal["people"] = "people"
    people: list[PartialUser] = []


class RelationProperty(_PropertyBase):
    type: Literal["relation"] = "relation"
    relation: list[RelationRef] = []
    has_more: bool | None = None


class FilesProperty(_PropertyBase):
    type: Literal["files"] = "files"
    files: list[FileObject] = []


class FormulaProperty(_PropertyBase):
    type: Literal["formula"] = "formula"
    formula: FormulaValue


class RollupProperty(_PropertyBase):
    type: Literal["rollup"] = "rollup"
    rollup: RollupValue


class CreatedTimeProperty(_PropertyBase):
    type: Literal["created_time"] = "created_time"
    created_time: datetime


class LastEditedTimeProperty(_PropertyBase):
    type: Literal["last_edited_time"] = "last_edited_time"
    last_edited_time: datetime


class CreatedByProperty(_PropertyBase):
    type: Literal["created_by"] = "created_by"
    created_by: PartialUser


class LastEditedByProperty(_PropertyBase):
    type: Literal["last_edited_by"] = "last_edited_by"
    last_edited_by: PartialUser


class UniqueIdProperty(_PropertyBase):
    type: Literal["unique_id"] = "unique_id"
    unique_id: UniqueIdValue


class VerificationProperty(_PropertyBase):
    type: Literal["verification"] = "verification"
    verification: dict | None = None


class UnsupportedProperty(_PropertyBase):
    type: str | None = None


_PROPERTY_TAGS = frozenset(
    {
        "title",
        "rich_text",
        "number",
        "select",
        "multi_select",
        "status",
        "date",
        "checkbox",
        "url",
        "email",
        "phone_number",
        "people",
        "relation",
        "files",
        "formula",
        "rollup",
        "created_time",
        "last_edited_time",
        "created_by",
        "last_edited_by",
        "unique_id",
        "verification",
    }
)

PropertyValue = Annotated[
    Union[
        Annotated[TitleProperty, Tag("title")],
        Annotated[RichTextProperty, Tag("rich_text")],
        Annotated[NumberProperty, Tag("number")],
        Annotated[SelectProperty, Tag("select")],
        Annotated[MultiSelectProperty, Tag("multi_select")],
        Annotated[StatusProperty, Tag("status")],
        Annotated[DateProperty, Tag("date")],
        Annotated[CheckboxProperty, Tag("checkbox")],
        Annotated[UrlProperty, Tag("url")],
        Annotated[EmailProperty, Tag("email")],
        Annotated[PhoneNumberProperty, Tag("phone_number")],
        Annotated[PeopleProperty, Tag("people")],
        Annotated[RelationProperty, Tag("relation")],
        Annotated[FilesProperty, Tag("files")],
        Annotated[FormulaProperty, Tag("formula")],
        Annotated[RollupProperty, Tag("rollup")],
        Annotated[CreatedTimeProperty, Tag("created_time")],
        Annotated[LastEditedTimeProperty, Tag("last_edited_time")],
        Annotated[CreatedByProperty, Tag("created_by")],
        Annotated[LastEditedByProperty, Tag("last_edited_by")],
        Annotated[UniqueIdProperty, Tag("unique_id")],
        Annotated[VerificationProperty, Tag("verification")],
        Annotated[UnsupportedProperty, Tag(UNSUPPORTED)],
    ],
    type_discriminator(_PROPERTY_TAGS),
]

P = TypeVar("P")


def get_property(properties: Mapping[str, object], name: str, expected: type[P]) -> P | None:
    """Return the named property if it exists and is of the expected variant."""
    prop = properties.get(name)
    if isinstance(prop, expected):
        return prop
    return None


def property_text(properties: Mapping[str, object], name: str) -> str | None:
    """Render a property as display text, or None if absent or empty.

    Covers the text-like variants; other variants return None.
    """
    prop = properties.get(name)
    if isinstance(prop, TitleProperty):
        return plain_text(prop.title)
    if isinstance(prop, RichTextProperty):
        return plain_text(prop.rich_text)
    if isinstance(prop, (SelectProperty, StatusProperty)):
        option = prop.select if isinstance(prop, SelectProperty) else prop.status
        return option.name if option else None
    if isinstance(prop, MultiSelectProperty):
        return ", ".join(opt.name for opt in prop.multi_select)
    if isinstance(prop, NumberProperty):
        return None if prop.number is None else str(prop.number)
    if isinstance(prop, UrlProperty):
        return prop.url
    if isinstance(prop, EmailProperty):
        return prop.email
    if isinstance(prop, PhoneNumberProperty):
        return prop.phone_number
    return None


def title_of(properties: Mapping[str, object]) -> str:
    """Return the plain text of the (single) title property, or "" if there is none."""
    for prop in properties.values():
        if isinstance(prop, TitleProperty):
            return plain_text(prop.title)
    return ""
