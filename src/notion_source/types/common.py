"""Shared building blocks for Notion entity models.

Notion encodes polymorphic values as ``{"type": "<tag>", "<tag>": {...}}``.
Each such value is modeled as a closed tagged union of pydantic models, keyed
on ``type``. Tags this package does not know decode into an ``Unsupported*``
variant so a new Notion feature never drops the enclosing record.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Tag

from notion_source.types.ids import NotionID

UNSUPPORTED = "unsupported"


class ObjectKind(str, Enum):
    """Categories of Notion entities the source can emit."""

    PAGE = "page"
    DATABASE = "database"
    BLOCK = "block"
    USER = "user"
    COMMENT = "comment"


class NotionModel(BaseModel):
    """Base for all wire-format models. Unknown fields are kept, not dropped."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_wire(self) -> dict:
        """Serialize back to the Notion JSON shape, limited to the fields that were set."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


def type_discriminator(known: frozenset[str], key: str = "type") -> Discriminator:
    """Build a discriminator that routes unknown or missing tags to ``unsupported``."""

    def _discriminate(value: Any) -> str:
        if isinstance(value, dict):
            tag = value.get(key)
        else:
            tag = getattr(value, key, None)
        return tag if tag in known else UNSUPPORTED

    return Discriminator(_discriminate)


class PartialUser(NotionModel):
    """A user reference as it appears in created_by/last_edited_by/people."""

    object: Literal["user"] = "user"
    id: NotionID


# --- Parents ---


class PageParent(NotionModel):
    type: Literal["page_id"] = "page_id"
    page_id: NotionID

    def parent_id(self) -> str | None:
        return self.page_id


class DatabaseParent(NotionModel):
    type: Literal["database_id"] = "database_id"
    database_id: NotionID

    def parent_id(self) -> str | None:
        return self.database_id


class DataSourceParent(NotionModel):
    type: Literal["data_source_id"] = "data_source_id"
    data_source_id: NotionID
    database_id: NotionID | None = None

    def parent_id(self) -> str | None:
        return self.data_source_id


class BlockParent(NotionModel):
    type: Literal["block_id"] = "block_id"
    block_id: NotionID

    def parent_id(self) -> str | None:
        return self.block_id


class WorkspaceParent(NotionModel):
    type: Literal["workspace"] = "workspace"
    workspace: Literal[True] = True

    def parent_id(self) -> str | None:
        return None


class UnsupportedParent(NotionModel):
    type: str | None = None

    def parent_id(self) -> str | None:
        return None


Parent = Annotated[
    Union[
        Annotated[PageParent, Tag("page_id")],
        Annotated[DatabaseParent, Tag("database_id")],
        Annotated[DataSourceParent, Tag("data_source_id")],
        Annotated[BlockParent, Tag("block_id")],
        Annotated[WorkspaceParent, Tag("workspace")],
        Annotated[UnsupportedParent, Tag(UNSUPPORTED)],
    ],
    type_discriminator(frozenset({"page_id", "database_id", "data_source_id", "block_id", "workspace"})),
]


# --- Files and icons ---


class ExternalFileData(NotionModel):
    url: str


class HostedFileData(NotionModel):
    url: str
    expiry_time: datetime | None = None


class FileUploadData(NotionModel):
    id: str


class ExternalFile(NotionModel):
    type: Literal["external"] = "external"
    external: ExternalFileData
    name: str | None = None

    @property
    def url(self) -> str:
        return self.external.url


class HostedFile(NotionModel):
    type: Literal["file"] = "file"
    file: HostedFileData
    name: str | None = None

    @property
    def url(self) -> str:
        return self.file.url


class FileUploadRef(NotionModel):
    type: Literal["file_upload"] = "file_upload"
    file_upload: FileUploadData
    name: str | None = None

    @property
    def url(self) -> str | None:
        return None


class UnsupportedFile(NotionModel):
    type: str | None = None

    @property
    def url(self) -> str | None:
        return None


FileObject = Annotated[
    Union[
        Annotated[ExternalFile, Tag("external")],
        Annotated[HostedFile, Tag("file")],
        Annotated[FileUploadRef, Tag("file_upload")],
        Annotated[UnsupportedFile, Tag(UNSUPPORTED)],
    ],
    type_discriminator(frozenset({"external", "file", "file_upload"})),
]


class EmojiIcon(NotionModel):
    type: Literal["emoji"] = "emoji"
    emoji: str


class CustomEmojiIcon(NotionModel):
    type: Literal["custom_emoji"] = "custom_emoji"
    custom_emoji: dict


Icon = Annotated[
    Union[
        Annotated[EmojiIcon, Tag("emoji")],
        Annotated[CustomEmojiIcon, Tag("custom_emoji")],
        Annotated[ExternalFile, Tag("external")],
        Annotated[HostedFile, Tag("file")],
        Annotated[UnsupportedFile, Tag(UNSUPPORTED)],
    ],
    type_discriminator(frozenset({"emoji", "custom_emoji", "external", "file"})),
]


class NotionObject(NotionModel):
    """Fields shared by pages, databases, blocks and comments."""

    object: str
    id: NotionID
    created_time: datetime | None = None
    last_edited_time: datetime | None = None
    created_by: PartialUser | None = None
    last_edited_by: PartialUser | None = None
