"""Notion block models.

Each block type is one variant of the ``Block`` union. The type-specific
payload lives under the field named after the type, exactly as on the wire,
so ``block.content`` is always ``getattr(block, block.type)``.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import Tag

from notion_source.types.common import UNSUPPORTED, FileObject, Icon, NotionModel, NotionObject, Parent, type_discriminator
from notion_source.types.richtext import RichText, plain_text


class TextBlockContent(NotionModel):
    rich_text: list[RichText] = []
    color: str = "default"


class HeadingContent(TextBlockContent):
    is_toggleable: bool = False


class ToDoContent(TextBlockContent):
    checked: bool = False


class CalloutContent(TextBlockContent):
    icon: Icon | None = None


class CodeContent(NotionModel):
    rich_text: list[RichText] = []
    caption: list[RichText] = []
    language: str = "plain text"


class EquationContent(NotionModel):
    expression: str


class TitleContent(NotionModel):
    title: str = ""


class LinkContent(NotionModel):
    url: str | None = None
    caption: list[RichText] = []


class TableContent(NotionModel):
    table_width: int
    has_column_header: bool = False
    has_row_header: bool = False


class TableRowContent(NotionModel):
    cells: list[list[RichText]] = []


class SyncedBlockContent(NotionModel):
    synced_from: dict | None = None


class EmptyContent(NotionModel):
    pass


class _BlockBase(NotionObject):
    object: Literal["block"] = "block"
    parent: Parent | None = None
    has_children: bool = False
    archived: bool = False
    in_trash: bool = False

    @property
    def content(self) -> Any:
        """The type-specific payload, e.g. ``block.paragraph`` for a paragraph."""
        return getattr(self, self.type, None)

    def parent_id(self) -> str | None:
        if self.parent is None:
            return None
        return self.parent.parent_id()


class ParagraphBlock(_BlockBase):
    type: Literal["paragraph"] = "paragraph"
    paragraph: TextBlockContent


class Heading1Block(_BlockBase):
    type: Literal["heading_1"] = "heading_1"
    heading_1: HeadingContent


class Heading2Block(_BlockBase):
    type: Literal["heading_2"] = "heading_2"
    heading_2: HeadingContent


class Heading3Block(_BlockBase):
    type: Literal["heading_3"] = "heading_3"
    heading_3: HeadingContent


class BulletedListItemBlock(_BlockBase):
    type: Literal["bulleted_list_item"] = "bulleted_list_item"
    bulleted_list_item: TextBlockContent


class NumberedListItemBlock(_BlockBase):
    type: Literal["numbered_list_item"] = "numbered_list_item"
    numbered_list_item: TextBlockContent


class ToDoBlock(_BlockBase):
    type: Literal["to_do"] = "to_do"
    to_do: ToDoContent


class ToggleBlock(_BlockBase):
    type: Literal["toggle"] = "toggle"
    toggle: TextBlockContent


class QuoteBlock(_BlockBase):
    type: Literal["quote"] = "quote"
    quote: TextBlockContent


class CalloutBlock(_BlockBase):
    type: Literal["callout"] = "callout"
    callout: CalloutContent


class CodeBlock(_BlockBase):
    type: Literal["code"] = "code"
    code: CodeContent


class EquationBlock(_BlockBase):
    type: Literal["equation"] = "equation"
    equation: EquationContent


class DividerBlock(_BlockBase):
    type: Literal["divider"] = "divider"
    divider: EmptyContent = EmptyContent()


class BreadcrumbBlock(_BlockBase):
    type: Literal["breadcrumb"] = "breadcrumb"
    breadcrumb: EmptyContent = EmptyContent()


class TableOfContentsBlock(_BlockBase):
    type: Literal["table_of_contents"] = "table_of_contents"
    table_of_contents: TextBlockContent = TextBlockContent()


class ChildPageBlock(_BlockBase):
    type: Literal["child_page"] = "child_page"
    child_page: TitleContent


class ChildDatabaseBlock(_BlockBase):
    type: Literal["child_database"] = "child_database"
    child_database: TitleContent


class ImageBlock(_BlockBase):
    type: Literal["image"] = "image"
    image: FileObject


class VideoBlock(_BlockBase):
    type: Literal["video"] = "video"
    video: FileObject


class AudioBlock(_BlockBase):
    type: Literal["audio"] = "audio"
    audio: FileObject


class FileBlock(_BlockBase):
    type: Literal["file"] = "file"
    file: FileObject


class PdfBlock(_BlockBase):
    type: Literal["pdf"] = "pdf"
    pdf: FileObject


class BookmarkBlock(_BlockBase):
    type: Literal["bookmark"] = "bookmark"
    bookmark: LinkContent


class EmbedBlock(_BlockBase):
    type: Literal["embed"] = "embed"
    embed: LinkContent


class LinkPreviewBlock(_BlockBase):
    type: Literal["link_preview"] = "link_preview"
    link_preview: LinkContent


class TableBlock(_BlockBase):
    type: Literal["table"] = "table"
    table: TableContent


class TableRowBlock(_BlockBase):
    type: Literal["table_row"] = "table_row"
    table_row: TableRowContent


class ColumnListBlock(_BlockBase):
    type: Literal["column_list"] = "column_list"
    column_list: EmptyContent = EmptyContent()


class ColumnBlock(_BlockBase):
    type: Literal["column"] = "column"
    column: EmptyContent = EmptyContent()


class SyncedBlock(_BlockBase):
    type: Literal["synced_block"] = "synced_block"
    synced_block: SyncedBlockContent = SyncedBlockContent()


class UnsupportedBlock(_BlockBase):
    """A block type this package does not model; its payload stays in extra fields."""

    type: str


_BLOCK_TYPES = {
    "paragraph": ParagraphBlock,
    "heading_1": Heading1Block,
    "heading_2": Heading2Block,
    "heading_3": Heading3Block,
    "bulleted_list_item": BulletedListItemBlock,
    "numbered_list_item": NumberedListItemBlock,
    "to_do": ToDoBlock,
    "toggle": ToggleBlock,
    "quote": QuoteBlock,
    "callout": CalloutBlock,
    "code": CodeBlock,
    "equation": EquationBlock,
    "divider": DividerBlock,
    "breadcrumb": BreadcrumbBlock,
    "table_of_contents": TableOfContentsBlock,
    "child_page": ChildPageBlock,
    "child_database": ChildDatabaseBlock,
    "image": ImageBlock,
    "video": VideoBlock,
    "audio": AudioBlock,
    "file": FileBlock,
    "pdf": PdfBlock,
    "bookmark": BookmarkBlock,
    "embed": EmbedBlock,
    "link_preview": LinkPreviewBlock,
    "table": TableBlock,
    "table_row": TableRowBlock,
    "column_list": ColumnListBlock,
    "column": ColumnBlock,
    "synced_block": SyncedBlock,
}

Block = Annotated[
    Union[
        Annotated[ParagraphBlock, Tag("paragraph")],
        Annotated[Heading1Block, Tag("heading_1")],
        Annotated[Heading2Block, Tag("heading_2")],
        Annotated[Heading3Block, Tag("heading_3")],
        Annotated[BulletedListItemBlock, Tag("bulleted_list_item")],
        Annotated[NumberedListItemBlock, Tag("numbered_list_item")],
        Annotated[ToDoBlock, Tag("to_do")],
        Annotated[ToggleBlock, Tag("toggle")],
        Annotated[QuoteBlock, Tag("quote")],
        Annotated[CalloutBlock, Tag("callout")],
        Annotated[CodeBlock, Tag("code")],
        Annotated[EquationBlock, Tag("equation")],
        Annotated[DividerBlock, Tag("divider")],
        Annotated[BreadcrumbBlock, Tag("breadcrumb")],
        Annotated[TableOfContentsBlock, Tag("table_of_contents")],
        Annotated[ChildPageBlock, Tag("child_page")],
        Annotated[ChildDatabaseBlock, Tag("child_database")],
        Annotated[ImageBlock, Tag("image")],
        Annotated[VideoBlock, Tag("video")],
        Annotated[AudioBlock, Tag("audio")],
        Annotated[FileBlock, Tag("file")],
        Annotated[PdfBlock, Tag("pdf")],
        Annotated[BookmarkBlock, Tag("bookmark")],
        Annotated[EmbedBlock, Tag("embed")],
        Annotated[LinkPreviewBlock, Tag("link_preview")],
        Annotated[TableBlock, Tag("table")],
        Annotated[TableRowBlock, Tag("table_row")],
        Annotated[ColumnListBlock, Tag("column_list")],
        Annotated[ColumnBlock, Tag("column")],
        Annotated[SyncedBlock, Tag("synced_block")],
        Annotated[UnsupportedBlock, Tag(UNSUPPORTED)],
    ],
    type_discriminator(frozenset(_BLOCK_TYPES)),
]


def block_text(block: Any) -> str:
    """Return the plain text of a block's rich_text (or title), "" if it has none."""
    content = block.content
    if isinstance(content, (TextBlockContent, CodeContent)):
        return plain_text(content.rich_text)
    if isinstance(content, TitleContent):
        return content.title
    if isinstance(content, EquationContent):
        return content.expression
    return ""
