"""RecordDecoder: raw Notion wire records -> NormalizedItem.

Decoding is pure: no I/O, and the only shared state is the injected
IDParser's cache, which is lock-protected. The coordinator calls it freely
from concurrent workers.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import TypeAdapter, ValidationError

from notion_source.api.fetcher import PageDetail
from notion_source.errors import DecodeError
from notion_source.models.item import ItemMetadata, NormalizedItem, ProcessingState
from notion_source.types.block import Block
from notion_source.types.comment import Comment
from notion_source.types.common import ObjectKind
from notion_source.types.database import Database
from notion_source.types.ids import ID_PARSER_CONTEXT_KEY, IDParser
from notion_source.types.page import Page
from notion_source.types.user import User

_ADAPTERS: dict[ObjectKind, TypeAdapter] = {
    ObjectKind.PAGE: TypeAdapter(Page),
    ObjectKind.DATABASE: TypeAdapter(Database),
    ObjectKind.BLOCK: TypeAdapter(Block),
    ObjectKind.USER: TypeAdapter(User),
    ObjectKind.COMMENT: TypeAdapter(Comment),
}

# Accepted values of the wire "object" field per kind
_WIRE_OBJECTS: dict[ObjectKind, frozenset[str]] = {
    ObjectKind.PAGE: frozenset({"page"}),
    ObjectKind.DATABASE: frozenset({"database", "data_source"}),
    ObjectKind.BLOCK: frozenset({"block"}),
    ObjectKind.USER: frozenset({"user"}),
    ObjectKind.COMMENT: frozenset({"comment"}),
}


def _user_id(user: Any) -> str | None:
    return user.id if user is not None else None


class RecordDecoder:
    """Converts raw records into NormalizedItems and back."""

    def __init__(self, id_parser: IDParser | None = None):
        self._id_parser = id_parser or IDParser()

    @property
    def id_parser(self) -> IDParser:
        return self._id_parser

    def decode_entity(self, kind: ObjectKind | str, raw: dict) -> Any:
        """Validate ``raw`` into the typed entity model for ``kind``.

        Raises DecodeError if the record is not a dict, is of another object
        type, or fails validation.
        """
        kind = ObjectKind(kind)
        if not isinstance(raw, dict):
            raise DecodeError(f"Expected a JSON object, got {type(raw).__name__}", kind=kind.value)

        record_id = raw.get("id")
        wire_object = raw.get("object")
        if wire_object not in _WIRE_OBJECTS[kind]:
            raise DecodeError(
                f"Expected object {sorted(_WIRE_OBJECTS[kind])}, got {wire_object!r}",
                kind=kind.value,
                record_id=record_id,
            )

        try:
            return _ADAPTERS[kind].validate_python(raw, context={ID_PARSER_CONTEXT_KEY: self._id_parser})
        except ValidationError as exc:
            raise DecodeError(
                f"Invalid {kind.value} record: {exc.error_count()} validation error(s)",
                kind=kind.value,
                record_id=record_id,
            ) from exc

    def decode(
        self,
        kind: ObjectKind | str,
        raw: dict,
        *,
        parent_id: str | None = None,
        depth: int | None = None,
        extra: dict[str, Any] | None = None,
    ) -> NormalizedItem:
        """Decode one raw record into a NormalizedItem.

        ``parent_id`` overrides the parent recorded in the properties bag (used
        for blocks nested under a page); ``depth`` and ``extra`` are added to it.
        """
        kind = ObjectKind(kind)
        entity = self.decode_entity(kind, raw)

        properties = self._properties(kind, entity)
        if parent_id is not None:
            properties["parent_id"] = parent_id
        if depth is not None:
            properties["depth"] = depth
        if extra:
            properties.update(extra)

        now = datetime.now(timezone.utc)
        return NormalizedItem(
            id=entity.id,
            kind=kind,
            data=entity,
            metadata=ItemMetadata(
                source_id=entity.id,
                original_id=raw["id"],
                created_at=getattr(entity, "created_time", None),
                modified_at=getattr(entity, "last_edited_time", None),
                processed_at=now,
                processing_state=ProcessingState(started_at=now),
                properties=properties,
            ),
        )

    def decode_page_detail(self, detail: PageDetail) -> NormalizedItem:
        """Decode the page of a detail fetch, recording how much content came with it."""
        return self.decode(
            ObjectKind.PAGE,
            detail.page,
            extra={"blocks_count": len(detail.blocks), "comments_count": len(detail.comments)},
        )

    def encode(self, item: NormalizedItem) -> dict:
        """Inverse of decode: the wire-format fields the item's payload was built from."""
        return item.data.to_wire()

    @staticmethod
    def _properties(kind: ObjectKind, entity: Any) -> dict[str, Any]:
        if kind == ObjectKind.USER:
            person = getattr(entity, "person", None)
            return {
                "user_type": entity.type,
                "name": entity.name,
                "email": person.email if person is not None else None,
            }

        properties: dict[str, Any] = {
            "parent_id": entity.parent_id(),
            "created_by": _user_id(entity.created_by),
            "edited_by": _user_id(entity.last_edited_by),
        }
        if kind == ObjectKind.PAGE:
            properties.update(
                archived=entity.archived,
                in_trash=entity.in_trash,
                title=entity.title,
                url=entity.url,
            )
        elif kind == ObjectKind.DATABASE:
            properties.update(
                archived=entity.archived,
                in_trash=entity.in_trash,
                title=entity.plain_title,
                url=entity.url,
            )
        elif kind == ObjectKind.BLOCK:
            properties.update(
                archived=entity.archived,
                block_type=entity.type,
                has_children=entity.has_children,
            )
        elif kind == ObjectKind.COMMENT:
            properties["discussion_id"] = entity.discussion_id
        return properties
