"""Core value types: the read request and the normalized output item."""

from notion_source.models.item import ItemMetadata, NormalizedItem, Phase, ProcessingState, ProcessingStatus
from notion_source.models.request import ReadRequest, RecordPredicate

__all__ = [
    "ItemMetadata",
    "NormalizedItem",
    "Phase",
    "ProcessingState",
    "ProcessingStatus",
    "ReadRequest",
    "RecordPredicate",
]
