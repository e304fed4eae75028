"""NormalizedItem: the uniform envelope emitted on the output stream."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from notion_source.types.common import ObjectKind


class Phase(str, Enum):
    """Pipeline stage an item has passed."""

    READ = "read"
    TRANSFORM = "transform"
    WRITE = "write"


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ProcessingState(BaseModel):
    phase: Phase = Phase.READ
    status: ProcessingStatus = ProcessingStatus.PENDING
    started_at: datetime


class ItemMetadata(BaseModel):
    """Source-side metadata. ``properties`` is a free-form bag for downstream stages."""

    source_type: str = "notion"
    source_id: str
    original_id: str
    created_at: datetime | None = None
    modified_at: datetime | None = None
    processed_at: datetime
    processing_state: ProcessingState
    properties: dict[str, Any] = {}


class NormalizedItem(BaseModel):
    """One decoded Notion record. ``data`` is the typed entity model, passed through as-is."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str = Field(min_length=1)
    kind: ObjectKind
    data: Any
    metadata: ItemMetadata
