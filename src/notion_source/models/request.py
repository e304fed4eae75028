"""ReadRequest: what to read and how, submitted to NotionSource.start."""

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# A predicate receives the raw wire record and returns False to drop it.
RecordPredicate = Callable[[dict], bool]


class ReadRequest(BaseModel):
    """Immutable read request.

    Tuning fields left as None fall back to the source's SourceConfig. Kind
    strings are not checked here so that NotionSource.validate can report
    unsupported kinds as a RequestValidationError.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kinds: frozenset[str]

    # Tuning overrides
    page_size: int | None = Field(default=None, ge=1, le=100)
    requests_per_second: float | None = Field(default=None, gt=0)
    max_concurrent: int | None = Field(default=None, ge=1)
    max_depth: int | None = Field(default=None, ge=0)

    # Filters
    query: str | None = None
    edited_after: datetime | None = None
    edited_before: datetime | None = None
    created_after: datetime | None = None
    created_before: datetime | None = None
    include_archived: bool | None = None
    sort_direction: Literal["ascending", "descending"] | None = None
    predicates: Mapping[str, RecordPredicate] = {}

    # Whole-operation deadline in seconds
    timeout: float | None = Field(default=None, gt=0)

    def wants(self, kind: str) -> bool:
        return kind in self.kinds
