"""Read-operation counters: objects read per kind, requests, errors, timing.

MetricsRecorder is mutated by every worker of a read operation and polled by
observers. All state sits behind one lock; ``snapshot`` returns a frozen copy
so callers never touch the lock.
"""

import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Mapping

from notion_source.types.common import ObjectKind


@dataclass(frozen=True)
class MetricsView:
    """Immutable point-in-time copy of the metrics."""

    objects_read: int
    requests_made: int
    errors_encountered: int
    start_time: datetime
    end_time: datetime | None
    total_duration: timedelta
    per_kind: Mapping[ObjectKind, int] = field(default_factory=dict)

    @property
    def pages_read(self) -> int:
        return self.per_kind.get(ObjectKind.PAGE, 0)

    @property
    def databases_read(self) -> int:
        return self.per_kind.get(ObjectKind.DATABASE, 0)

    @property
    def blocks_read(self) -> int:
        return self.per_kind.get(ObjectKind.BLOCK, 0)

    @property
    def comments_read(self) -> int:
        return self.per_kind.get(ObjectKind.COMMENT, 0)

    @property
    def users_read(self) -> int:
        return self.per_kind.get(ObjectKind.USER, 0)

    @property
    def finished(self) -> bool:
        return self.end_time is not None

    def as_log_fields(self) -> dict:
        """Flatten into a dict suitable for structured logging ``extra``."""
        return {
            "objects_read": self.objects_read,
            "pages_read": self.pages_read,
            "databases_read": self.databases_read,
            "blocks_read": self.blocks_read,
            "comments_read": self.comments_read,
            "users_read": self.users_read,
            "requests_made": self.requests_made,
            "errors_encountered": self.errors_encountered,
            "duration_seconds": round(self.total_duration.total_seconds(), 3),
        }


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MetricsRecorder:
    """Thread-safe counter set for one read operation."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._per_kind: Counter[ObjectKind] = Counter()
        self._requests = 0
        self._errors = 0
        self._start_time = _now()
        self._end_time: datetime | None = None

    def increment_kind(self, kind: ObjectKind | str) -> None:
        """Count one object successfully delivered."""
        kind = ObjectKind(kind)
        with self._lock:
            self._per_kind[kind] += 1

    def increment_request(self) -> None:
        with self._lock:
            self._requests += 1

    def increment_error(self) -> None:
        with self._lock:
            self._errors += 1

    def finalize(self) -> bool:
        """Set the end time. Only the first call has an effect; returns whether it did."""
        with self._lock:
            if self._end_time is not None:
                return False
            self._end_time = _now()
            return True

    def snapshot(self) -> MetricsView:
        with self._lock:
            end = self._end_time
            per_kind = dict(self._per_kind)
            return MetricsView(
                objects_read=sum(per_kind.values()),
                requests_made=self._requests,
                errors_encountered=self._errors,
                start_time=self._start_time,
                end_time=end,
                total_duration=(end or _now()) - self._start_time,
                per_kind=MappingProxyType(per_kind),
            )
