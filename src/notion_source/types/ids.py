"""Notion identifier parsing.

Notion IDs are UUIDs that the API and the web UI render in several shapes:
dashed, undashed, or embedded at the end of a page URL slug. All of them are
normalized to the lowercase dashed form.

``IDParser`` is a constructed component with its own bounded LRU cache, passed
to whatever needs it (the decoder hands it to pydantic through the validation
context). There is no module-level parser instance.
"""

import re
import threading
from typing import Annotated
from urllib.parse import urlparse

from cachetools import LRUCache, cached
from pydantic import AfterValidator, ValidationInfo

from notion_source.errors import InvalidIDError

_HEX32 = re.compile(r"^[0-9a-f]{32}$")

ID_PARSER_CONTEXT_KEY = "id_parser"


def canonical_id(raw: str) -> str:
    """Return the canonical dashed form of a Notion ID. Pure, uncached.

    Accepts ``550e8400-e29b-41d4-a716-446655440000``,
    ``550e8400e29b41d4a716446655440000`` and URLs such as
    ``https://www.notion.so/My-Page-550e8400e29b41d4a716446655440000?pvs=4``.

    Raises InvalidIDError for anything else.
    """
    if not isinstance(raw, str):
        raise InvalidIDError(f"Notion ID must be a string, got {type(raw).__name__}")

    value = raw.strip().lower()
    if value.startswith(("http://", "https://")):
        segment = urlparse(value).path.rstrip("/").rsplit("/", 1)[-1]
        candidate = segment.replace("-", "")[-32:]
    else:
        candidate = value.replace("-", "")

    if not _HEX32.match(candidate):
        raise InvalidIDError(f"Invalid Notion ID: {raw!r}")
    return f"{candidate[:8]}-{candidate[8:12]}-{candidate[12:16]}-{candidate[16:20]}-{candidate[20:]}"


class IDParser:
    """Thread-safe Notion ID parser with a per-instance LRU cache.

    Invalid inputs raise and are never cached.
    """

    def __init__(self, maxsize: int = 4096):
        self._cache: LRUCache = LRUCache(maxsize=maxsize)
        self._lock = threading.Lock()
        self._parse = cached(self._cache, lock=self._lock)(canonical_id)

    def parse(self, raw: str) -> str:
        """Return the canonical dashed ID for ``raw``."""
        return self._parse(raw)

    def is_valid(self, raw: str) -> bool:
        try:
            self.parse(raw)
        except InvalidIDError:
            return False
        return True

    @property
    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()


def _validate_id(value: str, info: ValidationInfo) -> str:
    """Canonicalize an ID field, using the parser from the validation context if any."""
    context = info.context or {}
    parser = context.get(ID_PARSER_CONTEXT_KEY)
    try:
        if parser is not None:
            return parser.parse(value)
        return canonical_id(value)
    except InvalidIDError as exc:
        # pydantic wraps ValueError into a ValidationError with this message
        raise ValueError(str(exc)) from exc


NotionID = Annotated[str, AfterValidator(_validate_id)]
