"""Exception hierarchy for the Notion source.

Only RequestValidationError reaches the caller of ``NotionSource.start``.
FetchError and DecodeError are raised per record inside the stream and are
absorbed into metrics by the coordinator.
"""


class NotionSourceError(Exception):
    """Base class for all errors raised by this package."""


class RequestValidationError(NotionSourceError):
    """A read request is malformed or cannot be served."""


class FetchError(NotionSourceError):
    """A search page, listing or detail fetch failed."""

    def __init__(self, message: str, *, kind: str | None = None, record_id: str | None = None):
        super().__init__(message)
        self.kind = kind
        self.record_id = record_id


class DecodeError(NotionSourceError):
    """A fetched record could not be converted into a NormalizedItem."""

    def __init__(self, message: str, *, kind: str | None = None, record_id: str | None = None):
        super().__init__(message)
        self.kind = kind
        self.record_id = record_id


class InvalidIDError(NotionSourceError, ValueError):
    """An identifier is not a valid 32-hex-digit Notion ID."""
