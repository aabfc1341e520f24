"""Application-wide exception hierarchy for the news scanner.

All custom exceptions subclass ``NewsScannerError``, enabling consistent
error handling and structured logging across the pipeline.

Hierarchy::

    NewsScannerError
    ├── ExtractionError            (source_id)
    │   └── TransientNetworkError
    ├── UnsupportedSourceKindError (kind, source_id)
    ├── AnnotationDegradedError
    ├── StorageError
    ├── SourceAlreadyExistsError   (url)
    └── SourceNotFoundError        (source_id)

Two expected outcomes are deliberately *not* exceptions: a soft miss
(selectors found nothing) is an empty fragment list, and an already-seen
article URL is :attr:`~news_scanner.core.types.InsertResult.ALREADY_EXISTS`.
"""

from __future__ import annotations


class NewsScannerError(Exception):
    """Base class for all news scanner exceptions.

    All application-specific exceptions inherit from this class so that
    callers can catch the entire hierarchy with a single ``except`` clause
    when needed.
    """


# ---------------------------------------------------------------------------
# Extraction exceptions
# ---------------------------------------------------------------------------


class ExtractionError(NewsScannerError):
    """Raised when extraction for a source fails hard.

    Args:
        message: Human-readable description of the failure.
        source_id: Identifier of the source whose scan failed.
    """

    def __init__(self, message: str, source_id: int | str | None = None) -> None:
        super().__init__(message)
        self.source_id = source_id

    def __str__(self) -> str:
        base = super().__str__()
        if self.source_id is None:
            return base
        return f"[source {self.source_id}] {base}"


class TransientNetworkError(ExtractionError):
    """Raised on timeouts, connection or DNS failures, navigation failures
    and browser launch failures.

    The scan is recorded as failed and the source's last-scanned timestamp
    is left untouched, so it is retried on the next tick.
    """


class UnsupportedSourceKindError(NewsScannerError):
    """Raised when a source carries a kind with no extraction strategy.

    This is a configuration or programming error.  It aborts only the scan
    of the offending source.

    Args:
        kind: The unrecognised kind value.
        source_id: Identifier of the offending source.
    """

    def __init__(self, kind: object, source_id: int | str | None = None) -> None:
        super().__init__(f"Unsupported source kind: {kind!r}")
        self.kind = kind
        self.source_id = source_id


# ---------------------------------------------------------------------------
# Annotation exceptions
# ---------------------------------------------------------------------------


class AnnotationDegradedError(NewsScannerError):
    """Raised by the AI summarizer when it cannot produce an annotation.

    Covers timeouts, quota errors and malformed responses.  The Annotator
    catches it and falls back to the local algorithm; it never reaches the
    scan pipeline.
    """


# ---------------------------------------------------------------------------
# Storage exceptions
# ---------------------------------------------------------------------------


class StorageError(NewsScannerError):
    """Raised by a store for any failure other than a uniqueness violation."""


class SourceAlreadyExistsError(NewsScannerError):
    """Raised when registering a source whose origin URL is already registered.

    Args:
        url: The duplicate origin URL.
    """

    def __init__(self, url: str) -> None:
        super().__init__(f"A source with URL {url!r} already exists")
        self.url = url


class SourceNotFoundError(NewsScannerError):
    """Raised when a source id does not exist in the store.

    Args:
        source_id: The missing identifier.
    """

    def __init__(self, source_id: int | str) -> None:
        super().__init__(f"Source {source_id!r} not found")
        self.source_id = source_id
