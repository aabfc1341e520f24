"""Plain data types shared by the extraction, annotation and ingestion stages.

``Source`` is the scheduler's read-mostly view of a monitored origin; the
storage collaborator owns the durable record.  ``RawFragment`` and
``AnnotatedFragment`` are transient and owned by the scan task that created
them.  ``ScanOutcome`` is written once per scan attempt.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Literal

Sentiment = Literal["positive", "negative", "neutral"]


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(tz=timezone.utc)


class SourceKind(str, Enum):
    """Closed set of source kinds, each backed by one extraction strategy.

    Attributes:
        SITE: A regular web page listing articles.  Fetched over plain HTTP
            first, rendered in the browser when that yields nothing usable.
        SOCIAL_FEED_A: A short-post social timeline (tweet-like posts).
        SOCIAL_FEED_B: A page-style social feed with lazily loaded posts.
    """

    SITE = "site"
    SOCIAL_FEED_A = "social-feed-a"
    SOCIAL_FEED_B = "social-feed-b"


class InsertResult(str, Enum):
    """Outcome of an idempotent article insert."""

    INSERTED = "inserted"
    ALREADY_EXISTS = "already_exists"


@dataclass
class Source:
    """A monitored origin as seen by the scheduler.

    Attributes:
        id: Store-assigned identifier.
        name: Human label.
        url: Origin URL, unique across all sources.
        kind: A :class:`SourceKind`.  Stores may hand back a raw string for
            rows written by other tools; the Extractor rejects unknown values.
        is_active: Inactive sources are never listed for scanning.
        cadence_minutes: Minimum minutes between successive scans (>= 5).
        max_results: Result cap per scan (1-10).
        last_scanned: Start time of the last completed scan, or ``None``.
    """

    id: int
    name: str
    url: str
    kind: SourceKind | str
    is_active: bool = True
    cadence_minutes: int = 30
    max_results: int = 3
    last_scanned: datetime | None = None

    @property
    def kind_value(self) -> str:
        """Return the kind as a plain string for logging and storage."""
        return self.kind.value if isinstance(self.kind, SourceKind) else str(self.kind)


@dataclass
class RawFragment:
    """One unit of extracted content before annotation.

    All text fields are already stripped of markup.
    """

    title: str
    body: str
    url: str
    published_at: datetime
    author: str | None = None


@dataclass
class AnnotatedFragment:
    """A :class:`RawFragment` plus summary, sentiment and keywords."""

    fragment: RawFragment
    summary: str
    sentiment: Sentiment
    keywords: list[str] = field(default_factory=list)


@dataclass
class ArticleRecord:
    """URL-keyed record handed to the store's idempotent insert."""

    source_id: int
    title: str
    content: str
    url: str
    published_at: datetime
    summary: str
    sentiment: Sentiment
    keywords: list[str]
    author: str | None = None

    @classmethod
    def from_annotated(cls, source_id: int, annotated: AnnotatedFragment) -> ArticleRecord:
        """Build the persisted form of an annotated fragment."""
        raw = annotated.fragment
        return cls(
            source_id=source_id,
            title=raw.title,
            content=raw.body,
            url=raw.url,
            published_at=raw.published_at,
            summary=annotated.summary,
            sentiment=annotated.sentiment,
            keywords=list(annotated.keywords),
            author=raw.author,
        )


@dataclass(frozen=True)
class ScanOutcome:
    """Statistics for one scan attempt of one source.

    Attributes:
        source_id: Scanned source.
        started_at: Scan start time (also the value written to last-scanned
            on success).
        fragments_found: Fragments returned by the Extractor.
        fragments_processed: Fragments newly stored as articles.
        errors: Concatenated error text, or ``None`` when the scan was clean.
        duration_ms: Wall-clock duration of the scan in milliseconds.
    """

    source_id: int
    started_at: datetime
    fragments_found: int
    fragments_processed: int
    errors: str | None
    duration_ms: int

    @property
    def succeeded(self) -> bool:
        return self.errors is None


def copy_source(source: Source, **changes: object) -> Source:
    """Return a copy of ``source`` with ``changes`` applied."""
    return replace(source, **changes)
