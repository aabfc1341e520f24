"""Storage collaborator interface and the in-memory implementation.

The scan pipeline depends only on the four coroutines declared by
:class:`ScanStore`.  Two implementations ship with the package:

- :class:`InMemoryStore` (this module): dict-backed; used by tests and by
  one-off test scans that must not touch the database.
- :class:`~news_scanner.core.database.SqlAlchemyStore`: async SQLAlchemy
  over the ``sources`` / ``articles`` / ``scan_results`` tables.

Both also carry the registration helpers (``add_source``, ``update_source``,
``delete_source``) used by the operator scripts.
"""

from __future__ import annotations

import asyncio
import itertools
from datetime import datetime
from typing import Protocol, runtime_checkable

from news_scanner.core.exceptions import (
    SourceAlreadyExistsError,
    SourceNotFoundError,
    StorageError,
)
from news_scanner.core.schemas.sources import SourceCreate, SourceUpdate
from news_scanner.core.types import (
    ArticleRecord,
    InsertResult,
    ScanOutcome,
    Source,
    copy_source,
)


@runtime_checkable
class ScanStore(Protocol):
    """What the scheduler and ingestion gate need from persistent storage."""

    async def list_active_sources(self) -> list[Source]:
        """Return a snapshot of every active source."""
        ...

    async def update_source_last_scanned(self, source_id: int, timestamp: datetime) -> None:
        """Set the source's last-scanned timestamp."""
        ...

    async def insert_article_if_absent(self, record: ArticleRecord) -> InsertResult:
        """Insert ``record`` keyed by its URL.

        Returns ``ALREADY_EXISTS`` on a uniqueness violation; raises
        :class:`~news_scanner.core.exceptions.StorageError` on anything else.
        """
        ...

    async def record_scan_outcome(self, outcome: ScanOutcome) -> None:
        """Persist the statistics of one finished scan."""
        ...


class InMemoryStore:
    """Dict-backed :class:`ScanStore` with registration helpers.

    Sources handed out by :meth:`list_active_sources` are copies, so the
    scheduler's view never aliases the stored record.
    """

    def __init__(self) -> None:
        self._sources: dict[int, Source] = {}
        self._articles: dict[str, ArticleRecord] = {}
        self._outcomes: list[ScanOutcome] = []
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Registration helpers
    # ------------------------------------------------------------------

    async def add_source(self, payload: SourceCreate) -> Source:
        async with self._lock:
            if any(s.url == payload.url for s in self._sources.values()):
                raise SourceAlreadyExistsError(payload.url)
            source = Source(
                id=next(self._ids),
                name=payload.name,
                url=payload.url,
                kind=payload.kind,
                is_active=payload.is_active,
                cadence_minutes=payload.cadence_minutes,
                max_results=payload.max_results,
            )
            self._sources[source.id] = source
            return copy_source(source)

    async def get_source(self, source_id: int) -> Source:
        try:
            return copy_source(self._sources[source_id])
        except KeyError:
            raise SourceNotFoundError(source_id) from None

    async def update_source(self, source_id: int, payload: SourceUpdate) -> Source:
        async with self._lock:
            current = self._sources.get(source_id)
            if current is None:
                raise SourceNotFoundError(source_id)
            changes = payload.changes()
            new_url = changes.get("url")
            if new_url and any(
                s.url == new_url and s.id != source_id for s in self._sources.values()
            ):
                raise SourceAlreadyExistsError(new_url)
            updated = copy_source(current, **changes)
            self._sources[source_id] = updated
            return copy_source(updated)

    async def delete_source(self, source_id: int) -> None:
        async with self._lock:
            if self._sources.pop(source_id, None) is None:
                raise SourceNotFoundError(source_id)
            self._articles = {
                url: rec for url, rec in self._articles.items() if rec.source_id != source_id
            }
            self._outcomes = [o for o in self._outcomes if o.source_id != source_id]

    async def list_articles(self, source_id: int | None = None) -> list[ArticleRecord]:
        return [
            rec
            for rec in self._articles.values()
            if source_id is None or rec.source_id == source_id
        ]

    async def list_scan_outcomes(self, source_id: int | None = None) -> list[ScanOutcome]:
        return [o for o in self._outcomes if source_id is None or o.source_id == source_id]

    # ------------------------------------------------------------------
    # ScanStore interface
    # ------------------------------------------------------------------

    async def list_active_sources(self) -> list[Source]:
        return [copy_source(s) for s in self._sources.values() if s.is_active]

    async def update_source_last_scanned(self, source_id: int, timestamp: datetime) -> None:
        source = self._sources.get(source_id)
        if source is None:
            # Deleted while its scan was in flight.
            return
        self._sources[source_id] = copy_source(source, last_scanned=timestamp)

    async def insert_article_if_absent(self, record: ArticleRecord) -> InsertResult:
        async with self._lock:
            if record.url in self._articles:
                return InsertResult.ALREADY_EXISTS
            if record.source_id not in self._sources:
                raise StorageError(
                    f"article {record.url!r} refers to unknown source {record.source_id}"
                )
            self._articles[record.url] = record
            return InsertResult.INSERTED

    async def record_scan_outcome(self, outcome: ScanOutcome) -> None:
        self._outcomes.append(outcome)
