"""Ingestion gate: store each annotated fragment once per URL.

One :class:`ScanTally` accumulates the statistics of a single scan.  The
scheduler opens it with :meth:`IngestionGate.begin`, feeds annotated
fragments through :meth:`IngestionGate.ingest` in extraction order and
closes it with :meth:`IngestionGate.finish`, which advances the source's
last-scanned timestamp and writes exactly one
:class:`~news_scanner.core.types.ScanOutcome`.

Per-fragment isolation: a storage failure on one fragment is recorded in
the tally and the remaining fragments are still attempted.  An already-seen
URL is not an error and counts zero towards ``fragments_processed``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime

import structlog

from news_scanner.core.store import ScanStore
from news_scanner.core.types import AnnotatedFragment, ArticleRecord, InsertResult, ScanOutcome

logger = structlog.get_logger(__name__)


@dataclass
class ScanTally:
    """Mutable statistics of one scan, owned by the scan task."""

    source_id: int
    started_at: datetime
    fragments_found: int = 0
    fragments_processed: int = 0
    errors: list[str] = field(default_factory=list)
    _clock_start: float = field(default_factory=time.monotonic, repr=False)

    def record_error(self, message: str) -> None:
        self.errors.append(message)

    @property
    def duration_ms(self) -> int:
        return int((time.monotonic() - self._clock_start) * 1000)

    def to_outcome(self) -> ScanOutcome:
        return ScanOutcome(
            source_id=self.source_id,
            started_at=self.started_at,
            fragments_found=self.fragments_found,
            fragments_processed=self.fragments_processed,
            errors="; ".join(self.errors) if self.errors else None,
            duration_ms=self.duration_ms,
        )


class IngestionGate:
    """Idempotent article persistence and scan outcome reporting.

    Args:
        store: The storage collaborator.
    """

    def __init__(self, store: ScanStore) -> None:
        self._store = store

    def begin(self, source_id: int, started_at: datetime) -> ScanTally:
        """Open the tally for a scan that started at ``started_at``."""
        return ScanTally(source_id=source_id, started_at=started_at)

    async def ingest(self, tally: ScanTally, annotated: AnnotatedFragment) -> InsertResult | None:
        """Insert one annotated fragment keyed by its URL.

        Returns:
            The store's :class:`InsertResult`, or ``None`` when the insert
            failed and the error was recorded in ``tally``.
        """
        record = ArticleRecord.from_annotated(tally.source_id, annotated)
        try:
            result = await self._store.insert_article_if_absent(record)
        except Exception as exc:
            logger.warning("article insert failed", url=record.url, error=str(exc))
            tally.record_error(f"{record.url}: {exc}")
            return None

        if result is InsertResult.INSERTED:
            tally.fragments_processed += 1
            logger.debug("article stored", url=record.url)
        else:
            logger.debug("article already seen", url=record.url)
        return result

    async def finish(self, tally: ScanTally, *, advance_last_scanned: bool = True) -> ScanOutcome:
        """Close the scan: advance last-scanned, then write the outcome once.

        Args:
            tally: The scan's tally.
            advance_last_scanned: Set the source's last-scanned timestamp to
                ``tally.started_at``.  ``False`` after a failed extraction so
                the source is retried on the next tick.

        Returns:
            The :class:`ScanOutcome` that was (or failed to be) written.
            Store failures here are logged, never raised.
        """
        if advance_last_scanned:
            try:
                await self._store.update_source_last_scanned(tally.source_id, tally.started_at)
            except Exception as exc:
                logger.error("last-scanned update failed", error=str(exc))
                tally.record_error(f"last-scanned update failed: {exc}")

        outcome = tally.to_outcome()
        try:
            await self._store.record_scan_outcome(outcome)
        except Exception as exc:
            logger.error("scan outcome write failed", error=str(exc))
        return outcome
