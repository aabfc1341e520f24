"""In-process scan scheduler.

An APScheduler ``AsyncIOScheduler`` drives the scan cycle: a one-off
warm-up job a few seconds after :meth:`Scheduler.start`, then an interval
job every ``scan_tick_minutes``.  Each tick lists the active sources,
keeps those for which :func:`is_due` holds and scans them concurrently, at
most ``max_workers`` at a time.

A scan runs the per-source pipeline::

    Extractor.fetch -> Annotator.annotate (per fragment) -> IngestionGate

Isolation: every scan is wrapped so that an exception escaping one source
is logged and never reaches the other scans of the same tick.

Each job only spawns the tick as its own task.  :meth:`Scheduler.stop`
shuts the job scheduler down without touching running ticks, so a scan is
never cancelled halfway through its store writes; ``stop(drain=True)``
additionally waits for them.

A source whose scan from an earlier tick is still running is skipped, so a
source is never in two scans at once.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from news_scanner.analysis.annotator import Annotator
from news_scanner.config.settings import Settings
from news_scanner.core.logging_config import bind_scan_context, clear_scan_context
from news_scanner.core.store import ScanStore
from news_scanner.core.types import ScanOutcome, Source, utcnow
from news_scanner.ingestion.gate import IngestionGate
from news_scanner.scraper.extractor import Extractor

logger = structlog.get_logger(__name__)


def is_due(source: Source, now: datetime) -> bool:
    """Return ``True`` if ``source`` should be scanned at ``now``.

    A source is due when it has never been scanned, or when at least
    ``cadence_minutes`` have passed since its last scan started.
    """
    if source.last_scanned is None:
        return True
    last = source.last_scanned
    if last.tzinfo is None:
        last = last.replace(tzinfo=timezone.utc)
    return now >= last + timedelta(minutes=source.cadence_minutes)


@dataclass(frozen=True)
class TickReport:
    """What one tick did."""

    started_at: datetime
    sources_listed: int = 0
    sources_due: int = 0
    skipped_in_flight: list[int] = field(default_factory=list)
    outcomes: list[ScanOutcome] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def articles_processed(self) -> int:
        return sum(o.fragments_processed for o in self.outcomes)

    @property
    def failed_sources(self) -> list[int]:
        return [o.source_id for o in self.outcomes if not o.succeeded]


class Scheduler:
    """Periodic due-source scanning with bounded concurrency.

    Args:
        store: Storage collaborator.
        extractor: Shared :class:`Extractor`.
        annotator: Shared :class:`Annotator`.
        max_workers: Maximum concurrent scans.
        tick_interval: Seconds between ticks.
        warmup_delay: Seconds from :meth:`start` to the warm-up tick.
        clock: Returns the current aware UTC time.
    """

    def __init__(
        self,
        store: ScanStore,
        extractor: Extractor,
        annotator: Annotator,
        *,
        max_workers: int = 3,
        tick_interval: float = 15 * 60,
        warmup_delay: float = 5.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._store = store
        self._extractor = extractor
        self._annotator = annotator
        self._gate = IngestionGate(store)
        self._tick_interval = tick_interval
        self._warmup_delay = warmup_delay
        self._clock = clock
        self._workers = asyncio.Semaphore(max_workers)

        self._jobs: AsyncIOScheduler | None = None
        self._tick_tasks: set[asyncio.Task[TickReport]] = set()
        self._in_flight: set[int] = set()
        self._invalidated: set[int] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: ScanStore,
        extractor: Extractor,
        annotator: Annotator,
    ) -> Scheduler:
        return cls(
            store,
            extractor,
            annotator,
            max_workers=settings.max_concurrent_scrapers,
            tick_interval=settings.scan_tick_minutes * 60,
            warmup_delay=settings.warmup_delay_seconds,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._jobs is not None and self._jobs.running

    @property
    def in_flight(self) -> frozenset[int]:
        """Ids of sources whose scan is currently running."""
        return frozenset(self._in_flight)

    def start(self) -> None:
        """Register the interval tick job and the one-off warm-up job.

        Returns immediately.  Calling it while running is a no-op.  Must be
        called from inside a running event loop.
        """
        if self.is_running:
            return
        jobs = AsyncIOScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 60,
            },
        )
        jobs.add_job(
            self._spawn_tick,
            trigger=IntervalTrigger(seconds=self._tick_interval),
            id="scan_tick",
            name="Due-source scan tick",
            replace_existing=True,
        )
        jobs.add_job(
            self._spawn_tick,
            trigger=DateTrigger(
                run_date=datetime.now(tz=timezone.utc) + timedelta(seconds=self._warmup_delay)
            ),
            id="warmup_tick",
            name="Warm-up scan tick",
            replace_existing=True,
        )
        jobs.start()
        self._jobs = jobs
        logger.info(
            "scheduler: started",
            tick_minutes=self._tick_interval / 60,
            warmup_seconds=self._warmup_delay,
        )

    async def stop(self, *, drain: bool = False) -> None:
        """Shut down the job scheduler.  Safe to call when not started.

        Args:
            drain: Also wait for ticks that are already running.  Without it
                they keep running in the background until they finish.
        """
        jobs, self._jobs = self._jobs, None
        if jobs is not None and jobs.running:
            jobs.shutdown(wait=False)
            logger.info("scheduler: stopped", running_ticks=len(self._tick_tasks))
        if drain and self._tick_tasks:
            await asyncio.gather(*list(self._tick_tasks), return_exceptions=True)

    async def _spawn_tick(self) -> None:
        """Job body: start a tick as its own task and return.

        The tick outlives the job, so shutting the job scheduler down never
        cancels a scan halfway through its store writes.
        """
        task = asyncio.create_task(self.run_tick(), name="scheduler-tick")
        self._tick_tasks.add(task)
        task.add_done_callback(self._tick_tasks.discard)

    def forget_source(self, source_id: int) -> bool:
        """Invalidate an in-flight scan of a deleted source.

        The scan stops before its next fragment and does not write back
        last-scanned or an outcome.

        Returns:
            ``True`` if a scan of ``source_id`` was in flight.
        """
        if source_id not in self._in_flight:
            return False
        self._invalidated.add(source_id)
        logger.info("scheduler: in-flight scan invalidated", source_id=source_id)
        return True

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    async def run_tick(self, now: datetime | None = None) -> TickReport:
        """Scan every due source once.  Never raises for per-source failures.

        Args:
            now: Due-check reference time; the clock is read when omitted.
        """
        now = now or self._clock()
        clock_start = time.monotonic()
        log = logger.bind(tick_at=now.isoformat())

        try:
            sources = await self._store.list_active_sources()
        except Exception as exc:
            log.error("scheduler: listing active sources failed", error=str(exc), exc_info=True)
            return TickReport(started_at=now, duration_ms=int((time.monotonic() - clock_start) * 1000))

        due = [s for s in sources if is_due(s, now)]
        skipped = [s.id for s in due if s.id in self._in_flight]
        runnable = [s for s in due if s.id not in self._in_flight]
        if skipped:
            log.info("scheduler: skipping sources still in flight", source_ids=skipped)
        for source in runnable:
            self._in_flight.add(source.id)

        results = await asyncio.gather(*(self._guarded_scan(s) for s in runnable))
        report = TickReport(
            started_at=now,
            sources_listed=len(sources),
            sources_due=len(due),
            skipped_in_flight=skipped,
            outcomes=[r for r in results if r is not None],
            duration_ms=int((time.monotonic() - clock_start) * 1000),
        )
        log.info(
            "scheduler: tick complete",
            sources=report.sources_listed,
            due=report.sources_due,
            scanned=len(runnable),
            articles_processed=report.articles_processed,
            failed=report.failed_sources,
            duration_ms=report.duration_ms,
        )
        return report

    async def _guarded_scan(self, source: Source) -> ScanOutcome | None:
        try:
            async with self._workers:
                return await self.scan_source(source)
        except Exception as exc:
            logger.error(
                "scheduler: scan crashed",
                source_id=source.id,
                error=str(exc),
                exc_info=True,
            )
            return None
        finally:
            self._in_flight.discard(source.id)
            self._invalidated.discard(source.id)

    # ------------------------------------------------------------------
    # Per-source pipeline
    # ------------------------------------------------------------------

    async def scan_source(self, source: Source) -> ScanOutcome:
        """Extract, annotate and ingest one source.

        Extraction failures are recorded in the outcome and leave the
        source's last-scanned timestamp untouched.
        """
        started_at = self._clock()
        bind_scan_context(uuid.uuid4().hex[:12], source.id, source.kind_value)
        try:
            return await self._scan(source, started_at)
        finally:
            clear_scan_context()

    async def _scan(self, source: Source, started_at: datetime) -> ScanOutcome:
        log = logger.bind(url=source.url)
        tally = self._gate.begin(source.id, started_at)

        try:
            fragments = await self._extractor.fetch(source)
        except Exception as exc:
            log.warning("scan: extraction failed", error=str(exc))
            tally.record_error(str(exc))
            return await self._gate.finish(tally, advance_last_scanned=False)

        tally.fragments_found = len(fragments)
        for fragment in fragments:
            if source.id in self._invalidated:
                break
            annotated = await self._annotator.annotate(fragment)
            await self._gate.ingest(tally, annotated)

        if source.id in self._invalidated:
            log.info("scan: source removed mid-scan, discarding outcome")
            return tally.to_outcome()

        outcome = await self._gate.finish(tally)
        log.info(
            "scan: finished",
            found=outcome.fragments_found,
            processed=outcome.fragments_processed,
            errors=outcome.errors,
            duration_ms=outcome.duration_ms,
        )
        return outcome
