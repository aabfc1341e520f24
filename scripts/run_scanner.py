#!/usr/bin/env python
"""Run the news scanner until interrupted.

Configures logging, creates the database schema if needed, starts the
scheduler against the configured database and waits for SIGINT or SIGTERM.
On shutdown the scheduler is stopped (running scans are allowed to finish)
and the shared browser is closed.

Usage::

    python scripts/run_scanner.py
    python scripts/run_scanner.py --log-level DEBUG --tick-minutes 5

Environment variables (via .env or shell)::

    DATABASE_URL             Async SQLAlchemy DSN.
    AI_API_KEY               Enables the AI summarizer when set.
    MAX_CONCURRENT_SCRAPERS  Concurrent scans (default 3).

Exit codes:
    0: Clean shutdown.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import signal
import sys
from typing import Optional

# Ensure the src layout is on sys.path when run as a standalone script.
_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
_SRC_DIR = os.path.join(os.path.dirname(_SCRIPT_DIR), "src")
if _SRC_DIR not in sys.path:
    sys.path.insert(0, _SRC_DIR)


async def _run(log_level: Optional[str], tick_minutes: Optional[int]) -> None:
    """Start the scheduler and block until a shutdown signal arrives."""
    import structlog  # noqa: PLC0415

    from news_scanner.analysis.annotator import Annotator  # noqa: PLC0415
    from news_scanner.config.settings import get_settings  # noqa: PLC0415
    from news_scanner.core.database import SqlAlchemyStore, create_schema  # noqa: PLC0415
    from news_scanner.core.logging_config import configure_logging  # noqa: PLC0415
    from news_scanner.scraper.browser import BrowserEngine  # noqa: PLC0415
    from news_scanner.scraper.extractor import Extractor  # noqa: PLC0415
    from news_scanner.workers.scheduler import Scheduler  # noqa: PLC0415

    settings = get_settings()
    if tick_minutes is not None:
        settings = settings.model_copy(update={"scan_tick_minutes": tick_minutes})
    configure_logging(log_level or settings.log_level)
    log = structlog.get_logger("run_scanner")

    store, engine = SqlAlchemyStore.from_url(settings.database_url)
    await create_schema(engine)

    browser = BrowserEngine(
        headless=settings.browser_headless,
        max_pages=settings.max_concurrent_scrapers,
    )
    scheduler = Scheduler.from_settings(
        settings,
        store,
        Extractor.create(browser),
        Annotator.from_settings(settings),
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops.
            pass

    scheduler.start()
    log.info("run_scanner: running", database=settings.database_url.split("@")[-1])
    try:
        await stop_event.wait()
    finally:
        log.info("run_scanner: shutting down")
        await scheduler.stop(drain=True)
        await browser.close()
        await engine.dispose()
    log.info("run_scanner: stopped")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the news scanner scheduler.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ...).",
    )
    parser.add_argument(
        "--tick-minutes",
        type=int,
        default=None,
        help="Override SCAN_TICK_MINUTES for this run.",
    )
    return parser.parse_args()


def main() -> None:
    """Entry point for the scanner runner."""
    args = _parse_args()
    try:
        asyncio.run(_run(log_level=args.log_level, tick_minutes=args.tick_minutes))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
