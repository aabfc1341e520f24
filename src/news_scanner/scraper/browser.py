"""Shared headless-browser engine backed by Playwright Chromium.

One :class:`BrowserEngine` is created per process (by the run script or the
caller of ``Extractor``) and handed to the extractor.  The Chromium instance
behind it is launched lazily on the first scan that needs it, reused across
sources and ticks, and closed exactly once by :meth:`BrowserEngine.close`.

Scans never share a page: each one acquires an isolated browser context and
page through :meth:`BrowserEngine.page`, which also bounds how many pages are
open at the same time.

Install the Chromium binary once per host::

    playwright install chromium
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from news_scanner.core.exceptions import TransientNetworkError
from news_scanner.scraper.config import BROWSER_ARGS, BROWSER_VIEWPORT, USER_AGENT
from news_scanner.scraper.http_fetcher import FetchResult

logger = logging.getLogger(__name__)


class BrowserEngine:
    """Lazily launched, explicitly closed Chromium shared by all scans.

    Args:
        headless: Launch Chromium without a window.
        max_pages: Maximum number of concurrently open pages.
        user_agent: User-agent set on every browser context.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        max_pages: int = 3,
        user_agent: str = USER_AGENT,
    ) -> None:
        self._headless = headless
        self._user_agent = user_agent
        self._page_slots = asyncio.Semaphore(max_pages)
        self._launch_lock = asyncio.Lock()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._closed = False

    @property
    def is_running(self) -> bool:
        """``True`` once Chromium has been launched and until it is closed."""
        return self._browser is not None

    async def _ensure_browser(self) -> Browser:
        """Launch Chromium on first use.  Concurrent callers share one launch."""
        if self._browser is not None:
            return self._browser
        async with self._launch_lock:
            if self._closed:
                raise TransientNetworkError("browser engine has been shut down")
            if self._browser is None:
                playwright = await async_playwright().start()
                try:
                    self._browser = await playwright.chromium.launch(
                        headless=self._headless,
                        args=list(BROWSER_ARGS),
                    )
                except PlaywrightError as exc:
                    await playwright.stop()
                    raise TransientNetworkError(f"browser launch failed: {exc}") from exc
                self._playwright = playwright
                logger.info("browser: chromium launched (headless=%s)", self._headless)
        return self._browser

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Acquire a fresh page in its own browser context for one scan.

        The page and its context are always closed when the block exits,
        so no navigation state survives into another scan.

        Raises:
            TransientNetworkError: If Chromium cannot be launched or a
                context cannot be opened.
        """
        async with self._page_slots:
            browser = await self._ensure_browser()
            try:
                context = await browser.new_context(
                    user_agent=self._user_agent,
                    viewport=dict(BROWSER_VIEWPORT),
                )
            except PlaywrightError as exc:
                raise TransientNetworkError(f"browser context failed: {exc}") from exc
            try:
                yield await context.new_page()
            finally:
                await context.close()

    async def close(self) -> None:
        """Close Chromium and stop Playwright.  Safe to call more than once."""
        async with self._launch_lock:
            self._closed = True
            browser, self._browser = self._browser, None
            playwright, self._playwright = self._playwright, None
        if browser is not None:
            await browser.close()
            logger.info("browser: chromium closed")
        if playwright is not None:
            await playwright.stop()


async def fetch_url_browser(
    engine: BrowserEngine,
    url: str,
    *,
    timeout: float,
    settle_seconds: float,
) -> FetchResult:
    """Render ``url`` in the shared browser and return the resulting DOM.

    Navigates with ``wait_until="networkidle"``, then waits a fixed settle
    delay for late client-side rendering before reading the page source.

    Args:
        engine: The shared :class:`BrowserEngine`.
        url: Target URL.
        timeout: Navigation timeout in seconds.
        settle_seconds: Fixed delay after network-idle.

    Returns:
        A :class:`~news_scanner.scraper.http_fetcher.FetchResult`.
        ``needs_browser`` is always ``False``; no further escalation exists.
    """
    try:
        async with engine.page() as page:
            response = await page.goto(url, timeout=timeout * 1000, wait_until="networkidle")
            await page.wait_for_timeout(settle_seconds * 1000)
            html = await page.content()
            return FetchResult(
                html=html,
                status_code=response.status if response else None,
                final_url=page.url,
                error=None,
            )
    except TransientNetworkError as exc:
        logger.warning("scraper: browser unavailable for %s: %s", url, exc)
        return FetchResult(html=None, status_code=None, final_url=url, error=str(exc))
    except PlaywrightError as exc:
        logger.warning("scraper: browser fetch failed for %s: %s", url, exc)
        return FetchResult(
            html=None,
            status_code=None,
            final_url=url,
            error=f"browser error: {exc}",
        )
