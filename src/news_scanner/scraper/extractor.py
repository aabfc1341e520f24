"""Source extractor: one extraction strategy per source kind.

The :class:`Extractor` owns a closed mapping from :class:`SourceKind` to an
:class:`ExtractionStrategy` and refuses to be built unless every kind has
one.  A scan resolves its strategy once, runs it, and truncates the result
to the source's cap while keeping document order.

Strategies:

``site``
    Lightweight ``httpx`` GET, parsed with the container heuristics in
    :mod:`news_scanner.scraper.content_extractor`.  Falls back to rendering
    in the shared browser when the GET fails, returns a client-rendered
    shell, or yields no fragments.
``social-feed-a`` / ``social-feed-b``
    Always rendered in the shared browser; see
    :mod:`news_scanner.scraper.social`.

Failure semantics: hard failures raise
:class:`~news_scanner.core.exceptions.TransientNetworkError` tagged with the
source id; finding nothing returns ``[]``.

The same :meth:`Extractor.fetch` backs scheduled scans and the one-off
:meth:`Extractor.test_scan` used to validate a newly added source.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx
import structlog
from playwright.async_api import Error as PlaywrightError

from news_scanner.config.settings import Settings, get_settings
from news_scanner.core.exceptions import TransientNetworkError, UnsupportedSourceKindError
from news_scanner.core.types import RawFragment, Source, SourceKind, utcnow
from news_scanner.scraper.browser import BrowserEngine, fetch_url_browser
from news_scanner.scraper.content_extractor import extract_site_fragments
from news_scanner.scraper.http_fetcher import fetch_url
from news_scanner.scraper.social import (
    FEED_A_PROFILE,
    FEED_B_PROFILE,
    FeedProfile,
    extract_feed_fragments,
    render_feed,
)

logger = structlog.get_logger(__name__)

#: Characters of body shown per sample in a test-scan report.
PREVIEW_LENGTH: int = 200

#: Samples included in a test-scan report.
PREVIEW_SAMPLES: int = 2


@dataclass(frozen=True)
class ExtractorOptions:
    """Timeouts and delays used by the strategies (seconds)."""

    http_timeout: float = 30.0
    content_wait: float = 10.0
    settle_seconds: float = 3.0
    scroll_count: int = 3
    scroll_settle_seconds: float = 2.0

    @classmethod
    def from_settings(cls, settings: Settings) -> ExtractorOptions:
        return cls(
            http_timeout=settings.http_timeout_seconds,
            content_wait=settings.content_wait_seconds,
            settle_seconds=settings.browser_settle_seconds,
            scroll_count=settings.feed_scroll_count,
            scroll_settle_seconds=settings.feed_scroll_settle_seconds,
        )


# ---------------------------------------------------------------------------
# Strategy interface
# ---------------------------------------------------------------------------


class ExtractionStrategy(ABC):
    """Turns one source into raw fragments.

    Implementations return fragments in document order and may return more
    than the source's cap; the :class:`Extractor` truncates.
    """

    kind: SourceKind

    @abstractmethod
    async def extract(self, source: Source, *, extracted_at: datetime) -> list[RawFragment]:
        """Extract fragments from ``source``.

        Raises:
            TransientNetworkError: On hard failures.
        """


class SiteStrategy(ExtractionStrategy):
    """HTTP-first extraction with browser-render fallback for ``site`` sources.

    Args:
        browser: Shared browser engine used for the fallback render.
        options: Timeouts and delays.
        client: Optional shared ``httpx.AsyncClient``.  When ``None`` a
            short-lived client is opened per scan.
    """

    kind = SourceKind.SITE

    def __init__(
        self,
        browser: BrowserEngine,
        options: ExtractorOptions,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._browser = browser
        self._options = options
        self._client = client

    async def _fetch(self, url: str):
        if self._client is not None:
            return await fetch_url(url, client=self._client, timeout=self._options.http_timeout)
        async with httpx.AsyncClient() as client:
            return await fetch_url(url, client=client, timeout=self._options.http_timeout)

    async def extract(self, source: Source, *, extracted_at: datetime) -> list[RawFragment]:
        result = await self._fetch(source.url)
        if result.html and not result.needs_browser:
            fragments = extract_site_fragments(
                result.html,
                source.url,
                max_results=source.max_results,
                extracted_at=extracted_at,
            )
            if fragments:
                return fragments
            reason = "no article containers in lightweight markup"
        else:
            reason = result.error or "client-rendered shell"

        logger.info("site fetch unusable, rendering in browser", url=source.url, reason=reason)
        rendered = await fetch_url_browser(
            self._browser,
            source.url,
            timeout=self._options.http_timeout,
            settle_seconds=self._options.settle_seconds,
        )
        if rendered.html is not None:
            html = rendered.html
        elif result.html is not None:
            # The lightweight markup is all we have; extract what it holds.
            logger.warning(
                "browser render failed, using lightweight markup",
                url=source.url,
                error=rendered.error,
            )
            html = result.html
        else:
            raise TransientNetworkError(
                f"HTTP fetch failed ({reason}) and browser render failed ({rendered.error})",
                source_id=source.id,
            )
        return extract_site_fragments(
            html,
            source.url,
            max_results=source.max_results,
            extracted_at=extracted_at,
        )


class FeedStrategy(ExtractionStrategy):
    """Browser-rendered extraction for a social feed kind.

    Args:
        profile: Selectors and thresholds of the feed kind.
        browser: Shared browser engine.
        options: Timeouts and delays.
    """

    def __init__(
        self,
        profile: FeedProfile,
        browser: BrowserEngine,
        options: ExtractorOptions,
    ) -> None:
        self.kind = profile.kind
        self._profile = profile
        self._browser = browser
        self._options = options

    async def extract(self, source: Source, *, extracted_at: datetime) -> list[RawFragment]:
        try:
            async with self._browser.page() as page:
                html, final_url = await render_feed(
                    page,
                    source.url,
                    self._profile,
                    timeout=self._options.http_timeout,
                    content_wait=self._options.content_wait,
                    scroll_count=self._options.scroll_count,
                    settle_seconds=self._options.scroll_settle_seconds,
                )
        except TransientNetworkError as exc:
            raise TransientNetworkError(str(exc.args[0]), source_id=source.id) from exc
        except PlaywrightError as exc:
            raise TransientNetworkError(
                f"navigation to {source.url} failed: {exc}", source_id=source.id
            ) from exc
        return extract_feed_fragments(
            html,
            final_url,
            self._profile,
            max_results=source.max_results,
            extracted_at=extracted_at,
        )


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------


@dataclass
class TestScanReport:
    """Summary of a one-off scan used to validate a newly added source."""

    __test__ = False  # not a pytest class

    source_id: int
    fragments: list[RawFragment] = field(default_factory=list)

    @property
    def fragments_found(self) -> int:
        return len(self.fragments)

    def as_dict(self) -> dict[str, Any]:
        """Render the report as the operator-facing payload."""
        return {
            "source_id": self.source_id,
            "articles_found": self.fragments_found,
            "sample_articles": [
                {
                    "title": f.title,
                    "url": f.url,
                    "content_preview": f.body[:PREVIEW_LENGTH] + "...",
                }
                for f in self.fragments[:PREVIEW_SAMPLES]
            ],
        }


class Extractor:
    """Dispatches each source to the strategy for its kind.

    Args:
        strategies: One strategy per :class:`SourceKind`.
        clock: Returns the current aware UTC time.

    Raises:
        ValueError: If a kind has no strategy.
    """

    def __init__(
        self,
        strategies: Mapping[SourceKind, ExtractionStrategy],
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        missing = [kind.value for kind in SourceKind if kind not in strategies]
        if missing:
            raise ValueError(f"no extraction strategy for kinds: {', '.join(missing)}")
        self._strategies = dict(strategies)
        self._clock = clock

    @classmethod
    def create(
        cls,
        browser: BrowserEngine,
        *,
        options: ExtractorOptions | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> Extractor:
        """Build an extractor with the standard strategy for every kind."""
        options = options or ExtractorOptions.from_settings(get_settings())
        return cls(
            {
                SourceKind.SITE: SiteStrategy(browser, options, client),
                SourceKind.SOCIAL_FEED_A: FeedStrategy(FEED_A_PROFILE, browser, options),
                SourceKind.SOCIAL_FEED_B: FeedStrategy(FEED_B_PROFILE, browser, options),
            }
        )

    def strategy_for(self, source: Source) -> ExtractionStrategy:
        """Resolve the strategy for ``source``'s kind.

        Raises:
            UnsupportedSourceKindError: For kinds outside :class:`SourceKind`.
        """
        try:
            kind = SourceKind(source.kind)
        except ValueError:
            raise UnsupportedSourceKindError(source.kind, source_id=source.id) from None
        return self._strategies[kind]

    async def fetch(self, source: Source) -> list[RawFragment]:
        """Extract at most ``source.max_results`` fragments from ``source``.

        Raises:
            UnsupportedSourceKindError: For an unknown kind.
            TransientNetworkError: On hard failures.
        """
        strategy = self.strategy_for(source)
        started = time.monotonic()
        fragments = await strategy.extract(source, extracted_at=self._clock())
        kept = fragments[: source.max_results]
        logger.info(
            "source extracted",
            url=source.url,
            kind=source.kind_value,
            fragments=len(kept),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        return kept

    async def test_scan(self, source: Source) -> TestScanReport:
        """Run one extraction outside the tick cycle; nothing is stored."""
        return TestScanReport(source_id=source.id, fragments=await self.fetch(source))
