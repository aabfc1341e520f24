"""Tests for the Extractor: kind dispatch, HTTP-to-browser fallback and caps."""

from __future__ import annotations

from datetime import datetime

import httpx
import pytest
import respx
from playwright.async_api import Error as PlaywrightError

from news_scanner.core.exceptions import TransientNetworkError, UnsupportedSourceKindError
from news_scanner.core.types import RawFragment, Source, SourceKind
from news_scanner.scraper.extractor import (
    ExtractionStrategy,
    Extractor,
    ExtractorOptions,
    TestScanReport,
)

from tests.conftest import FIXED_NOW, LONG_BODY, FakeBrowserEngine, article_html, listing_page

SITE_URL = "https://news.example.com/"
FAST = ExtractorOptions(settle_seconds=0, scroll_settle_seconds=0)


class _StaticStrategy(ExtractionStrategy):
    def __init__(self, kind: SourceKind, fragments: list[RawFragment]) -> None:
        self.kind = kind
        self.fragments = fragments
        self.calls = 0

    async def extract(self, source: Source, *, extracted_at: datetime) -> list[RawFragment]:
        self.calls += 1
        return list(self.fragments)


def _fragments(n: int) -> list[RawFragment]:
    return [
        RawFragment(
            title=f"Headline {i}",
            body=LONG_BODY,
            url=f"{SITE_URL}story/{i}",
            published_at=FIXED_NOW,
        )
        for i in range(n)
    ]


def _static_extractor(fragments: list[RawFragment]) -> Extractor:
    return Extractor(
        {kind: _StaticStrategy(kind, fragments) for kind in SourceKind},
        clock=lambda: FIXED_NOW,
    )


# ---------------------------------------------------------------------------
# Dispatch and truncation
# ---------------------------------------------------------------------------


class TestDispatch:
    def test_missing_strategy_rejected(self) -> None:
        with pytest.raises(ValueError, match="social-feed-b"):
            Extractor(
                {
                    SourceKind.SITE: _StaticStrategy(SourceKind.SITE, []),
                    SourceKind.SOCIAL_FEED_A: _StaticStrategy(SourceKind.SOCIAL_FEED_A, []),
                }
            )

    async def test_unknown_kind_raises(self, make_source) -> None:
        extractor = _static_extractor([])
        with pytest.raises(UnsupportedSourceKindError) as exc_info:
            await extractor.fetch(make_source(id=7, kind="newsletter"))
        assert exc_info.value.source_id == 7

    async def test_raw_string_kind_accepted(self, make_source) -> None:
        extractor = _static_extractor(_fragments(1))
        assert len(await extractor.fetch(make_source(kind="social-feed-a"))) == 1

    async def test_output_truncated_to_cap_in_order(self, make_source) -> None:
        extractor = _static_extractor(_fragments(5))
        fragments = await extractor.fetch(make_source(max_results=3))
        assert [f.title for f in fragments] == ["Headline 0", "Headline 1", "Headline 2"]

    async def test_test_scan_reuses_fetch(self, make_source) -> None:
        extractor = _static_extractor(_fragments(4))
        report = await extractor.test_scan(make_source(id=3, max_results=3))
        assert isinstance(report, TestScanReport)
        assert report.fragments_found == 3
        payload = report.as_dict()
        assert payload["articles_found"] == 3
        assert len(payload["sample_articles"]) == 2
        assert payload["sample_articles"][0]["content_preview"] == LONG_BODY[:200] + "..."


# ---------------------------------------------------------------------------
# ``site`` strategy
# ---------------------------------------------------------------------------


def _listing() -> str:
    return listing_page(
        article_html("Council approves transit budget", LONG_BODY, href="/story/1"),
        article_html("Library extends weekend hours", LONG_BODY, href="/story/2"),
    )


@pytest.mark.asyncio
class TestSiteStrategy:
    async def test_http_success_skips_browser(self, make_source) -> None:
        browser = FakeBrowserEngine()
        extractor = Extractor.create(browser, options=FAST)
        with respx.mock:
            respx.get(SITE_URL).mock(
                return_value=httpx.Response(
                    200, text=_listing(), headers={"content-type": "text/html"}
                )
            )
            fragments = await extractor.fetch(make_source(url=SITE_URL))

        assert [f.url for f in fragments] == [
            "https://news.example.com/story/1",
            "https://news.example.com/story/2",
        ]
        assert browser.opened == []

    async def test_timeout_falls_back_to_browser(self, make_source) -> None:
        browser = FakeBrowserEngine(pages={SITE_URL: (SITE_URL, _listing())})
        extractor = Extractor.create(browser, options=FAST)
        with respx.mock:
            respx.get(SITE_URL).mock(side_effect=httpx.ReadTimeout("timed out"))
            fragments = await extractor.fetch(make_source(url=SITE_URL))

        assert len(fragments) == 2
        assert len(browser.opened) == 1
        assert browser.opened[0].visited == [SITE_URL]

    async def test_shell_rendered_in_browser(self, make_source) -> None:
        shell = '<html><body><div id="root"></div><script src="/app.js"></script></body></html>'
        browser = FakeBrowserEngine(pages={SITE_URL: (SITE_URL, _listing())})
        extractor = Extractor.create(browser, options=FAST)
        with respx.mock:
            respx.get(SITE_URL).mock(
                return_value=httpx.Response(200, text=shell, headers={"content-type": "text/html"})
            )
            fragments = await extractor.fetch(make_source(url=SITE_URL))

        assert len(fragments) == 2

    async def test_both_paths_failing_raises_tagged_error(self, make_source) -> None:
        extractor = Extractor.create(FakeBrowserEngine(unavailable=True), options=FAST)
        with respx.mock:
            respx.get(SITE_URL).mock(side_effect=httpx.ConnectError("dns failure"))
            with pytest.raises(TransientNetworkError) as exc_info:
                await extractor.fetch(make_source(id=9, url=SITE_URL))

        assert exc_info.value.source_id == 9
        assert str(exc_info.value).startswith("[source 9]")

    async def test_shell_with_broken_browser_is_soft_miss(self, make_source) -> None:
        shell = '<html><body><div id="root"></div></body></html>'
        extractor = Extractor.create(FakeBrowserEngine(unavailable=True), options=FAST)
        with respx.mock:
            respx.get(SITE_URL).mock(
                return_value=httpx.Response(200, text=shell, headers={"content-type": "text/html"})
            )
            assert await extractor.fetch(make_source(url=SITE_URL)) == []

    async def test_page_without_containers_rendered_in_browser(self, make_source) -> None:
        plain = listing_page("<div><p>" + LONG_BODY + "</p></div>")
        browser = FakeBrowserEngine(pages={SITE_URL: (SITE_URL, _listing())})
        extractor = Extractor.create(browser, options=FAST)
        with respx.mock:
            respx.get(SITE_URL).mock(
                return_value=httpx.Response(200, text=plain, headers={"content-type": "text/html"})
            )
            fragments = await extractor.fetch(make_source(url=SITE_URL))

        assert len(fragments) == 2
        assert len(browser.opened) == 1

    async def test_page_without_containers_and_broken_browser_is_soft_miss(
        self, make_source
    ) -> None:
        plain = listing_page("<div><p>" + LONG_BODY + "</p></div>")
        extractor = Extractor.create(FakeBrowserEngine(unavailable=True), options=FAST)
        with respx.mock:
            respx.get(SITE_URL).mock(
                return_value=httpx.Response(200, text=plain, headers={"content-type": "text/html"})
            )
            assert await extractor.fetch(make_source(url=SITE_URL)) == []


# ---------------------------------------------------------------------------
# Social feed strategies
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestFeedStrategy:
    async def test_feed_b_extracts_posts(self, make_source) -> None:
        url = "https://www.social-b.example/citypage"
        html = (
            '<html><body><div role="article">'
            '<div data-ad-preview="message">The farmers market moves indoors this weekend.</div>'
            '<a href="/citypage/posts/42">link</a></div></body></html>'
        )
        browser = FakeBrowserEngine(pages={url: (url, html)})
        extractor = Extractor.create(browser, options=FAST)
        [fragment] = await extractor.fetch(make_source(url=url, kind=SourceKind.SOCIAL_FEED_B))

        assert fragment.url == "https://www.social-b.example/citypage/posts/42"
        assert browser.opened[0].scrolls == 3

    async def test_navigation_error_is_transient(self, make_source) -> None:
        browser = FakeBrowserEngine(goto_error=PlaywrightError("net::ERR_NAME_NOT_RESOLVED"))
        extractor = Extractor.create(browser, options=FAST)
        with pytest.raises(TransientNetworkError) as exc_info:
            await extractor.fetch(
                make_source(id=4, url="https://social-a.example/x", kind=SourceKind.SOCIAL_FEED_A)
            )
        assert exc_info.value.source_id == 4

    async def test_browser_launch_failure_is_tagged(self, make_source) -> None:
        extractor = Extractor.create(FakeBrowserEngine(unavailable=True), options=FAST)
        with pytest.raises(TransientNetworkError) as exc_info:
            await extractor.fetch(
                make_source(id=5, url="https://social-a.example/x", kind=SourceKind.SOCIAL_FEED_A)
            )
        assert exc_info.value.source_id == 5

    async def test_empty_feed_is_soft_miss(self, make_source) -> None:
        extractor = Extractor.create(FakeBrowserEngine(missing_selector=True), options=FAST)
        fragments = await extractor.fetch(
            make_source(url="https://social-a.example/quiet", kind=SourceKind.SOCIAL_FEED_A)
        )
        assert fragments == []
