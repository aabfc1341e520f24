"""Unit tests for markup sanitization and ``site`` container extraction."""

from __future__ import annotations

from datetime import datetime, timezone

from news_scanner.scraper.content_extractor import (
    extract_site_fragments,
    parse_datetime,
    resolve_href,
    sanitize_text,
)

from tests.conftest import FIXED_NOW, LONG_BODY, article_html, listing_page

SOURCE_URL = "https://news.example.com/"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestSanitizeText:
    def test_strips_tags_and_attributes(self) -> None:
        assert sanitize_text('<b onclick="x()">Bold</b> text') == "Bold text"

    def test_drops_script_content(self) -> None:
        assert sanitize_text("Hello <script>alert(1)</script>world") == "Hello world"

    def test_collapses_whitespace_and_nul(self) -> None:
        assert sanitize_text("  a\x00b \n\t c  ") == "ab c"

    def test_none_is_empty(self) -> None:
        assert sanitize_text(None) == ""


class TestResolveHref:
    def test_absolute_kept(self) -> None:
        assert resolve_href("https://other.example/a", SOURCE_URL) == "https://other.example/a"

    def test_site_relative_resolved(self) -> None:
        assert resolve_href("/story/1", SOURCE_URL) == "https://news.example.com/story/1"

    def test_fragment_and_javascript_rejected(self) -> None:
        assert resolve_href("#top", SOURCE_URL) is None
        assert resolve_href("javascript:void(0)", SOURCE_URL) is None


class TestParseDatetime:
    def test_zulu(self) -> None:
        assert parse_datetime("2024-05-01T08:30:00Z") == datetime(
            2024, 5, 1, 8, 30, tzinfo=timezone.utc
        )

    def test_naive_is_utc(self) -> None:
        assert parse_datetime("2024-05-01T08:30:00").tzinfo == timezone.utc

    def test_garbage_is_none(self) -> None:
        assert parse_datetime("yesterday") is None


# ---------------------------------------------------------------------------
# Container extraction
# ---------------------------------------------------------------------------


class TestExtractSiteFragments:
    def test_extracts_title_body_url_and_time(self) -> None:
        html = listing_page(
            article_html(
                "Council approves transit budget",
                LONG_BODY,
                href="/story/1",
                published="2024-05-01T08:30:00Z",
            )
        )
        [fragment] = extract_site_fragments(
            html, SOURCE_URL, max_results=3, extracted_at=FIXED_NOW
        )
        assert fragment.title == "Council approves transit budget"
        assert fragment.body == LONG_BODY
        assert fragment.url == "https://news.example.com/story/1"
        assert fragment.published_at == datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)

    def test_missing_link_and_time_use_extraction_time(self) -> None:
        html = listing_page(article_html("Council approves transit budget", LONG_BODY))
        [fragment] = extract_site_fragments(
            html, SOURCE_URL, max_results=3, extracted_at=FIXED_NOW
        )
        stamp = int(FIXED_NOW.timestamp() * 1000)
        assert fragment.url == f"{SOURCE_URL}#article-{stamp}-0"
        assert fragment.published_at == FIXED_NOW

    def test_short_title_or_body_discarded(self) -> None:
        html = listing_page(
            article_html("Short", LONG_BODY),
            article_html("A perfectly fine headline", "Too short to keep."),
            article_html("Second acceptable headline", LONG_BODY, href="/story/2"),
        )
        fragments = extract_site_fragments(html, SOURCE_URL, max_results=3, extracted_at=FIXED_NOW)
        assert [f.title for f in fragments] == ["Second acceptable headline"]

    def test_first_matching_selector_wins(self) -> None:
        html = listing_page(
            article_html("Headline inside an article", LONG_BODY, href="/a"),
            f'<div class="post"><h2>Headline inside a post div</h2><p>{LONG_BODY}</p></div>',
        )
        fragments = extract_site_fragments(html, SOURCE_URL, max_results=3, extracted_at=FIXED_NOW)
        assert [f.title for f in fragments] == ["Headline inside an article"]

    def test_falls_back_to_class_selector(self) -> None:
        html = listing_page(
            f'<div class="news-item"><h3>Headline inside a news item</h3><p>{LONG_BODY}</p></div>'
        )
        fragments = extract_site_fragments(html, SOURCE_URL, max_results=3, extracted_at=FIXED_NOW)
        assert [f.title for f in fragments] == ["Headline inside a news item"]

    def test_markup_in_text_is_stripped(self) -> None:
        hostile = "&lt;img src=x onerror=alert(1)&gt;" + LONG_BODY
        html = listing_page(article_html("Council approves transit budget", hostile))
        [fragment] = extract_site_fragments(
            html, SOURCE_URL, max_results=3, extracted_at=FIXED_NOW
        )
        assert "<" not in fragment.body
        assert "onerror" not in fragment.body

    def test_respects_cap_in_document_order(self) -> None:
        containers = [
            article_html(f"Headline number {i} for today", LONG_BODY, href=f"/s/{i}")
            for i in range(5)
        ]
        fragments = extract_site_fragments(
            listing_page(*containers), SOURCE_URL, max_results=2, extracted_at=FIXED_NOW
        )
        assert [f.url for f in fragments] == [
            "https://news.example.com/s/0",
            "https://news.example.com/s/1",
        ]

    def test_nothing_found_is_empty(self) -> None:
        assert extract_site_fragments(
            "<html><body><p>No containers here.</p></body></html>",
            SOURCE_URL,
            max_results=3,
            extracted_at=FIXED_NOW,
        ) == []

    def test_body_is_capped(self) -> None:
        body = "Sentence about the budget and the city. " * 100
        html = listing_page(article_html("Council approves transit budget", body))
        [fragment] = extract_site_fragments(
            html, SOURCE_URL, max_results=1, extracted_at=FIXED_NOW
        )
        assert len(fragment.body) <= 2000
