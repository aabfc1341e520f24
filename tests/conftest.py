"""Shared pytest fixtures for news scanner tests.

Fixture summary
---------------
make_source    : Factory for :class:`Source` objects with sensible defaults.
fake_browser   : :class:`FakeBrowserEngine` serving canned pages.
store          : Empty :class:`InMemoryStore`.

No test needs the network or a real browser: HTTP is mocked with ``respx``
and Playwright pages are replaced by :class:`FakePage`.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

# ---------------------------------------------------------------------------
# Test environment bootstrap
# ---------------------------------------------------------------------------
# Keep a developer's .env or shell from leaking an AI key or a real DSN
# into the suite.

os.environ.pop("AI_API_KEY", None)
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from news_scanner.config.settings import get_settings  # noqa: E402
from news_scanner.core.exceptions import TransientNetworkError  # noqa: E402
from news_scanner.core.store import InMemoryStore  # noqa: E402
from news_scanner.core.types import Source, SourceKind  # noqa: E402

get_settings.cache_clear()

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Fake Playwright surface
# ---------------------------------------------------------------------------


@dataclass
class FakeResponse:
    status: int = 200


@dataclass
class FakePage:
    """Minimal stand-in for a Playwright ``Page``.

    Args:
        pages: Maps a requested URL to ``(final_url, html)``.  Unknown URLs
            render an empty document at the requested URL.
        missing_selector: When ``True``, ``wait_for_selector`` times out.
        goto_error: Raised from every ``goto`` when set.
    """

    pages: dict[str, tuple[str, str]] = field(default_factory=dict)
    missing_selector: bool = False
    goto_error: Exception | None = None
    url: str = "about:blank"
    visited: list[str] = field(default_factory=list)
    scrolls: int = 0
    waits: list[float] = field(default_factory=list)
    _html: str = "<html><body></body></html>"

    async def goto(self, url: str, **kwargs: Any) -> FakeResponse:
        self.visited.append(url)
        if self.goto_error is not None:
            raise self.goto_error
        self.url, self._html = self.pages.get(url, (url, "<html><body></body></html>"))
        return FakeResponse()

    async def wait_for_timeout(self, ms: float) -> None:
        self.waits.append(ms)

    async def wait_for_selector(self, selector: str, **kwargs: Any) -> None:
        if self.missing_selector:
            raise PlaywrightTimeoutError(f"waiting for {selector} timed out")

    async def evaluate(self, script: str) -> None:
        self.scrolls += 1

    async def content(self) -> str:
        return self._html


class FakeBrowserEngine:
    """Stand-in for :class:`~news_scanner.scraper.browser.BrowserEngine`."""

    def __init__(
        self,
        pages: dict[str, tuple[str, str]] | None = None,
        *,
        missing_selector: bool = False,
        goto_error: Exception | None = None,
        unavailable: bool = False,
    ) -> None:
        self.pages = pages or {}
        self.missing_selector = missing_selector
        self.goto_error = goto_error
        self.unavailable = unavailable
        self.opened: list[FakePage] = []
        self.closed = False

    @asynccontextmanager
    async def page(self) -> AsyncIterator[FakePage]:
        if self.unavailable:
            raise TransientNetworkError("browser launch failed: no chromium")
        page = FakePage(
            pages=self.pages,
            missing_selector=self.missing_selector,
            goto_error=self.goto_error,
        )
        self.opened.append(page)
        yield page

    async def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> None:
    get_settings.cache_clear()


@pytest.fixture
def make_source() -> Callable[..., Source]:
    def _make(**overrides: Any) -> Source:
        values: dict[str, Any] = {
            "id": 1,
            "name": "Example News",
            "url": "https://news.example.com/",
            "kind": SourceKind.SITE,
            "cadence_minutes": 30,
            "max_results": 3,
        }
        values.update(overrides)
        return Source(**values)

    return _make


@pytest.fixture
def fake_browser() -> FakeBrowserEngine:
    return FakeBrowserEngine()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


# ---------------------------------------------------------------------------
# Markup builders
# ---------------------------------------------------------------------------


def article_html(title: str, body: str, href: str | None = None, published: str | None = None) -> str:
    """Return one ``<article>`` container."""
    link = f'<a href="{href}">read more</a>' if href else ""
    stamp = f'<time datetime="{published}">then</time>' if published else ""
    return f"<article><h2>{title}</h2>{stamp}<p>{body}</p>{link}</article>"


def listing_page(*articles: str) -> str:
    """Wrap containers in a page that does not look like a client-rendered shell."""
    filler = "<footer>" + ("Footer text about the publication. " * 10) + "</footer>"
    return f"<html><head><title>News</title></head><body>{''.join(articles)}{filler}</body></html>"


LONG_BODY = (
    "The city council approved the new transit budget on Tuesday after a long debate "
    "that ran well into the evening and drew a large crowd of residents."
)
