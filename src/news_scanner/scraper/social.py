"""Rendering and post extraction for the two social feed kinds.

Both feeds need JavaScript, so they are always rendered in the shared
browser.  Rendering (:func:`render_feed`) handles the platform quirks: a
login-wall redirect is retried against the lightweight mobile domain, the
kind-specific content marker is awaited with a bounded wait that proceeds on
timeout, and ``social-feed-b`` is auto-scrolled to trigger lazy loading.

Extraction (:func:`extract_feed_fragments`) runs on the rendered DOM in
Python, with the same parser and sanitizer the ``site`` strategy uses.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import urlsplit, urlunsplit

from bs4 import BeautifulSoup, Tag
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from news_scanner.core.types import RawFragment, SourceKind
from news_scanner.scraper.config import (
    FEED_A_AUTHOR_SELECTORS,
    FEED_A_MIN_TEXT_LENGTH,
    FEED_A_PERMALINK_SELECTOR,
    FEED_A_POST_SELECTOR,
    FEED_A_TEXT_SELECTORS,
    FEED_B_AUTHOR_SELECTORS,
    FEED_B_MIN_TEXT_LENGTH,
    FEED_B_PERMALINK_SELECTOR,
    FEED_B_POST_SELECTOR,
    FEED_B_TEXT_SELECTORS,
    LOGIN_WALL_PATTERNS,
    SYNTH_TITLE_PREFIX_LENGTH,
)
from news_scanner.scraper.content_extractor import (
    element_text,
    parse_datetime,
    resolve_href,
    sanitize_text,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedProfile:
    """Selectors and thresholds describing one social feed kind.

    Attributes:
        kind: The source kind this profile serves.
        post_selector: Selects post-like elements; also the content marker
            awaited after navigation.
        text_selectors: Prioritised text-bearing selectors inside a post.
        author_selectors: Prioritised selectors for the author/handle.
        permalink_selector: Selects the post's permalink anchor.
        min_text_length: Posts with shorter text are skipped.
        auto_scroll: Scroll the page to trigger lazy-loaded posts.
    """

    kind: SourceKind
    post_selector: str
    text_selectors: tuple[str, ...]
    author_selectors: tuple[str, ...]
    permalink_selector: str
    min_text_length: int
    auto_scroll: bool = False


FEED_A_PROFILE = FeedProfile(
    kind=SourceKind.SOCIAL_FEED_A,
    post_selector=FEED_A_POST_SELECTOR,
    text_selectors=FEED_A_TEXT_SELECTORS,
    author_selectors=FEED_A_AUTHOR_SELECTORS,
    permalink_selector=FEED_A_PERMALINK_SELECTOR,
    min_text_length=FEED_A_MIN_TEXT_LENGTH,
)

FEED_B_PROFILE = FeedProfile(
    kind=SourceKind.SOCIAL_FEED_B,
    post_selector=FEED_B_POST_SELECTOR,
    text_selectors=FEED_B_TEXT_SELECTORS,
    author_selectors=FEED_B_AUTHOR_SELECTORS,
    permalink_selector=FEED_B_PERMALINK_SELECTOR,
    min_text_length=FEED_B_MIN_TEXT_LENGTH,
    auto_scroll=True,
)


# ---------------------------------------------------------------------------
# Login wall handling
# ---------------------------------------------------------------------------


def is_login_wall(url: str) -> bool:
    """Return ``True`` if ``url`` looks like a login or checkpoint page."""
    lowered = url.lower()
    return any(pattern in lowered for pattern in LOGIN_WALL_PATTERNS)


def mobile_variant(url: str) -> str:
    """Return ``url`` on the platform's lightweight mobile domain.

    ``www.example.com`` becomes ``m.example.com``; a bare host gains an
    ``m.`` prefix; hosts already on ``m.`` or ``mobile.`` are unchanged.
    """
    parts = urlsplit(url)
    host = parts.hostname or ""
    if host.startswith(("m.", "mobile.")):
        return url
    bare = host[4:] if host.startswith("www.") else host
    netloc = f"m.{bare}"
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


async def render_feed(
    page: Page,
    url: str,
    profile: FeedProfile,
    *,
    timeout: float,
    content_wait: float,
    scroll_count: int,
    settle_seconds: float,
) -> tuple[str, str]:
    """Navigate to a feed and return ``(html, final_url)`` once it has rendered.

    Navigation errors propagate (they are hard failures); a missing content
    marker only logs a warning, since a feed with no visible posts is a
    soft miss.

    Args:
        page: A page acquired from the shared browser engine.
        url: The source's origin URL.
        profile: The feed kind's :class:`FeedProfile`.
        timeout: Navigation timeout in seconds.
        content_wait: Bounded wait for ``profile.post_selector`` in seconds.
        scroll_count: Auto-scroll passes (only with ``profile.auto_scroll``).
        settle_seconds: Delay after the login-wall check and after each scroll.
    """
    await page.goto(url, timeout=timeout * 1000, wait_until="networkidle")
    await page.wait_for_timeout(settle_seconds * 1000)

    if is_login_wall(page.url):
        fallback_url = mobile_variant(url)
        logger.info("scraper: login wall at %s, retrying %s", page.url, fallback_url)
        await page.goto(fallback_url, timeout=timeout * 1000, wait_until="networkidle")

    try:
        await page.wait_for_selector(profile.post_selector, timeout=content_wait * 1000)
    except PlaywrightTimeoutError:
        logger.warning(
            "scraper: content selector %r not found on %s", profile.post_selector, page.url
        )

    if profile.auto_scroll:
        for _ in range(scroll_count):
            await page.evaluate("window.scrollTo(0, document.body.scrollHeight)")
            await page.wait_for_timeout(settle_seconds * 1000)

    return await page.content(), page.url


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def _first_text(post: Tag, selectors: tuple[str, ...]) -> str:
    for selector in selectors:
        element = post.select_one(selector)
        if element is None:
            continue
        text = element_text(element)
        if text:
            return text
    return ""


def _post_published(post: Tag) -> datetime | None:
    time_el = post.select_one("time[datetime]")
    if time_el is not None:
        parsed = parse_datetime(time_el.get("datetime"))
        if parsed is not None:
            return parsed
    utime_el = post.select_one("abbr[data-utime]")
    if utime_el is not None:
        try:
            return datetime.fromtimestamp(int(utime_el.get("data-utime")), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            return None
    return None


def synthesize_title(author: str | None, body: str) -> str:
    """Build a post title from its author, else from a truncated body prefix."""
    if author:
        return f"Post by {author}"
    if len(body) <= SYNTH_TITLE_PREFIX_LENGTH:
        return body
    return body[:SYNTH_TITLE_PREFIX_LENGTH].rstrip() + "..."


def extract_feed_fragments(
    html: str,
    page_url: str,
    profile: FeedProfile,
    *,
    max_results: int,
    extracted_at: datetime,
) -> list[RawFragment]:
    """Extract up to ``max_results`` posts from a rendered feed.

    Args:
        html: Rendered DOM.
        page_url: URL the page ended up on; permalinks resolve against it
            and it is the fallback URL for posts without one.
        profile: The feed kind's :class:`FeedProfile`.
        max_results: Stop after this many accepted posts.
        extracted_at: Fallback published timestamp.

    Returns:
        Fragments in post order.
    """
    soup = BeautifulSoup(html, "html.parser")
    fragments: list[RawFragment] = []
    for post in soup.select(profile.post_selector):
        if len(fragments) >= max_results:
            break
        body = sanitize_text(_first_text(post, profile.text_selectors))
        if len(body) < profile.min_text_length:
            continue
        author = sanitize_text(_first_text(post, profile.author_selectors)) or None
        permalink_el = post.select_one(profile.permalink_selector)
        permalink = (
            resolve_href(permalink_el.get("href"), page_url) if permalink_el is not None else None
        )
        fragments.append(
            RawFragment(
                title=sanitize_text(synthesize_title(author, body)),
                body=body,
                url=permalink or page_url,
                published_at=_post_published(post) or extracted_at,
                author=author,
            )
        )
    return fragments
