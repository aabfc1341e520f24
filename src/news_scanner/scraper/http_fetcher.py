"""Async HTTP fetcher with client-rendered shell detection.

Uses ``httpx`` for the lightweight GET.  Detects JavaScript-rendered page
shells (near-empty body, script-dominated markup, empty SPA mount points)
and sets ``needs_browser=True`` on the result so the caller can retry with
:mod:`news_scanner.scraper.browser`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx
from bs4 import BeautifulSoup

from news_scanner.scraper.config import (
    BINARY_CONTENT_TYPES,
    DEFAULT_HEADERS,
    EMPTY_CONTENT_MARKERS,
    JS_SHELL_BODY_THRESHOLD,
    JS_SHELL_SCRIPT_RATIO,
    JS_SHELL_SCRIPT_TEXT_LIMIT,
    JS_SHELL_TEXT_THRESHOLD,
    USER_AGENT,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result dataclass
# ---------------------------------------------------------------------------


@dataclass
class FetchResult:
    """Result of a single page fetch attempt (HTTP or browser).

    Attributes:
        html: Raw HTML string, or ``None`` if the fetch failed.
        status_code: HTTP status code, or ``None`` on network error.
        final_url: URL after following redirects.
        error: Human-readable error description, or ``None`` on success.
        needs_browser: ``True`` if the fetch failed or the body looks like a
            client-rendered shell, so a headless-browser retry is warranted.
    """

    html: str | None
    status_code: int | None
    final_url: str | None
    error: str | None
    needs_browser: bool = False


# ---------------------------------------------------------------------------
# Binary content-type check
# ---------------------------------------------------------------------------


def _is_binary_content_type(content_type: str) -> bool:
    """Return ``True`` if the Content-Type indicates a non-text binary resource."""
    ct = content_type.lower().split(";")[0].strip()
    return any(ct.startswith(prefix) for prefix in BINARY_CONTENT_TYPES)


# ---------------------------------------------------------------------------
# Client-rendered shell detection
# ---------------------------------------------------------------------------


def _is_js_shell(html: str) -> bool:
    """Return ``True`` if the markup is probably a client-rendered shell.

    Heuristics, any of which marks a shell:

    1. The raw markup is shorter than ``JS_SHELL_BODY_THRESHOLD``.
    2. Visible text (scripts, styles and noscript removed) is shorter than
       ``JS_SHELL_TEXT_THRESHOLD``.
    3. An SPA mount point (``#root``, ``#app``, ...) exists and is empty.
    4. ``<script>`` tags make up more than ``JS_SHELL_SCRIPT_RATIO`` of all
       tags while visible text stays below ``JS_SHELL_SCRIPT_TEXT_LIMIT``.

    Args:
        html: Raw HTML string.

    Returns:
        ``True`` if a headless-browser render is likely to find more content.
    """
    if len(html.strip()) < JS_SHELL_BODY_THRESHOLD:
        return True

    soup = BeautifulSoup(html, "html.parser")
    all_tags = soup.find_all(True)
    script_count = len(soup.find_all("script"))

    for marker in EMPTY_CONTENT_MARKERS:
        mount = soup.select_one(marker)
        if mount is not None and not mount.get_text(strip=True) and not mount.find(True):
            return True

    for tag in soup(["script", "style", "noscript", "template"]):
        tag.decompose()
    text_length = len(soup.get_text(" ", strip=True))

    if text_length < JS_SHELL_TEXT_THRESHOLD:
        return True

    script_ratio = script_count / max(1, len(all_tags))
    return script_ratio > JS_SHELL_SCRIPT_RATIO and text_length < JS_SHELL_SCRIPT_TEXT_LIMIT


# ---------------------------------------------------------------------------
# Public fetch function
# ---------------------------------------------------------------------------


async def fetch_url(
    url: str,
    *,
    client: httpx.AsyncClient,
    timeout: float,
) -> FetchResult:
    """Fetch a single URL using httpx.

    Performs the following steps in order:

    1. **HTTP GET**: sends a ``GET`` request with a browser-like user-agent,
       following redirects.
    2. **HTTP error status**: 4xx/5xx responses are treated as failures.
    3. **Binary content-type**: returns an error result for PDFs, images, etc.
    4. **Shell detection**: sets ``needs_browser=True`` if the response body
       looks client-rendered.

    Every failure also sets ``needs_browser=True``: a failed lightweight GET
    is exactly the case the browser fallback exists for.

    Args:
        url: Target URL to fetch.
        client: Shared :class:`httpx.AsyncClient` instance.
        timeout: Request timeout in seconds.

    Returns:
        A :class:`FetchResult` instance.  Never raises for network errors.
    """
    try:
        response = await client.get(
            url,
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT, **DEFAULT_HEADERS},
        )
    except httpx.TimeoutException:
        logger.warning("scraper: timeout fetching %s", url)
        return FetchResult(
            html=None, status_code=None, final_url=url, error="timeout", needs_browser=True
        )
    except httpx.TooManyRedirects:
        logger.warning("scraper: too many redirects for %s", url)
        return FetchResult(
            html=None,
            status_code=None,
            final_url=url,
            error="too many redirects",
            needs_browser=True,
        )
    except (httpx.RequestError, httpx.InvalidURL) as exc:
        logger.warning("scraper: request error for %s: %s", url, exc)
        return FetchResult(
            html=None,
            status_code=None,
            final_url=url,
            error=f"request error: {exc}",
            needs_browser=True,
        )

    final_url = str(response.url)

    if response.status_code >= 400:
        logger.info("scraper: HTTP %d for %s", response.status_code, url)
        return FetchResult(
            html=None,
            status_code=response.status_code,
            final_url=final_url,
            error=f"HTTP {response.status_code}",
            needs_browser=True,
        )

    content_type = response.headers.get("content-type", "")
    if _is_binary_content_type(content_type):
        logger.info("scraper: binary content-type '%s' for %s", content_type, url)
        return FetchResult(
            html=None,
            status_code=response.status_code,
            final_url=final_url,
            error=f"binary content-type: {content_type}",
            needs_browser=True,
        )

    html = response.text

    needs_browser = _is_js_shell(html)
    if needs_browser:
        logger.info(
            "scraper: client-rendered shell detected for %s (body_len=%d)",
            url,
            len(html.strip()),
        )

    return FetchResult(
        html=html,
        status_code=response.status_code,
        final_url=final_url,
        error=None,
        needs_browser=needs_browser,
    )
