"""Markup sanitization and article-container extraction for ``site`` sources.

The ``site`` strategy parses the page once with BeautifulSoup, picks the
first container selector that matches anything, and turns each container
into a :class:`~news_scanner.core.types.RawFragment` using ordered title,
content, link and ``<time>`` heuristics.  Containers without a usable title
or with too little body text are dropped; finding nothing is a soft miss,
not an error.

Every string placed into a fragment goes through :func:`sanitize_text`.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from news_scanner.core.types import RawFragment
from news_scanner.scraper.config import (
    ARTICLE_CONTAINER_SELECTORS,
    BODY_TARGET_LENGTH,
    CONTENT_SELECTORS,
    MAX_BODY_LENGTH,
    MIN_BODY_LENGTH,
    MIN_CONTENT_ELEMENT_LENGTH,
    MIN_TITLE_LENGTH,
    TITLE_SELECTORS,
)

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Sanitization
# ---------------------------------------------------------------------------


def sanitize_text(text: str | None) -> str:
    """Strip every tag and attribute from ``text`` and collapse whitespace.

    Text pulled from a DOM node can still carry markup once entities are
    decoded (``&lt;script&gt;`` becomes ``<script>``), so the value is parsed
    again and only its text nodes are kept.  NUL bytes are removed.

    Args:
        text: Possibly marked-up text.

    Returns:
        Plain text, or ``""`` for ``None``.
    """
    if not text:
        return ""
    if "<" in text:
        soup = BeautifulSoup(text, "html.parser")
        for tag in soup(["script", "style"]):
            tag.decompose()
        text = soup.get_text(" ")
    return _WHITESPACE_RE.sub(" ", text.replace("\x00", "")).strip()


def element_text(element: Tag) -> str:
    """Return the visible, whitespace-collapsed text of a DOM element."""
    return _WHITESPACE_RE.sub(" ", element.get_text(" ", strip=True)).strip()


def parse_datetime(value: str | None) -> datetime | None:
    """Parse a machine-readable ``datetime`` attribute into aware UTC.

    Accepts ISO 8601 with a trailing ``Z``.  Naive values are taken as UTC.
    Returns ``None`` when the value cannot be parsed.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def resolve_href(href: str | None, base_url: str) -> str | None:
    """Resolve an absolute or site-relative ``href`` against ``base_url``.

    Only ``http(s)://``, protocol-relative ``//`` and root-relative ``/``
    references are accepted; fragments, ``javascript:`` and ``mailto:``
    links return ``None``.
    """
    if not href:
        return None
    href = href.strip()
    if href.startswith(("http://", "https://")):
        return href
    if href.startswith("/"):
        return urljoin(base_url, href)
    return None


# ---------------------------------------------------------------------------
# Container heuristics
# ---------------------------------------------------------------------------


def select_containers(soup: BeautifulSoup) -> list[Tag]:
    """Return the matches of the first container selector that has any."""
    for selector in ARTICLE_CONTAINER_SELECTORS:
        found = soup.select(selector)
        if found:
            logger.debug("scraper: container selector %r matched %d", selector, len(found))
            return found
    return []


def _extract_title(container: Tag) -> str:
    for selector in TITLE_SELECTORS:
        element = container.select_one(selector)
        if element is None:
            continue
        title = element_text(element)
        if len(title) > MIN_TITLE_LENGTH:
            return title
    return ""


def _extract_body(container: Tag) -> str:
    parts: list[str] = []
    length = 0
    for selector in CONTENT_SELECTORS:
        for element in container.select(selector):
            text = element_text(element)
            if len(text) > MIN_CONTENT_ELEMENT_LENGTH:
                parts.append(text)
                length += len(text) + 1
        if length > BODY_TARGET_LENGTH:
            break
    body = " ".join(parts) if parts else element_text(container)
    return body[:MAX_BODY_LENGTH]


def _extract_url(container: Tag, source_url: str, synthetic_key: str) -> str:
    for anchor in container.select("a[href]"):
        resolved = resolve_href(anchor.get("href"), source_url)
        if resolved:
            return resolved
    return f"{source_url}#article-{synthetic_key}"


def _extract_published(container: Tag, fallback: datetime) -> datetime:
    time_el = container.select_one("time[datetime]")
    if time_el is not None:
        parsed = parse_datetime(time_el.get("datetime"))
        if parsed is not None:
            return parsed
    return fallback


def extract_site_fragments(
    html: str,
    source_url: str,
    *,
    max_results: int,
    extracted_at: datetime,
) -> list[RawFragment]:
    """Extract article fragments from a listing page.

    Args:
        html: Page markup (raw HTTP body or rendered DOM).
        source_url: The source's origin URL; relative links resolve against it.
        max_results: Stop after this many accepted containers.
        extracted_at: Extraction time.  Used as the published timestamp when a
            container has no ``<time datetime>`` and to key synthetic URLs.

    Returns:
        Fragments in document order, at most ``max_results``.  Empty when
        nothing qualifies.
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()

    stamp = int(extracted_at.timestamp() * 1000)
    fragments: list[RawFragment] = []
    for index, container in enumerate(select_containers(soup)):
        if len(fragments) >= max_results:
            break
        title = sanitize_text(_extract_title(container))
        body = sanitize_text(_extract_body(container))
        if not title or len(body) <= MIN_BODY_LENGTH:
            continue
        fragments.append(
            RawFragment(
                title=title,
                body=body,
                url=_extract_url(container, source_url, f"{stamp}-{index}"),
                published_at=_extract_published(container, extracted_at),
            )
        )
    return fragments
