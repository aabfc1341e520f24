"""Constants and tuning parameters for the source extractor.

Timeouts and delays that operators may want to tune live in
:class:`~news_scanner.config.settings.Settings`; the values here are the
structural heuristics, which change only with the markup they target.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

#: Browser-like user-agent sent with the lightweight GET and set on every
#: browser page.  Several target sites serve an empty shell to obvious bots.
USER_AGENT: str = (
    "Mozilla/5.0 (X11; Linux x86_64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

#: Extra request headers sent with the lightweight GET.
DEFAULT_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

#: Content-Type prefixes that indicate binary/non-text resources.
BINARY_CONTENT_TYPES: frozenset[str] = frozenset(
    {
        "application/pdf",
        "application/zip",
        "application/octet-stream",
        "image/",
        "video/",
        "audio/",
        "font/",
    }
)

# ---------------------------------------------------------------------------
# Client-rendered shell detection
# ---------------------------------------------------------------------------

#: Raw markup shorter than this (stripped characters) is always a shell.
JS_SHELL_BODY_THRESHOLD: int = 500

#: Visible text (scripts and styles removed) shorter than this marks a shell.
JS_SHELL_TEXT_THRESHOLD: int = 200

#: Share of ``<script>`` tags among all tags above which a page counts as
#: script-dominated ...
JS_SHELL_SCRIPT_RATIO: float = 0.3

#: ... provided its visible text is also below this length.
JS_SHELL_SCRIPT_TEXT_LIMIT: int = 2000

#: Mount points that SPA frameworks leave empty until JavaScript runs.
EMPTY_CONTENT_MARKERS: tuple[str, ...] = ("#root", "#app", "#__next", "#__nuxt")

# ---------------------------------------------------------------------------
# Browser
# ---------------------------------------------------------------------------

#: Chromium flags for containerised hosts.
BROWSER_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--window-size=1920,1080",
)

BROWSER_VIEWPORT: dict[str, int] = {"width": 1920, "height": 1080}

# ---------------------------------------------------------------------------
# ``site`` container heuristics (ordered; first selector with matches wins)
# ---------------------------------------------------------------------------

ARTICLE_CONTAINER_SELECTORS: tuple[str, ...] = ("article", ".post", ".news-item", ".entry")

TITLE_SELECTORS: tuple[str, ...] = ("h1", "h2", "h3", ".title", ".headline")

CONTENT_SELECTORS: tuple[str, ...] = (".content", ".post-content", ".description", "p")

#: A title must be longer than this to be accepted.
MIN_TITLE_LENGTH: int = 10

#: A content element must be longer than this to contribute to the body.
MIN_CONTENT_ELEMENT_LENGTH: int = 50

#: Stop accumulating content selectors once the body is longer than this.
BODY_TARGET_LENGTH: int = 200

#: Containers whose body is not longer than this are discarded.
MIN_BODY_LENGTH: int = 100

#: Bodies are truncated to this many characters.
MAX_BODY_LENGTH: int = 2000

# ---------------------------------------------------------------------------
# Social feed heuristics
# ---------------------------------------------------------------------------

#: URL fragments that reveal a login wall after navigation.
LOGIN_WALL_PATTERNS: tuple[str, ...] = ("/login", "login.php", "/i/flow/login", "/checkpoint")

FEED_A_POST_SELECTOR: str = '[data-testid="tweet"]'
FEED_A_TEXT_SELECTORS: tuple[str, ...] = ('[data-testid="tweetText"]', "div[lang]")
FEED_A_AUTHOR_SELECTORS: tuple[str, ...] = ('[data-testid="User-Name"] span',)
FEED_A_PERMALINK_SELECTOR: str = 'a[href*="/status/"]'
FEED_A_MIN_TEXT_LENGTH: int = 10

FEED_B_POST_SELECTOR: str = '[role="article"], div[data-ft]'
FEED_B_TEXT_SELECTORS: tuple[str, ...] = (
    '[data-ad-preview="message"]',
    ".userContent",
    'span[dir="auto"]',
)
FEED_B_AUTHOR_SELECTORS: tuple[str, ...] = ("h2 strong", "h3 strong", "strong a", "h3 a")
FEED_B_PERMALINK_SELECTOR: str = (
    'a[href*="/posts/"], a[href*="story_fbid"], a[href*="/permalink/"]'
)
FEED_B_MIN_TEXT_LENGTH: int = 20

#: Length of the body prefix used for a synthesized post title.
SYNTH_TITLE_PREFIX_LENGTH: int = 50
