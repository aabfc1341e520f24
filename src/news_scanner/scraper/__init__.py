"""Content extraction: HTTP fetch, browser rendering and per-kind strategies."""

from news_scanner.scraper.browser import BrowserEngine
from news_scanner.scraper.extractor import Extractor, ExtractorOptions, TestScanReport

__all__ = ["BrowserEngine", "Extractor", "ExtractorOptions", "TestScanReport"]
