"""Configuration package for the news scanner.

Re-exports the settings symbols so that callers can write::

    from news_scanner.config import get_settings
"""

from __future__ import annotations

from news_scanner.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
