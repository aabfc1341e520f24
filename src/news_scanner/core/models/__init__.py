"""SQLAlchemy ORM models.

Importing this package registers every table on ``Base.metadata``.
"""

from __future__ import annotations

from news_scanner.core.models.articles import Article
from news_scanner.core.models.base import Base, TimestampMixin
from news_scanner.core.models.scan_results import ScanResult
from news_scanner.core.models.sources import NewsSource

__all__ = [
    "Article",
    "Base",
    "NewsSource",
    "ScanResult",
    "TimestampMixin",
]
