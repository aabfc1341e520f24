"""SQLAlchemy ORM model for ingested articles.

``url`` carries the uniqueness constraint that makes ingestion idempotent:
the store inserts with ``ON CONFLICT (url) DO NOTHING`` and reports a
skipped row as already seen.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from news_scanner.core.models.base import Base


class Article(Base):
    """The durable form of an annotated fragment."""

    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    source_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("sources.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(sa.Text, nullable=False)
    content: Mapped[str] = mapped_column(sa.Text, nullable=False)
    url: Mapped[str] = mapped_column(sa.String(2048), nullable=False, unique=True)
    published_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False
    )
    author: Mapped[Optional[str]] = mapped_column(sa.String(300), nullable=True)
    summary: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    sentiment: Mapped[Optional[str]] = mapped_column(sa.String(16), nullable=True)
    # Comma-joined, at most five entries.
    keywords: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )
