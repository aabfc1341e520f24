"""SQLAlchemy ORM model for monitored sources."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from news_scanner.core.models.base import Base, TimestampMixin


class NewsSource(TimestampMixin, Base):
    """A monitored origin.

    Attributes:
        id: Autoincrement primary key.
        name: Human label.
        url: Origin URL.  Unique across all sources.
        kind: ``"site"``, ``"social-feed-a"`` or ``"social-feed-b"``.
        is_active: Whether the scheduler picks the source up.
        scan_frequency: Cadence in minutes (>= 5).
        max_results: Fragments kept per scan (1-10).
        last_scanned: Start time of the last completed scan.  Written only
            by the scheduler.
    """

    __tablename__ = "sources"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    url: Mapped[str] = mapped_column(sa.String(2048), nullable=False, unique=True)
    kind: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, server_default=sa.true()
    )
    scan_frequency: Mapped[int] = mapped_column(
        sa.Integer, nullable=False, server_default=sa.text("30")
    )
    max_results: Mapped[int] = mapped_column(
        sa.Integer, nullable=False, server_default=sa.text("3")
    )
    last_scanned: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<NewsSource id={self.id} kind={self.kind!r} url={self.url!r}>"
