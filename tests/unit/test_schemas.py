"""Unit tests for source registration schemas."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from news_scanner.core.schemas.sources import SourceCreate, SourceUpdate
from news_scanner.core.types import SourceKind


class TestSourceCreate:
    def test_defaults(self) -> None:
        payload = SourceCreate(name="Example", url="https://news.example.com/", kind="site")
        assert payload.kind is SourceKind.SITE
        assert payload.cadence_minutes == 30
        assert payload.max_results == 3
        assert payload.is_active is True

    @pytest.mark.parametrize(("given", "expected"), [(1, 5), (5, 5), (90, 90)])
    def test_cadence_clamped_to_minimum(self, given: int, expected: int) -> None:
        payload = SourceCreate(
            name="Example", url="https://news.example.com/", kind="site", cadence_minutes=given
        )
        assert payload.cadence_minutes == expected

    @pytest.mark.parametrize(("given", "expected"), [(0, 1), (-4, 1), (7, 7), (50, 10)])
    def test_cap_clamped_to_range(self, given: int, expected: int) -> None:
        payload = SourceCreate(
            name="Example", url="https://news.example.com/", kind="site", max_results=given
        )
        assert payload.max_results == expected

    def test_unknown_kind_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SourceCreate(name="Example", url="https://news.example.com/", kind="newsletter")

    @pytest.mark.parametrize("url", ["ftp://files.example.com/", "news.example.com", ""])
    def test_non_http_url_rejected(self, url: str) -> None:
        with pytest.raises(ValidationError):
            SourceCreate(name="Example", url=url, kind="site")


class TestSourceUpdate:
    def test_changes_only_include_set_fields(self) -> None:
        update = SourceUpdate(max_results=20, is_active=False)
        assert update.changes() == {"max_results": 10, "is_active": False}

    def test_empty_update(self) -> None:
        assert SourceUpdate().changes() == {}
