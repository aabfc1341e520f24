"""Tests for the ingestion gate: idempotent inserts and scan outcomes."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from news_scanner.core.exceptions import StorageError
from news_scanner.core.schemas.sources import SourceCreate
from news_scanner.core.store import InMemoryStore
from news_scanner.core.types import AnnotatedFragment, InsertResult, RawFragment, SourceKind
from news_scanner.ingestion.gate import IngestionGate

from tests.conftest import FIXED_NOW, LONG_BODY


def _annotated(url: str) -> AnnotatedFragment:
    return AnnotatedFragment(
        fragment=RawFragment(title="Headline", body=LONG_BODY, url=url, published_at=FIXED_NOW),
        summary="summary",
        sentiment="neutral",
        keywords=["council"],
    )


async def _store_with_source() -> InMemoryStore:
    store = InMemoryStore()
    await store.add_source(
        SourceCreate(name="Example", url="https://news.example.com/", kind=SourceKind.SITE)
    )
    return store


@pytest.mark.asyncio
class TestIngestionGate:
    async def test_new_url_inserted_and_counted(self) -> None:
        store = await _store_with_source()
        gate = IngestionGate(store)
        tally = gate.begin(1, FIXED_NOW)

        result = await gate.ingest(tally, _annotated("https://news.example.com/a"))

        assert result is InsertResult.INSERTED
        assert tally.fragments_processed == 1
        [article] = await store.list_articles()
        assert article.keywords == ["council"]
        assert article.source_id == 1

    async def test_duplicate_url_is_not_an_error(self) -> None:
        store = await _store_with_source()
        gate = IngestionGate(store)
        first = gate.begin(1, FIXED_NOW)
        await gate.ingest(first, _annotated("https://news.example.com/a"))

        second = gate.begin(1, FIXED_NOW)
        result = await gate.ingest(second, _annotated("https://news.example.com/a"))

        assert result is InsertResult.ALREADY_EXISTS
        assert second.fragments_processed == 0
        assert second.errors == []
        assert len(await store.list_articles()) == 1

    async def test_storage_error_isolated_per_fragment(self) -> None:
        store = await _store_with_source()
        real_insert = store.insert_article_if_absent

        async def flaky(record):
            if record.url.endswith("/b"):
                raise StorageError("disk full")
            return await real_insert(record)

        store.insert_article_if_absent = flaky  # type: ignore[method-assign]
        gate = IngestionGate(store)
        tally = gate.begin(1, FIXED_NOW)
        for suffix in ("a", "b", "c"):
            await gate.ingest(tally, _annotated(f"https://news.example.com/{suffix}"))

        assert tally.fragments_processed == 2
        assert len(tally.errors) == 1
        assert "disk full" in tally.errors[0]

    async def test_finish_advances_last_scanned_and_writes_outcome_once(self) -> None:
        store = await _store_with_source()
        gate = IngestionGate(store)
        tally = gate.begin(1, FIXED_NOW)
        tally.fragments_found = 2
        await gate.ingest(tally, _annotated("https://news.example.com/a"))

        outcome = await gate.finish(tally)

        assert (await store.get_source(1)).last_scanned == FIXED_NOW
        assert await store.list_scan_outcomes(1) == [outcome]
        assert outcome.fragments_found == 2
        assert outcome.fragments_processed == 1
        assert outcome.errors is None
        assert outcome.succeeded

    async def test_finish_with_errors_still_advances(self) -> None:
        store = await _store_with_source()
        gate = IngestionGate(store)
        tally = gate.begin(1, FIXED_NOW)
        tally.record_error("one insert failed")
        tally.record_error("another insert failed")

        outcome = await gate.finish(tally)

        assert outcome.errors == "one insert failed; another insert failed"
        assert (await store.get_source(1)).last_scanned == FIXED_NOW

    async def test_finish_without_advancing(self) -> None:
        store = await _store_with_source()
        gate = IngestionGate(store)
        tally = gate.begin(1, FIXED_NOW)
        tally.record_error("timeout")

        await gate.finish(tally, advance_last_scanned=False)

        assert (await store.get_source(1)).last_scanned is None
        assert len(await store.list_scan_outcomes(1)) == 1

    async def test_outcome_write_failure_is_swallowed(self) -> None:
        store = await _store_with_source()
        store.record_scan_outcome = AsyncMock(side_effect=StorageError("db gone"))  # type: ignore[method-assign]
        gate = IngestionGate(store)

        outcome = await gate.finish(gate.begin(1, FIXED_NOW))

        assert outcome.source_id == 1
        store.record_scan_outcome.assert_awaited_once()
