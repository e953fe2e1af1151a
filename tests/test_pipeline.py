"""Tests for page-by-page ingestion."""

from appraisal2json.errors import DocumentFetchError
from appraisal2json.extractor import StrategyChain
from appraisal2json.models import SourceCategory
from appraisal2json.pipeline import ingest_source, records_for_page
from appraisal2json.store import DocumentSource, InMemoryRecordStore

from tests.conftest import card_page, garbage_page

SOURCE = SourceCategory.DECISIVE_APPRAISER


class FakeDocuments(DocumentSource):
    def __init__(self, pages):
        self.pages = pages
        self.requested = []

    def fetch_document(self, source, page_index):
        self.requested.append(page_index)
        if page_index not in self.pages:
            raise DocumentFetchError(source.value, page_index, "not found")
        return self.pages[page_index]


def two_pages():
    return {
        0: card_page([
            "הכרעת שמאי מכריע מיום 01-01-2023 בעניין היטל השבחה נ חולון ג 7001 ח 1 - לוי",
            "הכרעת שמאי מכריע מיום 02-01-2023 בעניין היטל השבחה נ חולון ג 7001 ח 2 - לוי",
        ]),
        1: card_page([
            "הכרעת שמאי מכריע מיום 03-01-2023 בעניין פיצויים נ בת ים ג 7100 ח 5 - כהן",
        ]),
    }


class TestIngestSource:
    def test_stops_after_three_empty_pages(self):
        documents = FakeDocuments(two_pages())
        store = InMemoryRecordStore()
        sleeps = []

        report = ingest_source(SOURCE, documents, StrategyChain(store=store), store,
                               delay_seconds=0.5, sleep=sleeps.append)

        assert documents.requested == [0, 1, 2, 3, 4]
        assert report.records_found == 3
        assert report.records_inserted == 3
        assert report.pages_failed == 3
        assert report.strategy_counts == {"css_primary": 2}
        assert report.stopped_reason == "no results after 3 empty pages"
        assert sleeps == [0.5] * 4
        assert len(store) == 3

    def test_reingestion_is_idempotent(self):
        store = InMemoryRecordStore()
        ingest_source(SOURCE, FakeDocuments(two_pages()), StrategyChain(store=store), store, delay_seconds=0)

        report = ingest_source(SOURCE, FakeDocuments(two_pages()), StrategyChain(store=store), store, delay_seconds=0)

        assert report.records_found == 3
        assert report.records_inserted == 0
        assert len(store) == 3

    def test_bad_page_does_not_abort_run(self):
        pages = two_pages()
        pages[1], pages[2] = garbage_page(), pages[1]
        store = InMemoryRecordStore()

        report = ingest_source(SOURCE, FakeDocuments(pages), StrategyChain(store=store), store, delay_seconds=0)

        assert report.records_inserted == 3
        assert any(e.startswith("page 1:") for e in report.errors)

    def test_unexpected_source_error_is_contained(self):
        class DroppingConnection(FakeDocuments):
            def fetch_document(self, source, page_index):
                if page_index in (1, 2):
                    self.requested.append(page_index)
                    raise ConnectionError("connection reset by peer")
                return super().fetch_document(source, page_index)

        pages = two_pages()
        pages[3] = pages.pop(1)
        documents = DroppingConnection(pages)
        store = InMemoryRecordStore()

        report = ingest_source(SOURCE, documents, StrategyChain(store=store), store, delay_seconds=0)

        assert report.pages_failed == 5
        assert report.records_inserted == 3
        assert "page 1: ConnectionError: connection reset by peer" in report.errors

    def test_max_pages(self):
        store = InMemoryRecordStore()
        report = ingest_source(SOURCE, FakeDocuments(two_pages()), StrategyChain(), store,
                               max_pages=1, delay_seconds=0)

        assert report.pages_attempted == 1
        assert report.records_inserted == 2
        assert report.stopped_reason == "reached max_pages (1)"

    def test_records_carry_page_index(self):
        store = InMemoryRecordStore()
        ingest_source(SOURCE, FakeDocuments(two_pages()), StrategyChain(), store, delay_seconds=0)
        assert sorted(r.page_index for r in store.query()) == [0, 0, 1]

    def test_health_alert_during_outage(self):
        store = InMemoryRecordStore()
        chain = StrategyChain(store=store)
        outage = {page: garbage_page() for page in range(3)}
        ingest_source(SOURCE, FakeDocuments(outage), chain, store, delay_seconds=0)
        assert chain.health.alerted
        assert len(chain.health.alerts) == 1


def test_records_for_page():
    records = records_for_page(StrategyChain(), two_pages()[1], SOURCE, 1)
    assert len(records) == 1
    assert records[0].committee == "בת ים"
    assert records[0].block == "7100"
