"""Tests for record building."""

import hashlib

from appraisal2json.models import RawExtraction, SourceCategory
from appraisal2json.records import build_record, content_hash

from tests.conftest import DECISIVE_TITLE

URL = "https://free-justice.openapi.gov.il/decisions/1.pdf"


class TestBuildRecord:
    def test_id_derived_from_content_hash(self):
        raw = RawExtraction(title=DECISIVE_TITLE, url=URL, strategy="css_primary")
        record = build_record(raw, SourceCategory.DECISIVE_APPRAISER, 0)

        expected = hashlib.md5(f"{DECISIVE_TITLE}|{URL}|decisive_appraiser".encode("utf-8")).hexdigest()
        assert record.content_hash == expected
        assert record.id == f"decisive_appraiser-{expected[:12]}"
        assert record.page_index == 0

    def test_deterministic(self):
        raw = RawExtraction(title=DECISIVE_TITLE, url=URL, strategy="css_primary")
        assert build_record(raw, "decisive_appraiser") == build_record(raw, SourceCategory.DECISIVE_APPRAISER)

    def test_source_changes_id(self):
        raw = RawExtraction(title=DECISIVE_TITLE, url=URL, strategy="css_primary")
        a = build_record(raw, SourceCategory.DECISIVE_APPRAISER)
        b = build_record(raw, SourceCategory.APPEALS_BOARD)
        assert a.id != b.id

    def test_missing_url_hashes_as_empty(self):
        assert content_hash("t", None, "appeals_board") == hashlib.md5(b"t||appeals_board").hexdigest()

    def test_metadata_and_year_from_decision_date(self):
        raw = RawExtraction(title=DECISIVE_TITLE, publish_date="20.03.2024", strategy="css_primary")
        record = build_record(raw, SourceCategory.DECISIVE_APPRAISER)

        assert record.block == "6638"
        assert record.actor == "כהן יוסי"
        assert record.decision_date == "15-03-2023"
        assert record.publish_date == "20-03-2024"
        assert record.year == "2023"

    def test_year_falls_back_to_publish_date(self):
        raw = RawExtraction(title="ג 1234 ח 56", publish_date="01/02/2021", strategy="regex_fallback")
        record = build_record(raw, SourceCategory.APPEALS_COMMITTEE)
        assert record.year == "2021"

    def test_stale_fields_take_precedence(self):
        raw = RawExtraction(
            title="ג 1234 ח 56",
            strategy="last_known_good",
            quality="stale",
            stale=True,
            fields={"committee": "נתניה", "block": "999"},
        )
        record = build_record(raw, SourceCategory.APPEALS_COMMITTEE, 5)

        assert record.stale is True
        assert record.committee == "נתניה"
        assert record.block == "999"
        assert record.plot == "56"
