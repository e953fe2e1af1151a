"""Tests for JSON and HTML output."""

import json

from appraisal2json.aggregate import summarize
from appraisal2json.models import AggregatedRow
from appraisal2json.output import OutputGenerator

from tests.conftest import DECISIVE_TITLE, make_record


def test_write_records(tmp_path):
    record = make_record(DECISIVE_TITLE, page_index=0)
    path = OutputGenerator(str(tmp_path / "out")).write_records([record], name="page0")

    data = json.loads(path.read_text(encoding="utf-8"))
    assert path.name == "page0.json"
    assert data[0]["id"] == record.id
    assert data[0]["source"] == "decisive_appraiser"


def test_html_report_is_rtl_and_escaped(tmp_path):
    rows = [AggregatedRow(decision_id="d1", title="<b>כותרת</b>", actor="כהן", year="2023",
                          values={"coef": 0.85}, snippet="מקדם 0.85")]
    summary = summarize(rows, ["coef"])
    gen = OutputGenerator(str(tmp_path))

    html = gen.generate_html_report(summary, title="מקדם דחייה").read_text(encoding="utf-8")

    assert 'dir="rtl"' in html
    assert "&lt;b&gt;כותרת&lt;/b&gt;" in html
    assert "0.85" in html
    summary_data = json.loads(gen.write_summary_json(summary).read_text(encoding="utf-8"))
    assert summary_data["total"] == 1
