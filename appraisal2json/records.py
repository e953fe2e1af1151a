"""Turn raw strategy output into canonical decision records."""

import hashlib
from typing import Optional, Union

from appraisal2json.metadata import parse_metadata
from appraisal2json.models import ExtractedRecord, RawExtraction, SourceCategory
from appraisal2json.text import normalize_date, year_of

METADATA_FIELDS = ("block", "plot", "committee", "actor", "case_type", "decision_date")


def content_hash(title: str, url: Optional[str], source: Union[SourceCategory, str]) -> str:
    """md5 over "title|url|source"; a missing url hashes as empty."""
    source_name = source.value if isinstance(source, SourceCategory) else str(source)
    return hashlib.md5(f"{title}|{url or ''}|{source_name}".encode("utf-8")).hexdigest()


def record_id(source: Union[SourceCategory, str], digest: str) -> str:
    source_name = source.value if isinstance(source, SourceCategory) else str(source)
    return f"{source_name}-{digest[:12]}"


def build_record(
    raw: RawExtraction,
    source: Union[SourceCategory, str],
    page_index: Optional[int] = None,
) -> ExtractedRecord:
    """Build the record for one raw extraction.

    Fields carried by a stale extraction win over freshly parsed ones; the
    title parse fills whatever is left. The same input always yields the
    same record, id included.
    """
    source = SourceCategory(source)
    meta = parse_metadata(raw.title, source).model_dump()
    for field in METADATA_FIELDS:
        carried = raw.fields.get(field)
        if carried:
            meta[field] = carried

    publish_date = (normalize_date(raw.publish_date) or raw.publish_date) if raw.publish_date else None
    digest = content_hash(raw.title, raw.url, source)

    return ExtractedRecord(
        id=record_id(source, digest),
        source=source,
        title=raw.title,
        url=raw.url,
        publish_date=publish_date,
        year=year_of(meta["decision_date"]) or year_of(publish_date),
        content_hash=digest,
        page_index=page_index,
        stale=raw.stale,
        **meta,
    )
