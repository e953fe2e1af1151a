"""Robust statistics over extracted values."""

import logging
import math
import statistics
from collections import Counter
from typing import Iterable, List, Optional, Sequence, Tuple

from appraisal2json.models import AggregatedRow, ExtractedRecord, FieldStats, SummaryStats
from appraisal2json.sections import extract_sections, term_value
from appraisal2json.values import closest_value, context_snippet

logger = logging.getLogger(__name__)

MIN_VALUES_FOR_OUTLIERS = 5
IQR_FACTOR = 1.5
DEFAULT_TOP_N = 10
PARTY_A_SUFFIX = "_party_a"
PARTY_B_SUFFIX = "_party_b"


def _clean(values: Iterable) -> List[float]:
    cleaned = []
    for value in values:
        if value is None or isinstance(value, bool):
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(number) and number > 0:
            cleaned.append(number)
    return cleaned


def iqr_bounds(values: Sequence[float]) -> Tuple[float, float]:
    """Tukey fences using linearly interpolated quartiles."""
    q1, _, q3 = statistics.quantiles(values, n=4, method="inclusive")
    iqr = q3 - q1
    return q1 - IQR_FACTOR * iqr, q3 + IQR_FACTOR * iqr


def field_stats(values: Iterable) -> FieldStats:
    """Mean/min/max after outlier removal; median over every valid value.

    Outliers are only removed when at least five valid values exist.
    Non-numeric, non-finite and non-positive values are ignored.
    """
    ordered = sorted(_clean(values))
    if not ordered:
        return FieldStats()

    kept = ordered
    if len(ordered) >= MIN_VALUES_FOR_OUTLIERS:
        low, high = iqr_bounds(ordered)
        kept = [v for v in ordered if low <= v <= high]

    return FieldStats(
        count=len(kept),
        mean=sum(kept) / len(kept),
        median=statistics.median(ordered),
        min=kept[0],
        max=kept[-1],
        outliers_removed=len(ordered) - len(kept),
    )


def summarize(
    rows: Sequence[AggregatedRow],
    fields: Sequence[str],
    preview_limit: Optional[int] = None,
    top_n: int = DEFAULT_TOP_N,
) -> SummaryStats:
    """Summarize the whole matching set.

    Args:
        rows: Every matching row, not just the ones to display
        fields: Numeric fields to compute statistics for
        preview_limit: Rows to include in the preview; None for all
        top_n: How many actors to list

    Returns:
        SummaryStats whose counts and statistics ignore the preview limit
    """
    rows = list(rows or [])
    stats = SummaryStats(total=len(rows))

    for field in fields:
        stats.fields[field] = field_stats(row.values.get(field) for row in rows)

    actors = Counter(row.actor for row in rows if row.actor)
    stats.top_actors = actors.most_common(top_n)

    by_year = Counter(row.year for row in rows if row.year)
    stats.by_year = dict(by_year)

    preview = rows if preview_limit is None else rows[:max(0, preview_limit)]
    stats.preview = list(preview)
    stats.shown = len(preview)
    return stats


def _location(record: ExtractedRecord) -> Optional[str]:
    parts = []
    if record.committee:
        parts.append(record.committee)
    if record.block:
        parts.append(f"גוש {record.block}" + (f" חלקה {record.plot}" if record.plot else ""))
    return ", ".join(parts) or None


def row_fields(field: str) -> List[str]:
    """Value columns of a row: the ruling under ``field``, then each party's claim."""
    return [field, field + PARTY_A_SUFFIX, field + PARTY_B_SUFFIX]


def build_rows(
    documents: Iterable[Tuple[ExtractedRecord, str]],
    search_term: str,
    field: str,
    window_size: int = 150,
) -> List[AggregatedRow]:
    """One row per document whose text holds a value for ``search_term``.

    The value is looked up in the party A, party B and ruling sections
    first. Only when none of them yields one is the whole text searched,
    and that value is reported as the ruling.

    Args:
        documents: (record, full text) pairs
        search_term: Phrase to look for, e.g. "מקדם דחייה"
        field: Name under which the ruling value is stored; party values
            get the ``_party_a`` and ``_party_b`` suffixes
        window_size: Characters after the term to search in the full text

    Returns:
        Rows for documents that yielded a value; the rest are skipped
    """
    rows = []
    skipped = 0
    for record, text in documents:
        text = text or ""
        sections = extract_sections(record.id, text)
        party_a = term_value(sections.party_a, search_term)
        party_b = term_value(sections.party_b, search_term)
        ruling = term_value(sections.ruling, search_term)
        if party_a is None and party_b is None and ruling is None:
            ruling = closest_value(text, search_term, window_size=window_size)

        found = {
            name: obs
            for name, obs in zip(row_fields(field), (ruling, party_a, party_b))
            if obs is not None
        }
        if not found:
            skipped += 1
            continue

        main = next(iter(found.values()))
        rows.append(AggregatedRow(
            decision_id=record.id,
            title=record.title,
            url=record.url,
            actor=record.actor,
            location=_location(record),
            year=record.year,
            values={name: obs.value for name, obs in found.items()},
            snippet=context_snippet(text, search_term, main.value) or main.context or "",
        ))
    if skipped:
        logger.info("No value for %r in %d of %d documents", search_term, skipped, skipped + len(rows))
    return rows
