"""Locate numeric values that follow a search term inside long documents."""

import math
import re
from typing import Dict, List, Optional, Tuple

from appraisal2json.models import ValueObservation
from appraisal2json.text import collapse_whitespace, date_spans, normalize_text

CHARS_PER_PAGE = 3000
PAGE_BREAK = "\f"

NUMBER_TOKEN = re.compile(r"\d+(?:[.,]\d+)*")
# Letter runs of any script; digits and underscore excluded.
WORD = re.compile(r"[^\W\d_]+")
# Three or more words between the term and the number means the number sits in
# a sentence or a table header, not in an assignment like "מקדם: 0.85".
MAX_WORDS_BEFORE_VALUE = 3

# Plausible ranges keyed by a keyword contained in the search term.
VALUE_RANGES: Dict[str, Tuple[float, float]] = {
    "מקדם": (0.01, 2.5),
    "coefficient": (0.01, 2.5),
    "אחוז": (0.0, 100.0),
    "שיעור": (0.0, 100.0),
    "percent": (0.0, 100.0),
    "rate": (0.0, 100.0),
}

_YEAR_COUNT = re.compile(r"^\s*שני[םה]?(?![א-ת])")
_PERCENT_SUFFIX = re.compile(r"^\s*%")
_SPLIT_THOUSANDS = re.compile(r"(?<![\d.])(\d{1,3})(?:\s+,\s*|\s*,\s+)(\d{3})(?![\d.])")
# Characters read past the window end so a date cut by the window is still masked
DATE_LOOKAHEAD = 10


def parse_locale_number(raw: str) -> Optional[float]:
    """Parse a number written with Israeli/PDF conventions.

    A comma followed by exactly three digits groups thousands ("1,500" is
    1500), a comma followed by one or two digits is a decimal separator
    ("0,85" is 0.85) and a period is always decimal ("1.275" is 1.275).
    Anything else returns None.
    """
    if not raw:
        return None
    s = raw.strip()
    if re.fullmatch(r"\d{1,3}(?:,\d{3})+(?:\.\d+)?", s):
        return float(s.replace(",", ""))
    if re.fullmatch(r"\d+,\d{1,2}", s):
        return float(s.replace(",", "."))
    if re.fullmatch(r"\d+(?:\.\d+)?", s):
        return float(s)
    return None


def value_range(search_term: str) -> Optional[Tuple[float, float]]:
    """Registered plausible range for the term, if any keyword matches."""
    lowered = search_term.lower()
    for keyword, bounds in VALUE_RANGES.items():
        if keyword in lowered:
            return bounds
    return None


def estimate_page(offset: int, text: str) -> int:
    """Best guess at the 1-based page an offset falls on.

    Uses form-feed page breaks when the text has them, otherwise assumes a
    fixed number of characters per page.
    """
    total = len(text)
    if offset < 0 or total <= 0:
        return 1
    if PAGE_BREAK in text:
        return text.count(PAGE_BREAK, 0, offset) + 1
    pages = max(1, math.ceil(total / CHARS_PER_PAGE))
    return min(pages, max(1, math.ceil(((offset + 1) / total) * pages)))


def _tidy_window(window: str) -> str:
    # PDF text often splits a thousands group ("1 ,500" or "1, 500"). Only a
    # 1-3 digit integer followed by exactly three digits is rejoined, so lists
    # such as "0.85, 0.9" stay two numbers.
    return _SPLIT_THOUSANDS.sub(r"\1,\2", window)


def _in_spans(start: int, end: int, spans: List[Tuple[int, int]]) -> bool:
    return any(start < s_end and end > s_start for s_start, s_end in spans)


def _first_value(
    window: str,
    bounds: Optional[Tuple[float, float]],
    strict: bool = False,
    tail: str = "",
) -> Optional[Tuple[str, float, int]]:
    """First number in the window that survives every filter.

    ``tail`` is the text just past the window; it is only used to recognise
    dates and year suffixes that the window cuts in half.

    Returns (raw, value, position in window) or None.
    """
    extended = window + tail
    dates = date_spans(extended)
    for m in NUMBER_TOKEN.finditer(window):
        raw = m.group(0)
        if _in_spans(m.start(), m.end(), dates):
            continue
        after = extended[m.end():]
        if re.match(r"^[./-]\d{4}", after):
            continue
        # Cut by the window end
        if m.end() >= len(window) - 1 and re.match(r"^[.,]?\d", after):
            continue
        if strict and (_YEAR_COUNT.match(after) or _PERCENT_SUFFIX.match(after)):
            continue
        value = parse_locale_number(raw)
        if value is None or not math.isfinite(value) or value <= 0:
            continue
        if bounds and not bounds[0] <= value <= bounds[1]:
            continue
        if len(WORD.findall(window[:m.start()])) >= MAX_WORDS_BEFORE_VALUE:
            continue
        return raw, value, m.start()
    return None


def _occurrences(text: str, term: str):
    """(start, end) of every case-insensitive occurrence, overlaps included.

    Offsets refer to ``text`` itself, never to a lowercased copy whose
    length may differ.
    """
    if not term:
        return
    for m in re.finditer(f"(?=({re.escape(term)}))", text, re.IGNORECASE):
        yield m.start(1), m.end(1)


def _window_at(text: str, start: int, size: int) -> Tuple[str, str]:
    """Tidied window of ``size`` characters from ``start`` plus the raw tail after it."""
    end = start + size
    return _tidy_window(text[start:end]), text[end:end + DATE_LOOKAHEAD]


def find_value_observations(text: str, search_term: str, window_size: int = 100) -> List[ValueObservation]:
    """Scan every occurrence of ``search_term`` and keep one value per occurrence.

    Args:
        text: Full document text
        search_term: Free-text phrase, matched case-insensitively
        window_size: Characters after each occurrence to look at

    Returns:
        Observations in document order; empty when nothing qualifies
    """
    if not text or not search_term or window_size <= 0:
        return []

    bounds = value_range(search_term)
    observations: List[ValueObservation] = []
    for idx, window_start in _occurrences(text, search_term):
        window, tail = _window_at(text, window_start, window_size)
        found = _first_value(window, bounds, tail=tail)
        if found is None:
            continue
        raw, value, _ = found
        observations.append(ValueObservation(raw=raw, value=value, offset=idx, page=estimate_page(idx, text)))
    return observations


def extract_nearby_values(text: str, search_term: str, window_size: int = 100) -> List[float]:
    """Numbers that plausibly belong to ``search_term``, one per occurrence."""
    return [o.value for o in find_value_observations(text, search_term, window_size)]


def term_variants(term: str) -> List[str]:
    """Common Hebrew spelling variants of a search term.

    Handles ייה/יה (דחייה/דחיה), a truncated final ה on the last word, and a
    definite article on the last word ("מקדם דחייה" -> "מקדם הדחייה").
    """
    term = term.strip()
    variants = [term]
    if "ייה" in term:
        variants.append(term.replace("ייה", "יה"))
    elif "יה" in term:
        variants.append(term.replace("יה", "ייה"))

    words = term.split()
    if len(words) >= 2:
        last = words[-1]
        head = words[:-1]
        if re.search(r"יי?ה$", last):
            variants.append(" ".join(head + [re.sub(r"יי?ה$", "י", last)]))
        variants.append(" ".join(head + ["ה" + last]))
        if "ייה" in last:
            variants.append(" ".join(head + ["ה" + last.replace("ייה", "יה", 1)]))

    # Preserve order, drop duplicates
    return list(dict.fromkeys(variants))


def closest_value(
    text: str,
    search_term: str,
    window_size: int = 150,
    max_occurrences: Optional[int] = 20,
) -> Optional[ValueObservation]:
    """Value nearest to any occurrence of any spelling variant of the term.

    Stricter than ``find_value_observations``: year counts ("3 שנים") and
    percent-suffixed numbers are skipped too. The observation carries a
    short context around the term and the value.

    Args:
        text: Document or section text
        search_term: Phrase to look for
        window_size: Characters after each occurrence to look at
        max_occurrences: Occurrences scanned per variant; None for all
    """
    if not text or not search_term:
        return None

    text = normalize_text(text)
    bounds = value_range(search_term)
    best: Optional[Tuple[int, ValueObservation]] = None

    for variant in term_variants(search_term):
        for n, (idx, window_start) in enumerate(_occurrences(text, variant)):
            if max_occurrences is not None and n >= max_occurrences:
                break
            window, tail = _window_at(text, window_start, window_size)
            found = _first_value(window, bounds, strict=True, tail=tail)
            if found is None:
                continue
            raw, value, distance = found
            if best is not None and distance >= best[0]:
                continue
            context = collapse_whitespace(text[max(0, idx - 20):window_start + distance + len(raw) + 30])[:120]
            best = (distance, ValueObservation(
                raw=raw, value=value, offset=idx, page=estimate_page(idx, text), context=context,
            ))

    return best[1] if best else None


def context_snippet(text: str, search_term: str, value: float, width: int = 150, max_len: int = 120) -> str:
    """Short excerpt starting at the term occurrence whose window holds ``value``.

    Spelling variants of the term are tried in turn.
    """
    if not text or not search_term:
        return ""
    text = normalize_text(text)
    as_text = f"{value:g}"
    candidates = {as_text, as_text.replace(".", ",")}
    if value == int(value):
        candidates.add(f"{int(value):,}")
    for variant in term_variants(search_term):
        for idx, end in _occurrences(text, variant):
            window = text[idx:end + width]
            if any(c in window for c in candidates):
                return collapse_whitespace(window)[:max_len]
    return ""
