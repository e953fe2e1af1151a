"""Text normalization and date helpers shared by the parsers."""

import re
from datetime import date
from typing import List, Optional, Tuple

_INVISIBLE = re.compile(r"[\u200b\u200c\u200d\ufeff\u200e\u200f\u202a-\u202e]")
_SPACES = re.compile(r"[^\S\n]+")

# Day-first date with any of . / - as separator. The lookarounds keep us from
# matching a fragment of a longer run such as "112.03.20234" or "2003-4-12-1".
DMY_DATE = re.compile(r"(?<![\d./-])(\d{1,2})[./-](\d{1,2})[./-](\d{4})(?!\d|[./-]\d)")
ISO_DATE = re.compile(r"(?<![\d./-])(\d{4})-(\d{1,2})-(\d{1,2})(?!\d|[./-]\d)")

# Anything that looks like a calendar date inside running text, including
# two-digit years. Used to mask numbers that must not be read as values.
DATE_LIKE = re.compile(r"(?<!\d)\d{1,2}[./-]\d{1,2}[./-](?:\d{4}|\d{2})(?!\d)|(?<!\d)\d{4}[./-]\d{1,2}[./-]\d{1,2}(?!\d)")


def normalize_text(text: str) -> str:
    """Normalize text before pattern matching.

    Strips zero-width and bidi marks, maps Hebrew geresh/gershayim to ASCII
    quotes, unifies dashes and collapses runs of spaces (newlines are kept).
    """
    if not text:
        return ""
    text = _INVISIBLE.sub("", text)
    text = text.replace("״", '"').replace("׳", "'")
    text = text.replace("–", "-").replace("—", "-")
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return _SPACES.sub(" ", text)


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def format_date(day: int, month: int, year: int) -> Optional[str]:
    """Return DD-MM-YYYY, or None when the triple is not a calendar date."""
    try:
        date(year, month, day)
    except ValueError:
        return None
    return f"{day:02d}-{month:02d}-{year:04d}"


def normalize_date(raw: str) -> Optional[str]:
    """Normalize a single date string (DMY with . / - or ISO) to DD-MM-YYYY."""
    if not raw:
        return None
    raw = raw.strip()
    m = ISO_DATE.fullmatch(raw)
    if m:
        return format_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
    m = DMY_DATE.fullmatch(raw)
    if m:
        return format_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    return None


def year_of(value: Optional[str]) -> Optional[str]:
    """Extract the four-digit year from a DD-MM-YYYY (or similar) date."""
    if not value:
        return None
    m = re.search(r"(?<!\d)(\d{4})(?!\d)", value)
    return m.group(1) if m else None


def date_spans(text: str) -> List[Tuple[int, int]]:
    """Character spans of date-like substrings."""
    return [m.span() for m in DATE_LIKE.finditer(text)]
