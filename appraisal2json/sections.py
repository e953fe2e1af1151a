"""Locate party claims, the ruling and other sections inside a decision text."""

import logging
import re
from typing import Dict, List, Optional, Tuple

from appraisal2json.models import DocumentSection, DocumentSections, SectionKind, ValueObservation
from appraisal2json.text import collapse_whitespace, normalize_text
from appraisal2json.values import closest_value, estimate_page, parse_locale_number, value_range

logger = logging.getLogger(__name__)

MIN_DOCUMENT_LENGTH = 100
MIN_SECTION_LENGTH = 20
MAX_SECTION_LENGTH = 8000
KEYWORD_SEARCH_LIMIT = 50000
TERM_WINDOW = 150

# Header phrases per section, most specific first. The first phrase that
# appears as a header wins.
SECTION_HEADERS: Dict[SectionKind, List[str]] = {
    SectionKind.PARTY_A: [
        "עיקר טענות שמאית המבקשת",
        "עיקר טענות שמאי המבקשים",
        "עיקר טענות שמאי המבקש",
        "טענות שמאי המבקשים",
        "טענות שמאי המבקש",
        "טענות שמאית המבקשת",
        "טענות שמאי המבקשת",
        "טענות שמאי המערער",
        "טענות שמאי המערערים",
        "טענות שמאית המערערת",
        "טענות שמאי המערערת",
        "טענות שמאי העורר",
        "טענות שמאי העוררים",
        "טענות שמאית העוררת",
        "טענות שמאי העוררת",
        "שומת בעלי הזכויות בנכס",
        "שומת בעלי הזכויות",
        "שומת שמאי המבקשים",
        "שומת שמאי המבקש",
        "שומת שמאית המבקשת",
        "שומת המבקשים",
        "שומת המבקש",
        "שומת המבקשת",
        "שומת המערערים",
        "שומת המערער",
        "שומת בעל הנכס",
        "שומת הבעלים",
        "טענות המבקשים",
        "טענות המבקש",
        "טענות המבקשת",
        "טענות המערערים",
        "טענות המערער",
        "טענות המערערת",
        "טענות העוררים",
        "טענות העורר",
        "טענות העוררת",
        "טענות בעל הנכס",
        "טענות הבעלים",
        "עמדת שמאי המבקשים",
        "עמדת שמאי המבקש",
        "עמדת שמאית המבקשת",
        "עמדת שמאי המבקשת",
        "עמדת המבקשים",
        "עמדת המבקש",
        "עמדת המבקשת",
        "עמדת המערערים",
        "עמדת המערער",
        "עמדת העוררים",
        "עמדת העורר",
        "עמדת בעל הנכס",
        "עמדת שמאי הבעלים",
        "עמדת שמאית הבעלים",
    ],
    SectionKind.PARTY_B: [
        "עיקר טענות שמאי המשיבה",
        "עיקר טענות שמאי הוועדה",
        "עיקר טענות שמאי הועדה",
        "טענות שמאי המשיבה",
        "טענות שמאי המשיבים",
        "טענות שמאי הוועדה",
        "טענות שמאי הועדה",
        "טענות שמאי הרשות",
        "שומת הועדה המקומית",
        "שומת הוועדה המקומית",
        "שומת שמאי המשיבה",
        "שומת שמאי הוועדה",
        "שומת שמאי הועדה",
        "שומת המשיבה",
        "שומת המשיבים",
        "שומת הועדה",
        "שומת הוועדה",
        "שומת הרשות",
        "טענות המשיבה",
        "טענות המשיבים",
        "טענות הרשות",
        "טענות הועדה המקומית",
        "טענות הוועדה המקומית",
        "עמדת שמאי המשיבה",
        "עמדת שמאי הוועדה",
        "עמדת שמאי הועדה",
        "עמדת המשיבה",
        "עמדת המשיבים",
        "עמדת הועדה",
        "עמדת הוועדה",
        "עמדת הועדה המקומית",
        "עמדת הוועדה המקומית",
        "עמדת הרשות",
    ],
    SectionKind.PARTIES_CLAIMS: [
        "עיקרי טיעוני הצדדים",
        "תמצית שומות הצדדים",
        "סיכום ממצאי שומות הצדדים",
        "ממצאי שומות הצדדים",
        "שומות הצדדים",
        "טענות הצדדים",
        "עמדות הצדדים",
        "טענות הצדדים בתמצית",
        "תמצית טענות הצדדים",
    ],
    SectionKind.RULING: [
        "הכרעת השמאי המכריע",
        "קביעת השמאי המכריע",
        "החלטת השמאי המכריע",
        "מסקנות השמאי המכריע",
        "הכרעת השמאית המכריעה",
        "הכרעת השמאי",
        "קביעת השמאי",
        "החלטת השמאי",
        "הכרעת השמאית",
        "עיקרי טיעוני הצדדים והכרעה",
        "התייחסות ומסקנות",
        "מסקנות והכרעה",
        "סיכום והכרעה",
        "דיון והכרעה",
        "ממצאים והכרעה",
        "ניתוח והכרעה",
        "הכרעה",
        "קביעה",
        "החלטה",
        "סיכום",
        "מסקנות",
    ],
    SectionKind.COMPARISONS: [
        "עסקאות השוואה",
        "עסקאות ההשוואה",
        "נתוני השוואה",
        "נתוני ההשוואה",
        "נתוני שוק",
        "עסקאות להשוואה",
    ],
    SectionKind.CALCULATION: [
        "תחשיב השבחה",
        "תחשיב ההשבחה",
        "חישוב ההשבחה",
        "חישוב השבחה",
        "חישוב היטל ההשבחה",
        "חישוב היטל השבחה",
    ],
}

# Inline phrases that point at a party's claims or the ruling when the
# document has no formal headers.
KEYWORD_FALLBACKS: Dict[SectionKind, List[str]] = {
    SectionKind.PARTY_A: [
        "שומת בעלי הזכויות בנכס",
        "שומת בעלי הזכויות",
        "שומה מטעם המבקש",
        "שומה מטעם המבקשים",
        "לטענת שמאי המבקש",
        "לטענת שמאי המבקשים",
        "לטענת שמאית המבקשת",
        "לטענת המבקש",
        "לטענת המבקשים",
        "לטענת המבקשת",
        "לטענת המערער",
        "לטענת המערערים",
        "לטענת העורר",
        "לטענת העוררים",
        "בחוות דעת שמאי המבקש",
        "בחוות דעת שמאי המבקשים",
        "בחוות דעת שמאית המבקשת",
        "עמדת שמאי הבעלים",
        "עמדת שמאית הבעלים",
        "עמדת שמאית המבקש",
        "עמדת שמאי המבקש",
    ],
    SectionKind.PARTY_B: [
        "שומת הועדה המקומית",
        "שומת הוועדה המקומית",
        "שומה מטעם המשיבה",
        "שומה מטעם הוועדה",
        "לטענת שמאי המשיבה",
        "לטענת שמאי הוועדה",
        "לטענת שמאי הועדה",
        "לטענת המשיבה",
        "לטענת המשיבים",
        "לטענת הועדה",
        "לטענת הוועדה",
        "לטענת הרשות",
        "בחוות דעת שמאי המשיבה",
        "בחוות דעת שמאי הוועדה",
        "עמדת שמאי המשיבה",
        "עמדת שמאי הוועדה",
        "עמדת שמאי הועדה",
    ],
    SectionKind.RULING: [
        "לאחר ששקלתי",
        "לאחר שבחנתי",
        "לאחר עיון",
        "לאור כל האמור",
        "מכל האמור לעיל",
        "התייחסות ומסקנות",
        "סוף דבר",
        "אשר על כן",
        "לסיכום",
    ],
}

# "3." "3.1" "11 ." "א." "א'" "(2)" "(א)"
_NUMBERING = r"(?:\d+(?:\s?\.\d+)*\s?\.?|[א-ת]['\"]?\s?\.?|\(\d+\)|\([א-ת]\))"
# Up to three words between the numbering and the header phrase ("עיקרי", "תמצית")
_EXTRA_WORDS = r"(?:[\u0590-\u05FF\"]+\s+){0,3}"


def _header_pattern(phrase: str) -> re.Pattern:
    # A header starts a line, or follows a double space in flattened PDF text
    return re.compile(
        rf"(?:^|\n|  )\s*(?:{_NUMBERING}\s+)?(?:[-•]\s*)?{_EXTRA_WORDS}{re.escape(phrase)}\s*[:.]?",
        re.MULTILINE,
    )


HEADER_PATTERNS: Dict[SectionKind, List[Tuple[str, re.Pattern]]] = {
    kind: [(phrase, _header_pattern(phrase)) for phrase in phrases]
    for kind, phrases in SECTION_HEADERS.items()
}
_ALL_HEADER_PATTERNS = [pattern for patterns in HEADER_PATTERNS.values() for _, pattern in patterns]

# Group 1 holds the number. Order decides which value a section
# reports first.
VALUE_PATTERNS: List[re.Pattern] = [
    re.compile(r"([\d,]+(?:\.\d+)?)\s*(?:₪|ש\"ח|שח)\s*[/\\]?\s*(?:דונם|מ\"ר|מטר|למ\"ר|למטר|לדונם|יח'|יח\"ד)"),
    re.compile(r"(?:₪|ש\"ח|שח)\s*([\d,]+(?:\.\d+)?)"),
    re.compile(r"([\d,]+(?:\.\d+)?)\s*(?:₪|ש\"ח)"),
    re.compile(r"מקדם\s+[\u0590-\u05FF]+(?:\s+[\u0590-\u05FF]+)*\s*[:=\-]?\s*(\d+[.,]\d+)"),
    re.compile(r"([\d.,]+)\s*%"),
    re.compile(r"([\d,]+(?:\.\d+)?)\s*(?:למ\"ר|למטר|לדונם)"),
]

UNIT_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"₪\s*[/\\]?\s*דונם|לדונם"), "₪/דונם"),
    (re.compile(r"₪\s*[/\\]?\s*(?:מ\"ר|מטר)|למ\"ר|למטר"), "₪/מ\"ר"),
    (re.compile(r"₪\s*[/\\]?\s*(?:יח'|יח\"ד)"), "₪/יח'"),
    (re.compile(r"%"), "%"),
    (re.compile(r"מקדם"), "מקדם"),
    (re.compile(r"₪|ש\"ח|שח"), "₪"),
]

_DATE_TOKEN = re.compile(r"\d{1,2}\.\d{1,2}\.\d{4}")


def detect_unit(context: str) -> Optional[str]:
    """Unit implied by the text around a value, or None."""
    for pattern, unit in UNIT_PATTERNS:
        if pattern.search(context):
            return unit
    return None


def section_values(document: str, section_text: str, offset: int) -> List[ValueObservation]:
    """Monetary amounts, coefficients and percentages inside a section.

    Values are listed pattern by pattern: amounts with a per-area unit,
    then plain amounts, coefficients and percentages.

    Args:
        document: Full normalized text, used for page estimates
        section_text: Text of the section
        offset: Where the section starts in ``document``
    """
    values: List[ValueObservation] = []
    seen = set()
    for pattern in VALUE_PATTERNS:
        for m in pattern.finditer(section_text):
            raw = m.group(1).strip(",.")
            if not raw or _DATE_TOKEN.fullmatch(raw):
                continue
            value = parse_locale_number(raw)
            if value is None or value == 0:
                continue
            key = (value, m.start())
            if key in seen:
                continue
            seen.add(key)

            context = collapse_whitespace(section_text[max(0, m.start() - 40):m.end() + 40])
            position = offset + m.start()
            values.append(ValueObservation(
                raw=m.group(0).strip(),
                value=value,
                offset=position,
                page=estimate_page(position, document),
                unit=detect_unit(context),
                context=context,
            ))
    return values


def _next_section_start(text: str, start: int) -> int:
    nearest = len(text)
    for pattern in _ALL_HEADER_PATTERNS:
        m = pattern.search(text, start + 1)
        if m and m.start() < nearest:
            nearest = m.start()
    return nearest


def find_section(text: str, kind: SectionKind) -> Optional[DocumentSection]:
    """First matching header of ``kind`` and the text up to the next header.

    Sections shorter than 20 characters are treated as missing; longer ones
    are capped at 8000 characters.
    """
    for phrase, pattern in HEADER_PATTERNS.get(kind, []):
        m = pattern.search(text)
        if not m:
            continue
        header_at = m.start() + m.group(0).index(phrase)
        start = header_at + len(phrase)
        body = text[start:_next_section_start(text, start)].strip()
        if len(body) < MIN_SECTION_LENGTH:
            return None
        return DocumentSection(kind=kind, title=phrase, text=body[:MAX_SECTION_LENGTH], offset=header_at)
    return None


def find_keyword_section(text: str, kind: SectionKind) -> Optional[DocumentSection]:
    """Text around the first inline marker of ``kind``.

    Takes 500 characters before the marker and 2500 after it. Only the
    first 50000 characters are searched for markers.
    """
    head = text[:KEYWORD_SEARCH_LIMIT]
    for keyword in KEYWORD_FALLBACKS.get(kind, []):
        idx = head.find(keyword)
        if idx == -1:
            continue
        body = text[max(0, idx - 500):idx + 2500].strip()
        if len(body) < 30:
            continue
        return DocumentSection(kind=kind, title=keyword, text=body[:MAX_SECTION_LENGTH], offset=idx)
    return None


def _with_values(section: Optional[DocumentSection], document: str) -> Optional[DocumentSection]:
    if section is None:
        return None
    section.values = section_values(document, section.text, section.offset)
    return section


def extract_sections(decision_id: str, text: str) -> DocumentSections:
    """Split a decision into party A, party B, ruling, comparisons and calculation.

    A combined "parties' claims" section stands in for party A when neither
    party has its own header. Parties and the ruling fall back to inline
    markers ("לטענת המשיבה", "סוף דבר") when no header is found. Documents
    shorter than 100 characters yield no sections.

    Args:
        decision_id: Id of the decision the text belongs to
        text: Full document text

    Returns:
        DocumentSections; missing sections are None
    """
    result = DocumentSections(decision_id=decision_id)
    if not text or len(text) < MIN_DOCUMENT_LENGTH:
        return result

    text = normalize_text(text)
    for kind in (SectionKind.PARTY_A, SectionKind.PARTY_B, SectionKind.RULING,
                 SectionKind.COMPARISONS, SectionKind.CALCULATION):
        setattr(result, kind.value, _with_values(find_section(text, kind), text))

    if result.party_a is None and result.party_b is None:
        result.party_a = _with_values(find_section(text, SectionKind.PARTIES_CLAIMS), text)

    for kind in (SectionKind.PARTY_A, SectionKind.PARTY_B, SectionKind.RULING):
        if getattr(result, kind.value) is None:
            setattr(result, kind.value, _with_values(find_keyword_section(text, kind), text))

    for kind in (SectionKind.PARTY_A, SectionKind.PARTY_B, SectionKind.RULING,
                 SectionKind.COMPARISONS, SectionKind.CALCULATION):
        section = getattr(result, kind.value)
        if section is not None:
            result.all_values.extend(section.values)

    logger.debug("Sections for %s: %s", decision_id,
                 [k.value for k in SectionKind if getattr(result, k.value, None) is not None])
    return result


def primary_value(section: Optional[DocumentSection]) -> Optional[ValueObservation]:
    """The section's headline value: money first, then coefficients, then percentages."""
    if section is None or not section.values:
        return None
    for wanted in (lambda u: "₪" in u, lambda u: u == "מקדם", lambda u: u == "%"):
        for value in section.values:
            if value.unit and wanted(value.unit):
                return value
    return section.values[0]


def term_value(section: Optional[DocumentSection], search_term: Optional[str]) -> Optional[ValueObservation]:
    """Value nearest to the search term inside a section.

    Without a term the section's primary value is returned. When the term has
    a plausible range (coefficients, percentages) and no value in range sits
    next to it, the result is None rather than an unrelated amount.
    """
    if section is None:
        return None
    if not search_term or not search_term.strip() or not section.text:
        return primary_value(section)

    bounds = value_range(search_term)
    found = closest_value(section.text, search_term, window_size=TERM_WINDOW, max_occurrences=None)
    if found is not None:
        if bounds is None:
            unit = detect_unit(found.context or "")
        else:
            unit = "%" if bounds[1] == 100.0 else "מקדם"
        return found.model_copy(update={"offset": section.offset + found.offset, "unit": unit})
    if bounds is not None:
        return None
    return primary_value(section)
