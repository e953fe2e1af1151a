"""Structured field recovery from free-text Hebrew decision titles."""

import logging
import re
from typing import Callable, List, Optional, Tuple, Union

from appraisal2json.models import DecisionMetadata, SourceCategory
from appraisal2json.text import DMY_DATE, ISO_DATE, format_date, normalize_text

logger = logging.getLogger(__name__)

# One field pattern: a compiled regex plus a function turning its match into
# the field value (None means "matched but unusable, keep looking").
FieldPattern = Tuple["re.Pattern[str]", Callable[["re.Match[str]"], Optional[str]]]

# הכרעת שמאי מכריע מיום DD-MM-YYYY בעניין <case> נ <committee> ג <block> ח <plot> - <actor>
DECISIVE_PATTERN = re.compile(
    r"הכרעת שמאי (מכריע|מייעץ) מיום (\d{2}-\d{2}-\d{4}) בעניין ([^נ]+)נ ([^ג]+)ג (\d+) ח (\d+)\s*-?\s*(.+)?"
)

# החלטה בהשגה [מס'] N <committee> גוש/ג N חלקה/ח M
APPEALS_COMMITTEE_PATTERN = re.compile(
    r"החלטה ב?השגה(?:\s+מס['\"]?\s*|\s+)(\d+)?\s*([^ג]+)?ג(?:וש)?\s*(\d+)\s*ח(?:לקה)?\s*(\d+)"
)
APPEALS_BOARD_PATTERN = re.compile(r"ערעור|ערר\s*מס['\"]?\s*(\d+)?")

COMMITTEE_PREFIX = re.compile(r"^\s*ועדה מקומית\s*(?:לתכנון\s+(?:ו)?בני(?:י)?ה\s*)?")

BLOCK_PLOT_PATTERNS: List[FieldPattern] = [
    (re.compile(r"(?<![א-ת])ג\s*(\d+)\s*ח\s*(\d+)"), lambda m: f"{m.group(1)}/{m.group(2)}"),
    (re.compile(r"גוש\s*(\d+)\s*(?:,?\s*)?חלקה\s*(\d+)"), lambda m: f"{m.group(1)}/{m.group(2)}"),
    (re.compile(r"גוש\s*(\d+)\s*,\s*חלקה\s*(\d+)"), lambda m: f"{m.group(1)}/{m.group(2)}"),
]

COMMITTEE_PATTERNS: List[FieldPattern] = [
    (re.compile(r"ועדה מקומית(?:\s+לתכנון\s+(?:ו)?בני(?:י)?ה)?\s+([א-ת\s\-]+?)(?:\s+גוש|\s+ג\s|\s+-|$)"),
     lambda m: m.group(1)),
    (re.compile(r"\sנ\s+([א-ת\s\-]+?)(?:\s+גוש|\s+ג\s)"), lambda m: m.group(1)),
    (re.compile(r"לתו\"ב\s+([א-ת\s\-]+?)(?:\s+גוש|\s+ג\s|\s+-|$)"), lambda m: m.group(1)),
]

ACTOR_PATTERNS: List[FieldPattern] = [
    (re.compile(r"\s-\s*([א-ת\s]+)$"), lambda m: m.group(1)),
    (re.compile(r"שמאי(?:ת)?\s+(?:מכריע(?:ה)?|מייעץ|מייעצת)?\s*[:\-]?\s*([א-ת\s']+?)(?:\s+מיום|\s+החליט|$)"),
     lambda m: m.group(1)),
    (re.compile(r"שמאי\s*:\s*([א-ת\s']+?)(?:\s*[,;]|$)"), lambda m: m.group(1)),
]


def _dmy(m: "re.Match[str]") -> Optional[str]:
    return format_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def _iso(m: "re.Match[str]") -> Optional[str]:
    return format_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))


DATE_PATTERNS: List[FieldPattern] = [
    (DMY_DATE, _dmy),
    (re.compile(r"מיום\s+(\d{1,2})[./-](\d{1,2})[./-](\d{4})(?!\d)"), _dmy),
    (ISO_DATE, _iso),
]

# Most specific phrases first: "פיצויים בגין הפקעה" must win over "פיצויים",
# and "היטל השבחה" over the bare "השבחה".
CASE_TYPES: List[Tuple["re.Pattern[str]", str]] = [
    (re.compile(r"היטל השבחה"), "היטל השבחה"),
    (re.compile(r"פיצויים?\s*(?:בגין|על|בשל)?\s*הפקעה"), "פיצויים בגין הפקעה"),
    (re.compile(r"פיצויי(?:ם)?\s+(?:בגין\s+)?תכנית"), "פיצויים"),
    (re.compile(r"פיצויים"), "פיצויים"),
    (re.compile(r"ירידת ערך"), "ירידת ערך"),
    (re.compile(r"השבחה"), "היטל השבחה"),
    (re.compile(r"(?<!\d)196\s*א"), "196א"),
    (re.compile(r"(?<!\d)197(?!\d)"), "197"),
    (re.compile(r"השגה"), "השגה"),
    (re.compile(r"ערעור|ערר"), "ערעור"),
    (re.compile(r"שומה"), "שומה"),
]


def strip_committee_prefix(name: str) -> Optional[str]:
    """Drop leading 'ועדה מקומית [לתכנון ובניה]' boilerplate."""
    cleaned = COMMITTEE_PREFIX.sub("", name).strip(" -")
    return cleaned or None


def first_match(text: str, patterns: List[FieldPattern]) -> Optional[str]:
    """Run patterns in priority order and return the first usable value."""
    for pattern, extract in patterns:
        m = pattern.search(text)
        if not m:
            continue
        value = extract(m)
        if value is not None:
            value = value.strip()
            if value:
                return value
    return None


def match_case_type(text: str) -> Optional[str]:
    for pattern, case_type in CASE_TYPES:
        if pattern.search(text):
            return case_type
    return None


def parse_decisive_title(title: str) -> Optional[DecisionMetadata]:
    """Match the fully structured decisive-appraiser title in one go."""
    m = DECISIVE_PATTERN.search(title)
    if not m:
        return None
    actor = m.group(7).strip() if m.group(7) else None
    return DecisionMetadata(
        decision_date=m.group(2),
        case_type=m.group(3).strip(),
        committee=strip_committee_prefix(m.group(4)),
        block=m.group(5),
        plot=m.group(6),
        actor=actor or None,
    )


def parse_metadata(title: str, source: Union[SourceCategory, str, None] = None) -> DecisionMetadata:
    """Extract block, plot, committee, actor, case type and decision date.

    The composite decisive-appraiser pattern is tried first regardless of
    ``source``. When it fails each field is looked up on its own, so an
    ambiguous committee cannot spoil the block or the date. Unmatched fields
    stay None.

    Args:
        title: Decision title as shown on the listing page
        source: Collection the title came from (informational)

    Returns:
        DecisionMetadata with all six fields present, possibly None
    """
    if not title:
        return DecisionMetadata()

    text = normalize_text(title).strip()

    composite = parse_decisive_title(text)
    if composite is not None:
        return composite

    meta = DecisionMetadata()

    appeals = APPEALS_COMMITTEE_PATTERN.search(text)
    if appeals:
        if appeals.group(2):
            meta.committee = strip_committee_prefix(appeals.group(2))
        meta.block = appeals.group(3)
        meta.plot = appeals.group(4)
        meta.case_type = "השגה"
    elif APPEALS_BOARD_PATTERN.search(text):
        meta.case_type = "ערעור"

    if not meta.block or not meta.plot:
        block_plot = first_match(text, BLOCK_PLOT_PATTERNS)
        if block_plot:
            block, plot = block_plot.split("/", 1)
            meta.block = meta.block or block
            meta.plot = meta.plot or plot

    if not meta.committee:
        committee = first_match(text, COMMITTEE_PATTERNS)
        if committee:
            meta.committee = strip_committee_prefix(committee)

    if not meta.actor:
        meta.actor = first_match(text, ACTOR_PATTERNS)

    if not meta.decision_date:
        meta.decision_date = first_match(text, DATE_PATTERNS)

    if not meta.case_type:
        meta.case_type = match_case_type(text)

    logger.debug("Parsed title metadata (%s): %s", source, meta.model_dump())
    return meta
