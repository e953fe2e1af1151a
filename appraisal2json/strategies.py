"""Listing-page extraction strategies, from most precise to most tolerant."""

import html as html_lib
import logging
import re
from typing import Dict, List, Optional, Sequence
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import Tag
from pydantic import BaseModel

from appraisal2json.models import PDF_HOST, RawExtraction, SourceCategory
from appraisal2json.text import collapse_whitespace

logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 5
DATE_IN_TEXT = re.compile(r"(\d{1,2}[./-]\d{1,2}[./-]\d{4})")


class SelectorSet(BaseModel):
    """CSS selectors for one structural strategy, each list in priority order."""
    container: List[str]
    title: List[str]
    pdf_link: List[str]
    date: List[str]


PRIMARY_SELECTORS = SelectorSet(
    container=[
        "div.dynamic-card",
        "div.result-item",
        "div.ng-scope[ng-repeat]",
        "li.ng-scope[ng-repeat]",
        ".govil-card",
        ".decision-item",
    ],
    title=["h3.txt.bold", "h3.ng-binding", ".item-title", ".decision-title", "h3 a", "h4 a"],
    pdf_link=[
        'a[href*="free-justice.openapi.gov.il"]',
        'a[href*=".pdf"]',
        'a[href*="document"]',
        ".pdf-link a",
        ".download-link a",
    ],
    date=["bdi.ng-binding", ".date", ".publish-date", "span.date", ".decision-date"],
)

PATH_SELECTORS = SelectorSet(
    container=["section > div > div", "main ul > li", "main ol > li", "article"],
    title=["h3:first-of-type", "h4:first-of-type", "strong:first-of-type", 'a[href*="gov.il"]'],
    pdf_link=['a[href$=".pdf"]', 'a[href*="openapi"]', 'a[target="_blank"]'],
    date=["bdi", "time", "span:last-of-type"],
)

LOOSE_SELECTORS = SelectorSet(
    container=["div[ng-repeat]", "li[ng-repeat]", "tr[ng-repeat]", '[dir="rtl"] > div'],
    title=['[dir="rtl"] > *:first-child', "h3", "h4", "strong", "a"],
    pdf_link=['a[href$=".pdf"]', 'a[href*="openapi"]', 'a[target="_blank"]', "a[href]"],
    date=["bdi", "time", "[datetime]", "span:last-of-type"],
)

REGEX_TITLE_PATTERNS = [
    re.compile(r"הכרעת שמאי[^<\n]{10,200}"),
    re.compile(r"החלטת ועד[^<\n]{10,200}"),
    re.compile(r"החלטה ב?השגה[^<\n]{10,200}"),
    re.compile(r"ערעור[^<\n]{10,200}"),
    re.compile(r"<h3[^>]*>([^<]{10,300})</h3>", re.IGNORECASE),
    re.compile(r"<h4[^>]*>([^<]{10,300})</h4>", re.IGNORECASE),
    re.compile(r"title[\"\s]*:[\"\s]*[\"']([^\"']{10,300})[\"']", re.IGNORECASE),
]
REGEX_PDF_PATTERNS = [
    re.compile(r"https?://free-justice\.openapi\.gov\.il[^\s\"'<>]+\.pdf", re.IGNORECASE),
    re.compile(r"https?://[^\"'\s<>]*\.gov\.il[^\"'\s<>]*\.pdf", re.IGNORECASE),
    re.compile(r"href=[\"']([^\"']*\.pdf[^\"']*)[\"']", re.IGNORECASE),
]
REGEX_DATE_PATTERNS = [
    re.compile(r"(?<!\d)(\d{1,2}[./-]\d{1,2}[./-]\d{4})(?!\d)"),
    re.compile(r"(?<!\d)(\d{4}[./-]\d{1,2}[./-]\d{1,2})(?!\d)"),
]


def resolve_pdf_url(href: Optional[str]) -> Optional[str]:
    """Make a listing link absolute; relative links live on the PDF host."""
    if not href:
        return None
    href = href.strip()
    if href.startswith("http"):
        return href
    if href.startswith("//"):
        return f"https:{href}"
    return urljoin(PDF_HOST + "/", href.lstrip("/"))


def _dedupe(items: List[RawExtraction]) -> List[RawExtraction]:
    seen = set()
    unique = []
    for item in items:
        key = (item.title, item.url)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


class ListingStrategy:
    """Base class for listing-page strategies."""

    name = "base"
    quality = "precise"

    def extract(self, document: str, source: SourceCategory, page_index: Optional[int] = None) -> List[RawExtraction]:
        """Extract candidate decisions from one listing page.

        Args:
            document: Raw page markup
            source: Collection the page belongs to
            page_index: Zero-based page number, when known

        Returns:
            Candidates found; an empty list means this strategy failed
        """
        raise NotImplementedError


class CssStrategy(ListingStrategy):
    """Container/title/link/date lookup driven by a SelectorSet."""

    def __init__(self, name: str, selectors: SelectorSet, quality: str = "structural"):
        self.name = name
        self.selectors = selectors
        self.quality = quality

    def extract(self, document: str, source: SourceCategory, page_index: Optional[int] = None) -> List[RawExtraction]:
        soup = BeautifulSoup(document, "html.parser")
        items: List[RawExtraction] = []
        for container in self.selectors.container:
            for element in soup.select(container):
                item = self._from_element(element)
                if item is not None:
                    items.append(item)
            if items:
                # First container selector that yields anything wins
                break
        return _dedupe(items)

    def _from_element(self, element: Tag) -> Optional[RawExtraction]:
        title = ""
        for selector in self.selectors.title:
            found = element.select_one(selector)
            if found is not None:
                title = collapse_whitespace(found.get_text(" ", strip=True))
                if len(title) >= MIN_TITLE_LENGTH:
                    break
        if len(title) < MIN_TITLE_LENGTH:
            heading = element.find("h3") or element.find("h4")
            title = collapse_whitespace(heading.get_text(" ", strip=True)) if heading else ""
        if len(title) < MIN_TITLE_LENGTH:
            return None

        return RawExtraction(
            title=title,
            url=self._first_link(element, self.selectors.pdf_link),
            publish_date=self._first_date(element),
            strategy=self.name,
            quality=self.quality,
        )

    @staticmethod
    def _first_link(element: Tag, selectors: Sequence[str]) -> Optional[str]:
        for selector in selectors:
            link = element.select_one(selector)
            if link is not None and link.get("href"):
                return resolve_pdf_url(link.get("href"))
        return None

    def _first_date(self, element: Tag) -> Optional[str]:
        for selector in self.selectors.date:
            for node in element.select(selector):
                text = node.get("datetime") or node.get_text(" ", strip=True)
                m = DATE_IN_TEXT.search(text)
                if m:
                    return m.group(1)
        return None


class PrimaryCssStrategy(CssStrategy):
    """Class-based selectors for the current gov.il markup, plus table rows."""

    def __init__(self, selectors: SelectorSet = PRIMARY_SELECTORS):
        super().__init__("css_primary", selectors, quality="precise")

    def extract(self, document: str, source: SourceCategory, page_index: Optional[int] = None) -> List[RawExtraction]:
        items = super().extract(document, source, page_index)
        if items:
            return items
        return _dedupe(self._from_table_rows(document))

    def _from_table_rows(self, document: str) -> List[RawExtraction]:
        soup = BeautifulSoup(document, "html.parser")
        items = []
        for row in soup.select("tr.ng-scope, tbody tr"):
            cells = row.find_all("td")
            if len(cells) < 2:
                continue
            title = collapse_whitespace(cells[0].get_text(" ", strip=True)) or \
                collapse_whitespace(cells[1].get_text(" ", strip=True))
            if len(title) < MIN_TITLE_LENGTH:
                continue
            date_match = DATE_IN_TEXT.search(row.get_text(" ", strip=True))
            items.append(RawExtraction(
                title=title,
                url=self._first_link(row, self.selectors.pdf_link),
                publish_date=date_match.group(1) if date_match else None,
                strategy=self.name,
                quality=self.quality,
            ))
        return items


class RegexStrategy(ListingStrategy):
    """Pattern matching on raw markup with no DOM assumptions."""

    name = "regex_fallback"
    quality = "degraded"

    def extract(self, document: str, source: SourceCategory, page_index: Optional[int] = None) -> List[RawExtraction]:
        titles = self._titles(document)
        if not titles:
            return []
        urls = self._pdf_urls(document)
        dates = self._dates(document)

        items = []
        for i, title in enumerate(titles):
            items.append(RawExtraction(
                title=title,
                url=urls[i] if i < len(urls) else None,
                publish_date=dates[i] if i < len(dates) else None,
                strategy=self.name,
                quality=self.quality,
            ))
        return _dedupe(items)

    @staticmethod
    def _titles(document: str) -> List[str]:
        for pattern in REGEX_TITLE_PATTERNS:
            titles = []
            for m in pattern.finditer(document):
                captured = m.group(1) if pattern.groups else m.group(0)
                cleaned = collapse_whitespace(html_lib.unescape(re.sub(r"<[^>]*>", "", captured)))
                if 10 <= len(cleaned) <= 300:
                    titles.append(cleaned)
            if titles:
                return titles
        return []

    @staticmethod
    def _pdf_urls(document: str) -> List[str]:
        for pattern in REGEX_PDF_PATTERNS:
            urls = []
            for m in pattern.finditer(document):
                url = html_lib.unescape(m.group(1) if pattern.groups else m.group(0))
                if ".pdf" in url or "gov.il" in url:
                    urls.append(resolve_pdf_url(url))
            if urls:
                return urls
        return []

    @staticmethod
    def _dates(document: str) -> List[str]:
        for pattern in REGEX_DATE_PATTERNS:
            dates = pattern.findall(document)
            if dates:
                return dates
        return []


class LastKnownGoodStrategy(ListingStrategy):
    """Serve what was persisted earlier for the same (source, page).

    Results are flagged stale: the page could not be read now, so freshness
    is not guaranteed.
    """

    name = "last_known_good"
    quality = "stale"

    def __init__(self, store=None):
        self.store = store

    def extract(self, document: str, source: SourceCategory, page_index: Optional[int] = None) -> List[RawExtraction]:
        if self.store is None or page_index is None:
            return []

        # Imported here to keep strategies free of a hard store dependency
        from appraisal2json.store import RecordQuery

        records = self.store.query(RecordQuery(source=source, page_index=page_index))
        items = []
        for record in records:
            fields: Dict[str, Optional[str]] = {
                "block": record.block,
                "plot": record.plot,
                "committee": record.committee,
                "actor": record.actor,
                "case_type": record.case_type,
                "decision_date": record.decision_date,
            }
            items.append(RawExtraction(
                title=record.title,
                url=record.url,
                publish_date=record.publish_date,
                strategy=self.name,
                quality=self.quality,
                stale=True,
                fields=fields,
            ))
        if items:
            logger.warning(
                "Serving %d stale records for %s page %s from the store",
                len(items), source.value if isinstance(source, SourceCategory) else source, page_index,
            )
        return items


def default_strategies(store=None) -> List[ListingStrategy]:
    """The standard chain order."""
    return [
        PrimaryCssStrategy(),
        CssStrategy("css_path", PATH_SELECTORS),
        CssStrategy("css_loose", LOOSE_SELECTORS),
        RegexStrategy(),
        LastKnownGoodStrategy(store),
    ]
