"""Shared fixtures: listing pages and decision titles."""

from typing import List, Optional

import fitz
import pytest

from appraisal2json.extractor import StrategyChain
from appraisal2json.health import HealthMonitor
from appraisal2json.models import RawExtraction, SourceCategory
from appraisal2json.records import build_record
from appraisal2json.store import InMemoryRecordStore

DECISIVE_TITLE = "הכרעת שמאי מכריע מיום 15-03-2023 בעניין היטל השבחה נ תל אביב ג 6638 ח 96 - כהן יוסי"
APPEALS_TITLE = "החלטה בהשגה מס' 123 ועדה מקומית חיפה גוש 10845 חלקה 12"
BLOCK_PLOT_TITLE = "ג 1234 ח 56"

# Decision body with numbered headers for both parties and the ruling
DECISION_TEXT = (
    "הכרעת שמאי מכריע בעניין היטל השבחה\n"
    "1. רקע\nהנכס ממוקם בתל אביב ונדון בהליך זה.\n"
    "2. טענות שמאי המבקשים\nלטענתם מקדם דחייה: 0.7 ושווי 1,200 ₪/מ\"ר לפי עסקאות באזור.\n"
    "3. טענות שמאי הוועדה\nלשיטתה מקדם דחייה: 0.95 ושווי 2,000 ₪/מ\"ר לפי עסקאות באזור.\n"
    "4. הכרעה\nלאחר עיון נקבע מקדם דחייה: 0.85 ושווי 1,600 ₪/מ\"ר לכל הנכס.\n"
)


def make_pdf(pages: List[str]) -> bytes:
    """PDF bytes with one page per string."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def card_page(titles: List[str], with_links: bool = True) -> str:
    """Listing page in the current card markup."""
    cards = []
    for i, title in enumerate(titles):
        link = f'<a href="https://free-justice.openapi.gov.il/decisions/{i}.pdf">הורדה</a>' if with_links else ""
        cards.append(
            f'<div class="dynamic-card">\n'
            f'  <h3 class="txt bold">{title}</h3>\n'
            f'  <bdi class="ng-binding">20.03.2023</bdi>\n'
            f'  {link}\n'
            f'</div>'
        )
    return "<html><body><div class=\"results\">\n" + "\n".join(cards) + "\n</div></body></html>"


def garbage_page() -> str:
    """Long enough to be accepted, matching no strategy."""
    return "<html><body>" + "<p>lorem ipsum dolor</p>" * 20 + "</body></html>"


@pytest.fixture
def decisive_title() -> str:
    return DECISIVE_TITLE


@pytest.fixture
def primary_page() -> str:
    return card_page([
        DECISIVE_TITLE,
        "הכרעת שמאי מכריע מיום 01-06-2022 בעניין פיצויים נ חולון ג 7001 ח 15 - לוי דנה",
    ])


@pytest.fixture
def path_page() -> str:
    return (
        "<html><body><main><ul>"
        "<li><h3>הכרעת שמאי מכריע בעניין ירידת ערך גוש 3000 חלקה 7</h3>"
        '<a href="/files/1.pdf">קובץ</a><bdi>05/07/2021</bdi></li>'
        "</ul></main>" + "<p>footer text</p>" * 5 + "</body></html>"
    )


@pytest.fixture
def regex_only_page() -> str:
    return (
        "<html><body><p>הכרעת שמאי מכריע מיום 01-02-2023 בעניין היטל השבחה נ רמת גן ג 6100 ח 20</p>"
        "<span>https://free-justice.openapi.gov.il/x/doc.pdf</span>" + "<p>lorem</p>" * 10 + "</body></html>"
    )


@pytest.fixture
def garbage() -> str:
    return garbage_page()


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def chain(store) -> StrategyChain:
    return StrategyChain(health=HealthMonitor(threshold=3), store=store)


def make_record(title: str, page_index: Optional[int] = None, url: Optional[str] = None,
                source: SourceCategory = SourceCategory.DECISIVE_APPRAISER, publish_date: Optional[str] = None):
    raw = RawExtraction(title=title, url=url, publish_date=publish_date, strategy="css_primary")
    return build_record(raw, source, page_index)
