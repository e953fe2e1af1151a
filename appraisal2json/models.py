"""Data models for appraisal decision extraction."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Dict, Tuple
from pydantic import BaseModel, ConfigDict, Field


class SourceCategory(str, Enum):
    """The three gov.il decision collections."""
    DECISIVE_APPRAISER = "decisive_appraiser"
    APPEALS_COMMITTEE = "appeals_committee"
    APPEALS_BOARD = "appeals_board"


SOURCE_CONFIG: Dict[SourceCategory, Dict[str, str]] = {
    SourceCategory.DECISIVE_APPRAISER: {
        "name": "שמאי מכריע",
        "url": "https://www.gov.il/he/departments/dynamiccollectors/decisive_appraisal_decisions",
    },
    SourceCategory.APPEALS_COMMITTEE: {
        "name": "ועדת השגות",
        "url": "https://www.gov.il/he/departments/dynamiccollectors/objections_committee_decisions",
    },
    SourceCategory.APPEALS_BOARD: {
        "name": "ועדת ערעורים",
        "url": "https://www.gov.il/he/departments/dynamiccollectors/appellate_committee_decisions",
    },
}

PAGE_SIZE = 10
PDF_HOST = "https://free-justice.openapi.gov.il"


def listing_url(source: SourceCategory, page_index: int) -> str:
    """gov.il listing URL for a page; pages are PAGE_SIZE decisions apart."""
    return f"{SOURCE_CONFIG[SourceCategory(source)]['url']}?skip={page_index * PAGE_SIZE}"


class RawExtraction(BaseModel):
    """One candidate decision produced by a single strategy."""
    title: str
    url: Optional[str] = None
    publish_date: Optional[str] = None
    strategy: str = Field(..., description="Name of the strategy that produced this item")
    quality: str = Field(default="precise", description="precise, structural, degraded or stale")
    stale: bool = False
    fields: Dict[str, Optional[str]] = Field(default_factory=dict)


class DecisionMetadata(BaseModel):
    """Structured fields recovered from a decision title."""
    block: Optional[str] = None
    plot: Optional[str] = None
    committee: Optional[str] = None
    actor: Optional[str] = None
    case_type: Optional[str] = None
    decision_date: Optional[str] = Field(default=None, description="DD-MM-YYYY")


class ExtractedRecord(BaseModel):
    """Canonical decision record. Immutable once built."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Derived from source and content hash")
    source: SourceCategory
    title: str
    url: Optional[str] = None
    block: Optional[str] = None
    plot: Optional[str] = None
    committee: Optional[str] = None
    actor: Optional[str] = None
    case_type: Optional[str] = None
    decision_date: Optional[str] = None
    publish_date: Optional[str] = None
    year: Optional[str] = None
    content_hash: str
    page_index: Optional[int] = None
    stale: bool = False


class StrategyResult(BaseModel):
    """Outcome of running one strategy once."""
    strategy: str
    success: bool
    item_count: int = 0


class StrategyStats(BaseModel):
    """Cumulative counters for one strategy."""
    success: int = 0
    fail: int = 0


class ChainState(str, Enum):
    NOT_ATTEMPTED = "not_attempted"
    TRYING_STRATEGY = "trying_strategy"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


class ChainOutcome(BaseModel):
    """Result of one pass through the strategy chain."""
    state: ChainState = ChainState.NOT_ATTEMPTED
    strategy_index: Optional[int] = None
    strategy: Optional[str] = None
    items: List[RawExtraction] = []
    attempts: List[StrategyResult] = []
    stale: bool = False
    failure_reason: Optional[str] = None


class StrategyCheck(BaseModel):
    """Per-strategy entry of a strategy health check."""
    working: bool
    item_count: int = 0
    error: Optional[str] = None


class StrategyHealthReport(BaseModel):
    """Which strategies work against a given page."""
    source: SourceCategory
    healthy: bool
    timestamp: str
    strategies: Dict[str, StrategyCheck] = Field(default_factory=dict)
    recommended_strategy: Optional[str] = None
    warnings: List[str] = []
    error: Optional[str] = None


class HealthAlert(BaseModel):
    """Raised when the primary strategy keeps failing."""
    consecutive_failures: int
    threshold: int
    source: Optional[str] = None
    page_index: Optional[int] = None
    message: str
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


# Value extraction / aggregation models

class ValueObservation(BaseModel):
    """A number found shortly after an occurrence of a search term."""
    raw: str
    value: float
    offset: int = Field(..., description="Character offset of the search term occurrence or value")
    page: int = Field(default=1, ge=1)
    unit: Optional[str] = Field(default=None, description="₪/מ\"ר, ₪/דונם, ₪/יח', ₪, % or מקדם")
    context: Optional[str] = None


class SectionKind(str, Enum):
    """Parts of a decision document that carry values."""
    PARTY_A = "party_a"
    PARTY_B = "party_b"
    PARTIES_CLAIMS = "parties_claims"
    RULING = "ruling"
    COMPARISONS = "comparisons"
    CALCULATION = "calculation"


class DocumentSection(BaseModel):
    """A located section and the values found inside it."""
    kind: SectionKind
    title: str = Field(..., description="Header or inline keyword that located the section")
    text: str
    offset: int
    values: List[ValueObservation] = Field(default_factory=list)


class DocumentSections(BaseModel):
    """Sections of one decision document; missing sections are None."""
    decision_id: str
    party_a: Optional[DocumentSection] = None
    party_b: Optional[DocumentSection] = None
    ruling: Optional[DocumentSection] = None
    comparisons: Optional[DocumentSection] = None
    calculation: Optional[DocumentSection] = None
    all_values: List[ValueObservation] = Field(default_factory=list)


class AggregatedRow(BaseModel):
    """One matched document in a comparison."""
    decision_id: str
    title: Optional[str] = None
    url: Optional[str] = None
    actor: Optional[str] = None
    location: Optional[str] = None
    year: Optional[str] = None
    values: Dict[str, Optional[float]] = Field(default_factory=dict)
    snippet: str = ""


class FieldStats(BaseModel):
    """Robust statistics for one numeric field."""
    count: int = 0
    mean: Optional[float] = None
    median: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    outliers_removed: int = 0


class SummaryStats(BaseModel):
    """Statistics over the whole matching set plus a bounded preview."""
    total: int = 0
    shown: int = 0
    fields: Dict[str, FieldStats] = Field(default_factory=dict)
    top_actors: List[Tuple[str, int]] = []
    by_year: Dict[str, int] = Field(default_factory=dict)
    preview: List[AggregatedRow] = []
