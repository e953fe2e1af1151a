"""Sequential page-by-page ingestion of one source."""

import logging
import time
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from appraisal2json.errors import Appraisal2JsonError
from appraisal2json.extractor import StrategyChain
from appraisal2json.models import ChainState, ExtractedRecord, SourceCategory, SOURCE_CONFIG, listing_url
from appraisal2json.records import build_record
from appraisal2json.store import DocumentSource, RecordStore

logger = logging.getLogger(__name__)


class IngestReport(BaseModel):
    """What one ingestion run did."""
    source: SourceCategory
    start_page: int = 0
    pages_attempted: int = 0
    pages_failed: int = 0
    stale_pages: int = 0
    records_found: int = 0
    records_inserted: int = 0
    strategy_counts: Dict[str, int] = Field(default_factory=dict)
    errors: List[str] = []
    stopped_reason: Optional[str] = None


def records_for_page(
    chain: StrategyChain,
    document: str,
    source: SourceCategory,
    page_index: Optional[int] = None,
) -> List[ExtractedRecord]:
    """Run the chain on one page and build records from its items."""
    return [build_record(item, source, page_index) for item in chain.parse(document, source, page_index)]


def ingest_source(
    source: SourceCategory,
    documents: DocumentSource,
    chain: StrategyChain,
    store: RecordStore,
    start_page: int = 0,
    max_pages: int = 1000,
    max_empty_pages: int = 3,
    delay_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> IngestReport:
    """Fetch, extract and store pages until the source runs dry.

    A page that fails (fetch error, malformed markup, every strategy
    failing) is logged and skipped; it counts as an empty page, and
    ``max_empty_pages`` consecutive empty pages end the run.

    Args:
        source: Collection to ingest
        documents: Where page markup comes from
        chain: Strategy chain; its stats and health monitor persist across pages
        store: Where records go; existing ids are left alone
        start_page: First page index
        max_pages: Upper bound on pages attempted
        max_empty_pages: Consecutive empty pages that end the run
        delay_seconds: Pause between page fetches
        sleep: Injected for tests

    Returns:
        IngestReport for the run
    """
    source = SourceCategory(source)
    report = IngestReport(source=source, start_page=start_page)
    name = SOURCE_CONFIG[source]["name"]
    consecutive_empty = 0
    page = start_page

    while report.pages_attempted < max_pages:
        if report.pages_attempted and delay_seconds > 0:
            sleep(delay_seconds)

        report.pages_attempted += 1
        logger.info("Fetching %s page %d (%s)...", name, page, listing_url(source, page))
        records: List[ExtractedRecord] = []
        try:
            document = documents.fetch_document(source, page)
            outcome = chain.run(document, source, page)
            if outcome.state is ChainState.SUCCEEDED:
                records = [build_record(item, source, page) for item in outcome.items]
                report.strategy_counts[outcome.strategy] = report.strategy_counts.get(outcome.strategy, 0) + 1
                if outcome.stale:
                    report.stale_pages += 1
            else:
                report.pages_failed += 1
                report.errors.append(f"page {page}: {outcome.failure_reason}")
        except Appraisal2JsonError as e:
            logger.error("Error on page %d: %s", page, e)
            report.pages_failed += 1
            report.errors.append(f"page {page}: {e}")
        except Exception as e:
            # A source backed by the network can fail in ways we do not wrap
            logger.exception("Unexpected error on page %d", page)
            report.pages_failed += 1
            report.errors.append(f"page {page}: {type(e).__name__}: {e}")

        if records:
            consecutive_empty = 0
            inserted = sum(1 for record in records if store.save(record))
            report.records_found += len(records)
            report.records_inserted += inserted
            logger.info("  Found %d decisions, inserted %d new", len(records), inserted)
        else:
            consecutive_empty += 1
            if consecutive_empty >= max_empty_pages:
                report.stopped_reason = f"no results after {consecutive_empty} empty pages"
                logger.info("No more results after %d empty pages", consecutive_empty)
                break

        page += 1

    if report.stopped_reason is None:
        report.stopped_reason = f"reached max_pages ({max_pages})"
    logger.info("Completed %s: %d new records from %d pages",
                name, report.records_inserted, report.pages_attempted)
    return report
