"""Runs listing strategies in priority order until one yields results."""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Union

from appraisal2json.health import HealthMonitor
from appraisal2json.models import (
    ChainOutcome, ChainState, RawExtraction, SourceCategory, StrategyCheck,
    StrategyHealthReport, StrategyResult, StrategyStats
)
from appraisal2json.strategies import ListingStrategy, default_strategies

logger = logging.getLogger(__name__)

DEFAULT_MIN_DOCUMENT_LENGTH = 100
# Fewer items than this from the primary strategy suggests partial breakage
EXPECTED_MIN_ITEMS = 5


def _source_name(source: Union[SourceCategory, str]) -> str:
    return source.value if isinstance(source, SourceCategory) else str(source)


class StrategyChain:
    """Orchestrates listing strategies with per-strategy stats.

    The first strategy is the primary one; only its outcome feeds the
    health monitor. Stats and monitor state belong to this instance.
    """

    def __init__(
        self,
        strategies: Optional[Sequence[ListingStrategy]] = None,
        health: Optional[HealthMonitor] = None,
        min_document_length: int = DEFAULT_MIN_DOCUMENT_LENGTH,
        store=None,
    ):
        """Initialize the chain.

        Args:
            strategies: Ordered strategies; defaults to the standard five
            health: Monitor for primary-strategy failures
            min_document_length: Shorter documents are rejected as malformed
            store: Record store backing the last-known-good strategy
        """
        self.strategies: List[ListingStrategy] = default_strategies(store) if strategies is None else list(strategies)
        if not self.strategies:
            raise ValueError("at least one strategy is required")
        self.health = health or HealthMonitor()
        self.min_document_length = min_document_length
        self.last_strategy_used: Optional[str] = None
        self._stats: Dict[str, StrategyStats] = {s.name: StrategyStats() for s in self.strategies}

    @property
    def primary(self) -> ListingStrategy:
        return self.strategies[0]

    def strategy_stats(self) -> Dict[str, StrategyStats]:
        """Copy of cumulative per-strategy success/fail counts."""
        return {name: stats.model_copy() for name, stats in self._stats.items()}

    def reset_stats(self) -> None:
        self._stats = {s.name: StrategyStats() for s in self.strategies}
        self.last_strategy_used = None

    def malformed_reason(self, document: Optional[str]) -> Optional[str]:
        """Why the document cannot be a listing page, or None if it might be."""
        if document is None or not document.strip():
            return "document is empty"
        if len(document) < self.min_document_length:
            return f"document too short ({len(document)} < {self.min_document_length} characters)"
        return None

    def run(
        self,
        document: Optional[str],
        source: Union[SourceCategory, str],
        page_index: Optional[int] = None,
    ) -> ChainOutcome:
        """Try each strategy in order and stop at the first non-empty result.

        Args:
            document: Raw listing page markup
            source: Collection the page belongs to
            page_index: Zero-based page number, when known

        Returns:
            ChainOutcome, SUCCEEDED with the winning strategy's items or
            EXHAUSTED with a failure reason
        """
        source_name = _source_name(source)
        outcome = ChainOutcome()

        reason = self.malformed_reason(document)
        if reason is not None:
            logger.error("Skipping %s page %s: %s", source_name, page_index, reason)
            outcome.state = ChainState.EXHAUSTED
            outcome.failure_reason = reason
            return outcome

        for index, strategy in enumerate(self.strategies):
            outcome.state = ChainState.TRYING_STRATEGY
            outcome.strategy_index = index
            items = self._attempt(strategy, document, source, page_index)
            succeeded = bool(items)
            outcome.attempts.append(StrategyResult(strategy=strategy.name, success=succeeded, item_count=len(items)))

            stats = self._stats.setdefault(strategy.name, StrategyStats())
            if succeeded:
                stats.success += 1
            else:
                stats.fail += 1

            if index == 0:
                if succeeded:
                    self.health.record_success()
                else:
                    self.health.record_failure(source=source_name, page_index=page_index)

            if not succeeded:
                continue

            outcome.state = ChainState.SUCCEEDED
            outcome.strategy = strategy.name
            outcome.items = items
            outcome.stale = any(item.stale for item in items)
            self.last_strategy_used = strategy.name
            if index == 0:
                logger.info("Strategy %s found %d items on %s page %s",
                            strategy.name, len(items), source_name, page_index)
            else:
                logger.warning("Fallback strategy %s (#%d) found %d items on %s page %s (quality: %s)",
                               strategy.name, index + 1, len(items), source_name, page_index, strategy.quality)
            return outcome

        outcome.state = ChainState.EXHAUSTED
        outcome.strategy_index = None
        outcome.failure_reason = "all strategies failed"
        self.last_strategy_used = None
        logger.error("All %d strategies failed for %s page %s",
                     len(self.strategies), source_name, page_index)
        return outcome

    def parse(
        self,
        document: Optional[str],
        source: Union[SourceCategory, str],
        page_index: Optional[int] = None,
    ) -> List[RawExtraction]:
        """Items from the first working strategy; empty when none works."""
        return self.run(document, source, page_index).items

    def _attempt(self, strategy: ListingStrategy, document: str, source, page_index) -> List[RawExtraction]:
        try:
            return list(strategy.extract(document, source, page_index) or [])
        except Exception:
            logger.exception("Strategy %s raised on %s page %s", strategy.name, _source_name(source), page_index)
            return []

    def check_strategies(
        self,
        document: Optional[str],
        source: Union[SourceCategory, str],
        page_index: Optional[int] = None,
    ) -> StrategyHealthReport:
        """Run every strategy independently and report which ones work.

        Stats and the health monitor are left untouched.
        """
        report = StrategyHealthReport(
            source=source,
            healthy=False,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

        reason = self.malformed_reason(document)
        if reason is not None:
            report.error = reason
            report.warnings.append(f"Cannot check strategies: {reason}")
            return report

        for strategy in self.strategies:
            try:
                items = list(strategy.extract(document, source, page_index) or [])
                report.strategies[strategy.name] = StrategyCheck(working=bool(items), item_count=len(items))
            except Exception as e:
                report.strategies[strategy.name] = StrategyCheck(working=False, error=str(e))

        working = [s for s in self.strategies if report.strategies[s.name].working]
        if working:
            best = working[0]
            report.healthy = True
            report.recommended_strategy = best.name
            if best.quality == "degraded":
                report.warnings.append(f"Only the degraded fallback {best.name} works; selectors need updating")
            elif best.quality == "stale":
                report.warnings.append("Only previously stored records are available; page content was not read")

        primary_check = report.strategies[self.primary.name]
        if primary_check.working and primary_check.item_count < EXPECTED_MIN_ITEMS:
            report.warnings.append(
                f"Primary strategy found only {primary_check.item_count} items, expected at least {EXPECTED_MIN_ITEMS}"
            )
        if not working:
            report.warnings.append("All strategies failed; the page structure may have changed")
        return report
