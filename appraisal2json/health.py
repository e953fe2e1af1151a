"""Consecutive-failure tracking for the primary extraction strategy.

The monitor is a two-state machine:

    NOMINAL --(failures reach threshold)--> ALERTED
    ALERTED --(primary strategy succeeds)--> NOMINAL

The alert fires on the NOMINAL -> ALERTED transition only. Further failures
while ALERTED keep counting but stay quiet unless debounce is disabled.
"""

import logging
from enum import Enum
from typing import Callable, List, Optional

from appraisal2json.models import HealthAlert

logger = logging.getLogger(__name__)

DEFAULT_ALERT_THRESHOLD = 3


class HealthState(str, Enum):
    NOMINAL = "nominal"
    ALERTED = "alerted"


class HealthMonitor:
    """Counts consecutive primary-strategy failures and raises one alert."""

    def __init__(
        self,
        threshold: int = DEFAULT_ALERT_THRESHOLD,
        debounce: bool = True,
        on_alert: Optional[Callable[[HealthAlert], None]] = None,
    ):
        """Initialize the monitor.

        Args:
            threshold: Consecutive failures that trigger the alert
            debounce: Fire once per outage instead of on every failure past the threshold
            on_alert: Optional callback receiving each alert
        """
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.threshold = threshold
        self.debounce = debounce
        self.on_alert = on_alert
        self.state = HealthState.NOMINAL
        self.consecutive_failures = 0
        self.alerts: List[HealthAlert] = []

    @property
    def alerted(self) -> bool:
        return self.state is HealthState.ALERTED

    @property
    def last_alert(self) -> Optional[HealthAlert]:
        return self.alerts[-1] if self.alerts else None

    def record_success(self) -> None:
        """Primary strategy worked: clear the counter and re-arm the alert."""
        if self.state is HealthState.ALERTED:
            logger.info(
                "Primary strategy recovered after %d consecutive failures",
                self.consecutive_failures,
            )
        self.consecutive_failures = 0
        self.state = HealthState.NOMINAL

    def record_failure(self, source: Optional[str] = None, page_index: Optional[int] = None) -> Optional[HealthAlert]:
        """Count a primary-strategy failure.

        Returns:
            The alert if this failure triggered one, else None
        """
        self.consecutive_failures += 1
        if self.consecutive_failures < self.threshold:
            return None
        if self.state is HealthState.ALERTED and self.debounce:
            return None

        self.state = HealthState.ALERTED
        alert = HealthAlert(
            consecutive_failures=self.consecutive_failures,
            threshold=self.threshold,
            source=source,
            page_index=page_index,
            message=(
                f"Primary extraction strategy failed {self.consecutive_failures} times in a row "
                f"(threshold {self.threshold}); last attempt {source} page {page_index}. "
                "The source markup has probably changed and the selectors need updating."
            ),
        )
        self.alerts.append(alert)
        logger.error("HEALTH ALERT: %s", alert.message)
        if self.on_alert is not None:
            self.on_alert(alert)
        return alert

    def reset(self) -> None:
        """Operator reset: forget counters and alert history."""
        self.consecutive_failures = 0
        self.state = HealthState.NOMINAL
        self.alerts = []
