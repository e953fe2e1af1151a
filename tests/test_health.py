"""Tests for the consecutive-failure health monitor."""

import pytest

from appraisal2json.health import HealthMonitor, HealthState


class TestAlertStateMachine:
    def test_alert_fires_at_threshold(self):
        monitor = HealthMonitor(threshold=3)

        assert monitor.record_failure("decisive_appraiser", 0) is None
        assert monitor.record_failure("decisive_appraiser", 1) is None
        alert = monitor.record_failure("decisive_appraiser", 2)

        assert alert is not None
        assert alert.consecutive_failures == 3
        assert alert.threshold == 3
        assert alert.source == "decisive_appraiser"
        assert alert.page_index == 2
        assert "3 times in a row" in alert.message
        assert monitor.state is HealthState.ALERTED

    def test_fourth_failure_does_not_refire(self):
        monitor = HealthMonitor(threshold=3)
        for page in range(3):
            monitor.record_failure("appeals_board", page)

        assert monitor.record_failure("appeals_board", 3) is None
        assert len(monitor.alerts) == 1
        assert monitor.consecutive_failures == 4

    def test_success_resets_counter_and_rearms(self):
        monitor = HealthMonitor(threshold=3)
        for page in range(4):
            monitor.record_failure("appeals_board", page)

        monitor.record_success()
        assert monitor.consecutive_failures == 0
        assert not monitor.alerted

        for page in range(3):
            monitor.record_failure("appeals_board", page)
        assert len(monitor.alerts) == 2

    def test_success_before_threshold_prevents_alert(self):
        monitor = HealthMonitor(threshold=3)
        monitor.record_failure()
        monitor.record_failure()
        monitor.record_success()
        monitor.record_failure()
        monitor.record_failure()
        assert monitor.alerts == []

    def test_debounce_disabled_alerts_every_time(self):
        monitor = HealthMonitor(threshold=2, debounce=False)
        results = [monitor.record_failure() for _ in range(4)]
        assert [r is not None for r in results] == [False, True, True, True]

    def test_callback_receives_alert(self):
        received = []
        monitor = HealthMonitor(threshold=1, on_alert=received.append)
        alert = monitor.record_failure("appeals_committee", 7)
        assert received == [alert]

    def test_alert_logged_at_error(self, caplog):
        monitor = HealthMonitor(threshold=1)
        with caplog.at_level("ERROR"):
            monitor.record_failure("appeals_committee", 0)
        assert any(r.levelname == "ERROR" and "HEALTH ALERT" in r.message for r in caplog.records)

    def test_reset_clears_history(self):
        monitor = HealthMonitor(threshold=1)
        monitor.record_failure()
        monitor.reset()
        assert monitor.alerts == []
        assert monitor.last_alert is None
        assert monitor.state is HealthState.NOMINAL

    def test_invalid_threshold(self):
        with pytest.raises(ValueError):
            HealthMonitor(threshold=0)
