"""Tests for settings loading."""

import pytest
from pydantic import ValidationError

from appraisal2json.config import Settings, load_settings


def test_defaults(monkeypatch):
    for name in ("APPRAISAL_REQUEST_DELAY_SECONDS", "APPRAISAL_ALERT_THRESHOLD", "APPRAISAL_ALERT_DEBOUNCE"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.request_delay_seconds == 1.0
    assert settings.alert_threshold == 3
    assert settings.alert_debounce is True
    assert settings.min_document_length == 100


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("APPRAISAL_REQUEST_DELAY_SECONDS", "0.25")
    monkeypatch.setenv("APPRAISAL_ALERT_THRESHOLD", "5")
    monkeypatch.setenv("APPRAISAL_ALERT_DEBOUNCE", "false")
    monkeypatch.setenv("APPRAISAL_LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.request_delay_seconds == 0.25
    assert settings.alert_threshold == 5
    assert settings.alert_debounce is False
    assert settings.log_level == "DEBUG"


def test_invalid_threshold_rejected(monkeypatch):
    monkeypatch.setenv("APPRAISAL_ALERT_THRESHOLD", "0")
    with pytest.raises(ValidationError):
        load_settings()


def test_settings_model_validation():
    with pytest.raises(ValidationError):
        Settings(request_delay_seconds=-1)


def test_misspelled_boolean_rejected(monkeypatch):
    monkeypatch.setenv("APPRAISAL_ALERT_DEBOUNCE", "flase")
    with pytest.raises(ValidationError):
        load_settings()


def test_non_numeric_value_rejected(monkeypatch):
    monkeypatch.setenv("APPRAISAL_MAX_PAGES", "lots")
    with pytest.raises(ValidationError):
        load_settings()
