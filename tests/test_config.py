"""Tests for settings and logging configuration."""

import json
from decimal import Decimal

import structlog

from profitrack.config import ProfitrackSettings, configure_logging, get_settings


def test_settings_defaults():
    settings = ProfitrackSettings(_env_file=None)

    assert settings.margin_threshold == Decimal("20")
    assert settings.cost_spike_threshold == Decimal("25")
    assert settings.declining_trend_window == 12
    assert settings.log_level == "WARNING"


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("PROFITRACK_MARGIN_THRESHOLD", "15")
    monkeypatch.setenv("PROFITRACK_LOG_FORMAT", "json")
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.margin_threshold == Decimal("15")
        assert settings.log_format == "json"
    finally:
        get_settings.cache_clear()


def test_json_logging_goes_to_stderr(capsys):
    configure_logging(level="INFO", format="json")

    structlog.get_logger("profitrack.tests").info("report_built", jobs=3)

    captured = capsys.readouterr()
    assert captured.out == ""
    entry = json.loads(captured.err.strip().splitlines()[-1])
    assert entry["event"] == "report_built"
    assert entry["jobs"] == 3
    assert entry["level"] == "info"


def test_logging_defaults_come_from_given_settings(capsys):
    settings = ProfitrackSettings(_env_file=None, log_level="DEBUG", log_format="json")
    configure_logging(settings=settings)

    log = structlog.get_logger("profitrack.tests")
    log.debug("evidence_loaded", jobs=2)

    entry = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert entry["event"] == "evidence_loaded"
    assert entry["level"] == "debug"
