import json
import logging

import pytest
import structlog

from retail_audit.observability import configure_logging


def test_json_logs_are_rendered_to_stderr(capsys):
    configure_logging("DEBUG", json_logs=True)

    structlog.get_logger("retail_audit.test").info("store_loaded", rows=3)

    captured = capsys.readouterr()
    assert captured.out == ""
    event = json.loads(captured.err.strip().splitlines()[-1])
    assert event["event"] == "store_loaded"
    assert event["rows"] == 3
    assert event["level"] == "info"
    assert "timestamp" in event


def test_level_filters_events(capsys):
    configure_logging("WARNING")

    structlog.get_logger().info("hidden")
    structlog.get_logger().warning("shown")

    err = capsys.readouterr().err
    assert "hidden" not in err
    assert "shown" in err
    assert logging.getLogger().level == logging.WARNING


def test_unknown_level_is_rejected():
    with pytest.raises(ValueError):
        configure_logging("CHATTY")
