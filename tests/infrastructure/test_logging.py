"""Tests for contextual logging helpers."""

import json
import logging

from bidhouse.infrastructure.observability.logging import (
    ContextualFormatter, JsonFormatter, current_log_context, log_context,
    log_exception)


def _record(message: str) -> logging.LogRecord:
    return logging.LogRecord("bidhouse.test", logging.INFO, __file__, 1, message, (), None)


def test_log_context_nests_and_restores():
    assert current_log_context() == {}
    with log_context(auction_id="a1"):
        with log_context(bidder_id="u1"):
            assert current_log_context() == {"auction_id": "a1", "bidder_id": "u1"}
        assert current_log_context() == {"auction_id": "a1"}
    assert current_log_context() == {}


def test_contextual_formatter_appends_fields():
    formatter = ContextualFormatter("%(message)s")
    with log_context(auction_id="a1"):
        assert formatter.format(_record("Admitting bid")) == "Admitting bid [auction_id=a1]"
    assert formatter.format(_record("plain")) == "plain"


def test_json_formatter_merges_context():
    with log_context(auction_id="a1"):
        entry = json.loads(JsonFormatter().format(_record("hello")))
    assert entry["message"] == "hello"
    assert entry["auction_id"] == "a1"
    assert entry["level"] == "INFO"


def test_log_exception_includes_context(caplog):
    logger = logging.getLogger("bidhouse.test.exceptions")
    with caplog.at_level(logging.ERROR, logger="bidhouse.test.exceptions"):
        log_exception(logger, "Failed to broadcast", RuntimeError("boom"), auction_id="a1")
    assert "Failed to broadcast: boom" in caplog.text
    assert caplog.records[0].exc_info is not None
