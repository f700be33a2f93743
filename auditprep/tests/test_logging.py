"""Tests for log formatting and contract context."""

from __future__ import annotations

import json
import logging

from auditprep.core.logging import (
    ContractLogFilter,
    DevFormatter,
    JSONFormatter,
    contract_log_context,
    setup_logging,
)

from auditprep.tests.conftest import PROXY_ADDRESS


def _record(message: str = "Fetching source", **extra) -> logging.LogRecord:
    record = logging.LogRecord("auditprep.test", logging.INFO, __file__, 10, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_filter_stamps_contract_context():
    record = _record()
    assert ContractLogFilter(chain="ethereum", address=PROXY_ADDRESS).filter(record)
    assert record.chain == "ethereum"
    assert record.address == PROXY_ADDRESS


def test_filter_keeps_explicit_context():
    record = _record(address="0xabc")
    ContractLogFilter(chain="bsc", address=PROXY_ADDRESS).filter(record)
    assert record.address == "0xabc"


def test_json_formatter_includes_context():
    record = _record(chain="base", address=PROXY_ADDRESS, detection_method="eip1967")
    entry = json.loads(JSONFormatter().format(record))
    assert entry["level"] == "INFO"
    assert entry["message"] == "Fetching source"
    assert entry["chain"] == "base"
    assert entry["detection_method"] == "eip1967"
    assert "contract_type" not in entry


def test_dev_formatter_shows_short_address():
    line = DevFormatter().format(_record(address=PROXY_ADDRESS))
    assert "test: Fetching source" in line
    assert line.endswith(f"[{PROXY_ADDRESS[:10]}]")


def test_contract_log_context_attaches_and_detaches():
    handler = logging.NullHandler()
    root = logging.getLogger()
    root.addHandler(handler)
    try:
        with contract_log_context("bsc", PROXY_ADDRESS) as log_filter:
            assert log_filter in handler.filters
        assert log_filter not in handler.filters
    finally:
        root.removeHandler(handler)


def test_setup_logging_json_for_production():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging("production", "debug")
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert root.level == logging.DEBUG
        setup_logging("development", "nonsense")
        assert isinstance(root.handlers[0].formatter, DevFormatter)
        assert root.level == logging.INFO
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
