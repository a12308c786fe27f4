"""Tests for logging setup."""

import json
import logging
from decimal import Decimal

import pytest

from fundledger.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


def _record(message="Posted journal", **extra):
    record = logging.LogRecord("fundledger.journal", logging.INFO, __file__, 1, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """Tests for the JSON formatter."""

    def test_payload(self):
        payload = json.loads(
            StructuredFormatter().format(_record(journal_number="JE/HQ/202501/0001", amount=Decimal("1.50")))
        )
        assert payload["level"] == "INFO"
        assert payload["logger"] == "fundledger.journal"
        assert payload["message"] == "Posted journal"
        assert payload["journal_number"] == "JE/HQ/202501/0001"
        assert payload["amount"] == "1.50"
        assert "args" not in payload


class TestLogContext:
    """Tests for context-bound log fields."""

    def test_bind_and_restore(self):
        assert LogContext.get_all() == {}
        with LogContext.bind(actor="alice", journal_id=7):
            assert LogContext.get_all() == {"actor": "alice", "journal_id": "7"}
            with LogContext.bind(actor="bob"):
                assert LogContext.get_all()["actor"] == "bob"
            assert LogContext.get_all()["actor"] == "alice"
        assert LogContext.get_all() == {}

    def test_unknown_field(self):
        with pytest.raises(TypeError, match="Unknown log context fields"):
            LogContext.bind(user="alice")


class TestConfigureLogging:
    """Tests for installing the package handler."""

    def test_get_logger_namespace(self):
        assert get_logger("journal").name == "fundledger.journal"
        assert get_logger("fundledger.budget").name == "fundledger.budget"

    def test_json_output_carries_context(self, capsys):
        configure_logging("INFO", json_format=True)
        with LogContext.bind(actor="alice", operation="post"):
            get_logger("journal").info("Posted journal")

        payload = json.loads(capsys.readouterr().err.strip())
        assert payload["message"] == "Posted journal"
        assert payload["actor"] == "alice"
        assert payload["operation"] == "post"

    def test_level_filters(self, capsys):
        configure_logging("WARNING")
        get_logger("journal").info("hidden")
        get_logger("journal").warning("shown")

        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "WARNING fundledger.journal: shown" in err

    def test_reconfigure_replaces_handler(self):
        root = configure_logging("INFO")
        configure_logging("DEBUG")
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG

    def test_reset(self):
        root = configure_logging("INFO")
        reset_logging()
        assert root.handlers == []
        assert root.propagate is True

    def test_unknown_level(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging("LOUD")
