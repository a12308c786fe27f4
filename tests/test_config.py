"""Tests for runtime configuration."""

import pytest

from fundledger.config import LedgerConfig, load_config
from fundledger.domain.errors import ValidationError


class TestLoadConfig:
    """Tests for building configuration from the environment."""

    def test_defaults(self):
        config = load_config(environ={})
        assert config == LedgerConfig()
        assert config.database_path is None
        assert config.journal_prefix == "JE"
        assert config.sequence_retry_limit == 3
        assert config.log_level == "WARNING"
        assert config.log_json is False

    def test_reads_environment(self):
        config = load_config(
            environ={
                "FUNDLEDGER_DB_PATH": "/tmp/ledger.db",
                "FUNDLEDGER_PAGE_SIZE": "50",
                "FUNDLEDGER_MAX_PAGE_SIZE": "200",
                "FUNDLEDGER_JOURNAL_PREFIX": "GJ",
                "FUNDLEDGER_SEQUENCE_RETRIES": "5",
                "FUNDLEDGER_LOG_LEVEL": "debug",
                "FUNDLEDGER_LOG_JSON": "yes",
            }
        )
        assert config.database_path == "/tmp/ledger.db"
        assert config.default_page_size == 50
        assert config.max_page_size == 200
        assert config.journal_prefix == "GJ"
        assert config.sequence_retry_limit == 5
        assert config.log_level == "DEBUG"
        assert config.log_json is True

    def test_overrides_win(self):
        config = load_config(
            environ={"FUNDLEDGER_DB_PATH": "/tmp/env.db"},
            database_path="/tmp/flag.db",
            log_level=None,
        )
        assert config.database_path == "/tmp/flag.db"
        assert config.log_level == "WARNING"

    @pytest.mark.parametrize(
        "environ,message",
        [
            ({"FUNDLEDGER_PAGE_SIZE": "many"}, "must be an integer"),
            ({"FUNDLEDGER_LOG_JSON": "maybe"}, "must be a boolean"),
            ({"FUNDLEDGER_SEQUENCE_RETRIES": "0"}, "sequence_retry_limit"),
            ({"FUNDLEDGER_JOURNAL_PREFIX": "J/E"}, "journal_prefix"),
            ({"FUNDLEDGER_PAGE_SIZE": "500"}, "max_page_size"),
        ],
    )
    def test_invalid_values(self, environ, message):
        with pytest.raises(ValidationError, match=message):
            load_config(environ=environ)


class TestLedgerConfig:
    """Tests for LedgerConfig validation."""

    def test_page_size_must_be_positive(self):
        with pytest.raises(ValidationError, match="default_page_size"):
            LedgerConfig(default_page_size=0)

    def test_frozen(self):
        config = LedgerConfig()
        with pytest.raises(AttributeError):
            config.journal_prefix = "GJ"
