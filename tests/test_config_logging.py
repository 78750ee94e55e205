"""
Tests for configuration and structured logging
"""

import pytest
import json
import logging

from debt_engine.config import EngineConfig, get_config, reload_config
from debt_engine.logging_config import (
    JSONFormatter, setup_logging, setup_logging_from_config, get_logger, log_action
)


class TestEngineConfig:
    """Test environment based configuration"""

    def test_defaults(self, monkeypatch):
        for name in ["LEGAL_CEILING_PERCENT", "DEFAULT_ALLOCATION_STRATEGY", "APPLY_GRACE_DAYS", "LOG_LEVEL"]:
            monkeypatch.delenv(f"DEBT_ENGINE_{name}", raising=False)
        config = EngineConfig()

        assert config.legal_ceiling_percent == "15"
        assert config.default_allocation_strategy == "interest_first"
        assert config.apply_grace_days is False
        assert config.currency == "THB"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("DEBT_ENGINE_LEGAL_CEILING_PERCENT", "28")
        monkeypatch.setenv("DEBT_ENGINE_APPLY_GRACE_DAYS", "true")
        monkeypatch.setenv("DEBT_ENGINE_DEFAULT_ALLOCATION_STRATEGY", "fifo")
        config = EngineConfig()

        assert config.legal_ceiling_percent == "28"
        assert config.apply_grace_days is True
        assert config.default_allocation_strategy == "fifo"

    def test_reload(self, monkeypatch):
        monkeypatch.setenv("DEBT_ENGINE_LOG_LEVEL", "DEBUG")
        try:
            config = reload_config()
            assert config.log_level == "DEBUG"
            assert get_config() is config
        finally:
            monkeypatch.delenv("DEBT_ENGINE_LOG_LEVEL")
            reload_config()


class TestStructuredLogging:
    """Test JSON formatter and logger setup"""

    def teardown_method(self):
        logger = logging.getLogger("debt_engine")
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)

    def test_json_formatter(self):
        record = logging.LogRecord("debt_engine.book", logging.INFO, __file__, 1, "Payment recorded", (), None)
        record.loan_id = "L1"
        record.action = "payment_recorded"
        record.extra = {"allocated": "100"}

        entry = json.loads(JSONFormatter().format(record))
        assert entry["level"] == "INFO"
        assert entry["message"] == "Payment recorded"
        assert entry["loan_id"] == "L1"
        assert entry["action"] == "payment_recorded"
        assert entry["extra"] == {"allocated": "100"}
        assert "exception" not in entry

    def test_setup_logging_replaces_handlers(self):
        setup_logging(level="DEBUG")
        logger = setup_logging(level="WARNING", log_format="text")

        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
        assert not logger.propagate
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_setup_from_config_writes_file(self, tmp_path):
        log_file = tmp_path / "engine.log"
        config = EngineConfig(log_level="INFO", log_format="json", log_file=str(log_file))
        logger = setup_logging_from_config(config)

        log_action(logger, "info", "Loan L1 added", loan_id="L1", action="loan_added")
        for handler in logger.handlers:
            handler.flush()

        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["message"] == "Loan L1 added"
        assert entry["loan_id"] == "L1"
        assert entry["action"] == "loan_added"

    def test_get_logger(self):
        assert get_logger() is logging.getLogger("debt_engine")
        assert get_logger("debt_engine.book").name == "debt_engine.book"
