"""
Tests for configuration and structured logging
"""

import io
import json
import logging
import pytest

from wealth_ledger import config as config_module
from wealth_ledger.config import WealthLedgerConfig, get_config, reload_config
from wealth_ledger.logging_config import JSONFormatter, log_action, setup_logging


@pytest.fixture
def restore_config():
    yield
    reload_config()


class TestConfig:
    """Test environment-based configuration"""

    def test_defaults(self, monkeypatch):
        """Test default values"""
        for name in ("WEALTH_STORAGE_URL", "WEALTH_ASSETS_KEY", "WEALTH_VALUE_PRECISION"):
            monkeypatch.delenv(name, raising=False)

        config = WealthLedgerConfig(_env_file=None)

        assert config.storage_url == "sqlite:///wealth_ledger.db"
        assert config.assets_key == "wealth-management-assets"
        assert config.yield_records_key == "wealth-management-yields"
        assert config.value_precision == 10
        assert config.backup_format_version == "1.0"

    def test_environment_override(self, monkeypatch, restore_config):
        """Test WEALTH_ variables override defaults"""
        monkeypatch.setenv("WEALTH_STORAGE_URL", "memory://")
        monkeypatch.setenv("WEALTH_API_PORT", "9100")

        reloaded = reload_config()

        assert reloaded.storage_url == "memory://"
        assert reloaded.api_port == 9100
        assert get_config() is reloaded
        assert config_module.config is reloaded


class TestLogging:
    """Test structured logging helpers"""

    def _capture(self, name):
        stream = io.StringIO()
        logger = logging.getLogger(name)
        logger.handlers = []
        handler = logging.StreamHandler(stream)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
        return logger, stream

    def test_log_action_is_json(self):
        """Test action records carry structured fields"""
        logger, stream = self._capture("wealth_ledger_test.actions")

        log_action(logger, "info", "Asset added", action="asset_added",
                   resource="a1", extra={"type": "stock"})

        entry = json.loads(stream.getvalue().strip())
        assert entry["level"] == "INFO"
        assert entry["message"] == "Asset added"
        assert entry["action"] == "asset_added"
        assert entry["resource"] == "a1"
        assert entry["extra"] == {"type": "stock"}
        assert "timestamp" in entry

    def test_log_action_respects_level(self):
        """Test records below the logger level are dropped"""
        logger, stream = self._capture("wealth_ledger_test.levels")
        logger.setLevel(logging.WARNING)

        log_action(logger, "info", "ignored")

        assert stream.getvalue() == ""

    def test_exception_included(self):
        """Test exception info is serialized"""
        logger, stream = self._capture("wealth_ledger_test.errors")

        try:
            raise RuntimeError("boom")
        except RuntimeError:
            logger.exception("failed")

        entry = json.loads(stream.getvalue().strip())
        assert "RuntimeError: boom" in entry["exception"]

    def test_setup_logging(self):
        """Test setup replaces handlers and sets the level"""
        logger = setup_logging("DEBUG", logger_name="wealth_ledger_test.setup")
        setup_logging("DEBUG", logger_name="wealth_ledger_test.setup")

        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)
        assert logger.level == logging.DEBUG
        assert not logger.propagate

        text_logger = setup_logging("INFO", logger_name="wealth_ledger_test.text", log_format="text")
        assert not isinstance(text_logger.handlers[0].formatter, JSONFormatter)

    def test_timestamp_from_record(self):
        """Test the timestamp is the record's creation time, not format time"""
        record = logging.LogRecord("wealth_ledger_test.time", logging.INFO, __file__, 1,
                                   "资产已添加", (), None)
        record.created = 1719748800.0

        entry = json.loads(JSONFormatter().format(record))

        assert entry["timestamp"] == "2024-06-30T12:00:00+00:00"
        assert entry["message"] == "资产已添加"
        assert "action" not in entry
