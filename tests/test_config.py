"""Konfigürasyon testleri."""

import logging
from unittest.mock import MagicMock

import pytest

from rack_ledger.config import LOG_FORMAT, Settings, configure_logging, load_settings


class TestLoadSettings:

    def test_defaults(self, monkeypatch):
        for name in ("RACK_LEDGER_TABLE", "RACK_LEDGER_LOCK_TIMEOUT", "RACK_LEDGER_SUGGESTION_COUNT",
                     "RACK_LEDGER_REPORT_WORKERS", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
        settings = load_settings()
        assert settings.table_name == Settings.table_name
        assert settings.suggestion_count == 5

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("RACK_LEDGER_TABLE", "Other")
        monkeypatch.setenv("RACK_LEDGER_LOCK_TIMEOUT", "2.5")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        settings = load_settings()
        assert settings.table_name == "Other"
        assert settings.lock_timeout == 2.5
        assert settings.log_level == "DEBUG"

    def test_invalid_number(self, monkeypatch):
        monkeypatch.setenv("RACK_LEDGER_REPORT_WORKERS", "many")
        with pytest.raises(ValueError):
            load_settings()

    def test_zero_suggestions_rejected(self, monkeypatch):
        monkeypatch.setenv("RACK_LEDGER_SUGGESTION_COUNT", "0")
        with pytest.raises(ValueError):
            load_settings()


class TestConfigureLogging:

    def test_level_from_environment(self, monkeypatch):
        """Seviye verilmezse LOG_LEVEL ortam değişkeni kullanılır."""
        monkeypatch.setenv("LOG_LEVEL", "debug")
        basic_config = MagicMock()
        monkeypatch.setattr(logging, "basicConfig", basic_config)

        configure_logging()

        assert basic_config.call_args.kwargs["level"] == "DEBUG"
        assert basic_config.call_args.kwargs["format"] == LOG_FORMAT
        assert logging.getLogger("botocore").level == logging.WARNING
        assert logging.getLogger("boto3").level == logging.WARNING

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        basic_config = MagicMock()
        monkeypatch.setattr(logging, "basicConfig", basic_config)

        configure_logging("warning")

        assert basic_config.call_args.kwargs["level"] == "WARNING"
