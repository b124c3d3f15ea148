"""
Unit tests for configuration loading.
"""

import pytest
from pydantic import ValidationError

from kms.keyhold_server.config import Settings, get_settings


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, monkeypatch):
        """Defaults suit local development."""
        for var in ("KEYHOLD_DATABASE_PATH", "KEYHOLD_LOG_FORMAT", "KEYHOLD_LOG_LEVEL"):
            monkeypatch.delenv(var, raising=False)

        settings = Settings()

        assert settings.database_path == "/var/lib/keyhold/keyhold.db"
        assert settings.wal_mode is True
        assert settings.busy_timeout_ms == 5000
        assert settings.log_format == "json"

    def test_env_prefix(self, monkeypatch):
        """KEYHOLD_ variables override defaults."""
        monkeypatch.setenv("KEYHOLD_DATABASE_PATH", "/tmp/other.db")
        monkeypatch.setenv("KEYHOLD_WAL_MODE", "false")
        monkeypatch.setenv("KEYHOLD_LOG_FORMAT", "TEXT")

        settings = Settings()

        assert settings.database_path == "/tmp/other.db"
        assert settings.wal_mode is False
        assert settings.log_format == "text"

    def test_invalid_log_format(self, monkeypatch):
        """Unknown log formats are rejected."""
        monkeypatch.setenv("KEYHOLD_LOG_FORMAT", "xml")

        with pytest.raises(ValidationError):
            Settings()

    def test_negative_busy_timeout(self):
        """Negative busy timeout is rejected."""
        with pytest.raises(ValidationError):
            Settings(busy_timeout_ms=-1)

    def test_get_settings_cached(self):
        """get_settings returns one shared instance."""
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()

    def test_log_config(self, caplog):
        """log_config emits the loaded settings."""
        with caplog.at_level("INFO", logger="kms.keyhold_server.config"):
            Settings(database_path="/tmp/x.db").log_config()

        assert "Server configuration loaded" in caplog.text
