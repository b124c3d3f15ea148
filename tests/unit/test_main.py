"""
Unit tests for the server entry point.
"""

import logging
from pathlib import Path

import json_log_formatter
import pytest

from kms.keyhold_server.config import Settings
from kms.keyhold_server.main import KeyholdService, main, setup_logging


@pytest.fixture
def restore_logging():
    """Restore root logger handlers and level after the test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_json_format(self, restore_logging):
        """JSON format installs the JSON formatter."""
        setup_logging(Settings(log_format="json", log_level="DEBUG"))

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, json_log_formatter.JSONFormatter)
        assert root.level == logging.DEBUG

    def test_text_format(self, restore_logging):
        """Text format installs a plain formatter."""
        setup_logging(Settings(log_format="text", log_level="WARNING"))

        root = logging.getLogger()
        assert not isinstance(root.handlers[0].formatter, json_log_formatter.JSONFormatter)
        assert root.level == logging.WARNING


class TestKeyholdService:
    """Tests for KeyholdService."""

    def test_start_initializes_database(self, data_dir):
        """start() creates the schema and the managers share the database."""
        path = Path(data_dir) / "keyhold.db"
        service = KeyholdService(Settings(database_path=str(path), wal_mode=False))

        service.start()

        assert path.exists()
        assert service.access_control.database is service.database
        assert service.secrets.database is service.database

        secret_id = service.secrets.create_secret("db-pass", "c1", "", "admin", {}, "")
        assert service.database.get_stats()["secrets"] == 1
        assert service.secrets.secrets_by_id(secret_id)

    def test_main(self, data_dir, monkeypatch, restore_logging):
        """main() prepares the configured database."""
        path = Path(data_dir) / "main.db"
        monkeypatch.setenv("KEYHOLD_DATABASE_PATH", str(path))
        monkeypatch.setenv("KEYHOLD_LOG_FORMAT", "text")

        main()

        assert path.exists()

    def test_main_bad_config(self, monkeypatch):
        """Invalid configuration exits with status 1."""
        monkeypatch.setenv("KEYHOLD_LOG_FORMAT", "xml")

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1
