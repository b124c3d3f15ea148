"""
Keyhold Server - Main entry point.

This module wires the server components together:
- SQLite database (schema created on startup)
- AccessControlManager (memberships and access grants)
- SecretVersionManager (secret series and versions)

The API layer embeds KeyholdService; running this module on its own
prepares the database and reports its contents.

Usage:
    python -m kms.keyhold_server.main

Configuration is entirely via environment variables.
See config.py for all available settings.
"""

from __future__ import annotations

import logging
import sys

import json_log_formatter
from pydantic import ValidationError

from .config import Settings
from .manage import AccessControlManager, SecretVersionManager
from .store import Database

logger = logging.getLogger(__name__)


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings.

    Args:
        settings: Server settings
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == "json":
        formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]


class KeyholdService:
    """Keyhold server components sharing one database.

    Attributes:
        settings: Server settings
        database: SQLite database
        access_control: Membership and grant manager
        secrets: Secret version manager

    Example:
        >>> service = KeyholdService(settings)
        >>> service.start()
        >>> service.secrets.create_secret("db-pass", "...", "", "admin", {}, "")
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self.database = Database.from_settings(self.settings)
        self.access_control = AccessControlManager(self.database)
        self.secrets = SecretVersionManager(self.database)

    def start(self) -> None:
        """Create the schema if needed and log table sizes."""
        logger.info("Starting Keyhold server")
        self.settings.log_config()
        self.database.initialize()
        logger.info("Keyhold database ready", extra=self.database.get_stats())


def main() -> None:
    """Main entry point."""
    try:
        settings = Settings()
    except ValidationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(settings)

    service = KeyholdService(settings)
    try:
        service.start()
    except Exception as e:
        logger.error(f"Server startup failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
