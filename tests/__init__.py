"""
Keyhold Test Suite.

This package contains:
- unit/: Unit tests (models, config, database, table gateways)
- integration/: Manager tests against a real SQLite file
"""
