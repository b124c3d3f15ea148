"""
Shared fixtures for Keyhold tests.

Every test gets its own SQLite file in a temporary directory.
"""

import tempfile
from pathlib import Path

import pytest

from kms.keyhold_server.manage import AccessControlManager, SecretVersionManager
from kms.keyhold_server.store import ClientStore, Database, GroupStore


@pytest.fixture
def data_dir():
    """Create temporary data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def database(data_dir):
    """Create an initialized database."""
    db = Database(str(Path(data_dir) / "keyhold.db"), wal_mode=False)
    db.initialize()
    return db


@pytest.fixture
def acl(database):
    """Create access control manager."""
    return AccessControlManager(database)


@pytest.fixture
def secrets(database):
    """Create secret version manager."""
    return SecretVersionManager(database)


@pytest.fixture
def make_client(database):
    """Factory that inserts a client and returns it."""

    def _make(name):
        with database.transaction(write=True) as tx:
            store = ClientStore(tx)
            client_id = store.create(name, "test", f"{name} client")
            return store.get_by_id(client_id)

    return _make


@pytest.fixture
def make_group(database):
    """Factory that inserts a group and returns it."""

    def _make(name):
        with database.transaction(write=True) as tx:
            store = GroupStore(tx)
            group_id = store.create(name, "test", f"{name} group")
            return store.get_by_id(group_id)

    return _make
