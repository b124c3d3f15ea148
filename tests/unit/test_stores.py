"""
Unit tests for the table gateways.

Tests cover:
- Client and group CRUD
- Secret series CRUD and cascades
- Secret content versions
"""

import pytest

from kms.keyhold_server.errors import ConstraintViolationError, InvalidArgumentError
from kms.keyhold_server.store import (
    ClientStore,
    GroupStore,
    SecretContentStore,
    SecretSeriesStore,
)


class TestClientStore:
    """Tests for ClientStore."""

    def test_create_and_get(self, database):
        """Create client stores data."""
        with database.transaction(write=True) as tx:
            client_id = ClientStore(tx).create(
                "web01", "admin", "Web server", automation_allowed=True
            )

        with database.transaction() as tx:
            store = ClientStore(tx)
            by_id = store.get_by_id(client_id)
            by_name = store.get_by_name("web01")

        assert by_id == by_name
        assert by_id.description == "Web server"
        assert by_id.created_by == "admin"
        assert by_id.enabled is True
        assert by_id.automation_allowed is True

    def test_missing_client(self, database):
        """Missing clients are None, not errors."""
        with database.transaction() as tx:
            assert ClientStore(tx).get_by_id(999) is None
            assert ClientStore(tx).get_by_name("nobody") is None

    def test_delete(self, database, make_client):
        """Delete removes the client."""
        client = make_client("web01")

        with database.transaction(write=True) as tx:
            assert ClientStore(tx).delete_by_id(client.id) is True
            assert ClientStore(tx).delete_by_id(client.id) is False

        with database.transaction() as tx:
            assert ClientStore(tx).list_all() == []

    def test_out_of_range_id(self, database):
        """Oversized ids are rejected before querying."""
        with database.transaction() as tx:
            with pytest.raises(InvalidArgumentError):
                ClientStore(tx).get_by_id(2**33)


class TestGroupStore:
    """Tests for GroupStore."""

    def test_create_and_list(self, database):
        """Created groups are listed."""
        with database.transaction(write=True) as tx:
            store = GroupStore(tx)
            store.create("ops", "admin", "Operations")
            store.create("dev", "admin", "Developers")

        with database.transaction() as tx:
            names = {group.name for group in GroupStore(tx).list_all()}

        assert names == {"ops", "dev"}

    def test_duplicate_name(self, database, make_group):
        """Group names are unique."""
        make_group("ops")

        with pytest.raises(ConstraintViolationError):
            make_group("ops")


class TestSecretSeriesStore:
    """Tests for SecretSeriesStore."""

    def test_create_with_options(self, database):
        """Type and generation options round trip."""
        with database.transaction(write=True) as tx:
            secret_id = SecretSeriesStore(tx).create(
                "db-pass", "alice", "Database password", "password", {"length": "32"}
            )

        with database.transaction() as tx:
            series = SecretSeriesStore(tx).get_by_name("db-pass")

        assert series.id == secret_id
        assert series.type == "password"
        assert series.generation_options == {"length": "32"}

    def test_delete_by_name_cascades(self, database, make_group):
        """Deleting a series removes its content and grants."""
        group = make_group("ops")
        with database.transaction(write=True) as tx:
            secret_id = SecretSeriesStore(tx).create("db-pass", "alice", "")
            SecretContentStore(tx).create(secret_id, "c1", "v1", "alice")
            tx.execute(
                "INSERT INTO accessgrants (group_id, secret_id, created_at) VALUES (?, ?, 0)",
                (group.id, secret_id),
            )

        with database.transaction(write=True) as tx:
            assert SecretSeriesStore(tx).delete_by_name("db-pass") is True

        stats = database.get_stats()
        assert stats["secrets"] == 0
        assert stats["secrets_content"] == 0
        assert stats["accessgrants"] == 0
        assert stats["acl_groups"] == 1


class TestSecretContentStore:
    """Tests for SecretContentStore."""

    @pytest.fixture
    def secret_id(self, database):
        """Create a series to hang versions on."""
        with database.transaction(write=True) as tx:
            return SecretSeriesStore(tx).create("db-pass", "alice", "")

    def test_versions(self, database, secret_id):
        """Versions are listed in creation order."""
        with database.transaction(write=True) as tx:
            store = SecretContentStore(tx)
            store.create(secret_id, "c1", "v1", "alice", {"mode": "0400"})
            store.create(secret_id, "c2", "v2", "alice")

        with database.transaction() as tx:
            store = SecretContentStore(tx)
            versions = store.list_versions(secret_id)
            content = store.get_by_secret_id_and_version(secret_id, "v1")

        assert versions == ["v1", "v2"]
        assert content.encrypted_content == "c1"
        assert content.metadata == {"mode": "0400"}
        assert content.secret_series_id == secret_id

    def test_duplicate_version(self, database, secret_id):
        """Version labels are unique within a series."""
        with pytest.raises(ConstraintViolationError):
            with database.transaction(write=True) as tx:
                store = SecretContentStore(tx)
                store.create(secret_id, "c1", "", "alice")
                store.create(secret_id, "c2", "", "alice")

    def test_delete_version(self, database, secret_id):
        """Deleting one version leaves the others."""
        with database.transaction(write=True) as tx:
            store = SecretContentStore(tx)
            store.create(secret_id, "c1", "v1", "alice")
            store.create(secret_id, "c2", "v2", "alice")

        with database.transaction(write=True) as tx:
            store = SecretContentStore(tx)
            assert store.delete_by_secret_id_and_version(secret_id, "v1") is True
            assert store.delete_by_secret_id_and_version(secret_id, "v1") is False

        with database.transaction() as tx:
            remaining = SecretContentStore(tx).get_by_secret_id(secret_id)

        assert [content.version for content in remaining] == ["v2"]

    def test_missing_series(self, database):
        """Content for an unknown series violates the foreign key."""
        with pytest.raises(ConstraintViolationError):
            with database.transaction(write=True) as tx:
                SecretContentStore(tx).create(12345, "c1", "v1", "alice")
