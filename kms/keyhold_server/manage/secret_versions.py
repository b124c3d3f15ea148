"""
Versioned secrets for Keyhold Server.

A secret is a series (its durable, named identity) plus an ordered set of
immutable content versions. This module does not map to a table itself;
it composes the series and content stores into one API.

Invariants:
    - Creating a secret with an existing name appends a version
    - Version labels are unique within a series
    - A series never outlives its last content version
    - Reads never disclose authorization state; they are unfiltered and
      callers must apply AccessControlManager before disclosure
"""

from __future__ import annotations

import logging

from ..errors import InvalidArgumentError
from ..models import SecretSeriesAndContent
from ..store import Database, SecretContentStore, SecretSeriesStore, check_id

logger = logging.getLogger(__name__)


def _require_name(name: str) -> None:
    if not name:
        raise InvalidArgumentError("secret name must not be empty", argument="name")


def _require_version(version: str) -> None:
    if version is None:
        raise InvalidArgumentError("version must not be None", argument="version")


class SecretVersionManager:
    """Creates, reads and deletes secret versions.

    Example:
        >>> secrets = SecretVersionManager(database)
        >>> secret_id = secrets.create_secret(
        ...     "db-pass", "ciphertext", "v1", "alice", {}, "Database password"
        ... )
        >>> secrets.versions_for_name("db-pass")
        ['v1']
    """

    def __init__(self, database: Database) -> None:
        self.database = database

    def create_secret(
        self,
        name: str,
        encrypted_secret: str,
        version: str,
        creator: str,
        metadata: dict[str, str],
        description: str,
        type: str | None = None,
        generation_options: dict[str, str] | None = None,
    ) -> int:
        """Create a secret, or add a version to the existing series of that name.

        The series attributes (description, type, generation options) are
        only used when the series is new.

        Args:
            name: Secret series name
            encrypted_secret: Encrypted payload
            version: Version label ("" for the unversioned default)
            creator: Creator recorded on new rows
            metadata: Metadata stored with the content version
            description: Description of a new series
            type: Optional type tag of a new series
            generation_options: Optional generation options of a new series

        Returns:
            Id of the secret series

        Raises:
            InvalidArgumentError: If name is empty or version is None
            ConstraintViolationError: If the version already exists
        """
        _require_name(name)
        _require_version(version)

        with self.database.transaction(write=True) as tx:
            series_store = SecretSeriesStore(tx)
            series = series_store.get_by_name(name)
            if series is not None:
                secret_id = series.id
            else:
                secret_id = series_store.create(
                    name, creator, description, type, generation_options
                )

            SecretContentStore(tx).create(secret_id, encrypted_secret, version, creator, metadata)

        logger.info(
            "Created secret version",
            extra={"secret_name": name, "secret_id": secret_id, "version": version},
        )
        return secret_id

    def secrets_by_id(self, secret_id: int) -> list[SecretSeriesAndContent]:
        """All versions of a series; empty if the series doesn't exist."""
        check_id(secret_id, "secret_id")

        with self.database.transaction() as tx:
            series = SecretSeriesStore(tx).get_by_id(secret_id)
            if series is None:
                return []
            return [
                SecretSeriesAndContent(series=series, content=content)
                for content in SecretContentStore(tx).get_by_secret_id(secret_id)
            ]

    def secret_by_id_and_version(
        self,
        secret_id: int,
        version: str,
    ) -> SecretSeriesAndContent | None:
        """One version of a series by id, or None."""
        check_id(secret_id, "secret_id")
        _require_version(version)

        with self.database.transaction() as tx:
            series = SecretSeriesStore(tx).get_by_id(secret_id)
            if series is None:
                return None

            content = SecretContentStore(tx).get_by_secret_id_and_version(secret_id, version)
            if content is None:
                return None

            return SecretSeriesAndContent(series=series, content=content)

    def secret_by_name_and_version(
        self,
        name: str,
        version: str,
    ) -> SecretSeriesAndContent | None:
        """One version of a series by name, or None."""
        _require_name(name)
        _require_version(version)

        with self.database.transaction() as tx:
            series = SecretSeriesStore(tx).get_by_name(name)
            if series is None:
                return None

            content = SecretContentStore(tx).get_by_secret_id_and_version(series.id, version)
            if content is None:
                return None

            return SecretSeriesAndContent(series=series, content=content)

    def versions_for_name(self, name: str) -> list[str]:
        """Version labels of the named series; empty if it doesn't exist."""
        if name is None:
            raise InvalidArgumentError("secret name must not be None", argument="name")

        with self.database.transaction() as tx:
            series = SecretSeriesStore(tx).get_by_name(name)
            if series is None:
                return []
            return SecretContentStore(tx).list_versions(series.id)

    def all_secrets(self) -> list[SecretSeriesAndContent]:
        """Every version of every secret, without any authorization filter."""
        with self.database.transaction() as tx:
            contents = SecretContentStore(tx)
            return [
                SecretSeriesAndContent(series=series, content=content)
                for series in SecretSeriesStore(tx).list_all()
                for content in contents.get_by_secret_id(series.id)
            ]

    def delete_secrets_by_name(self, name: str) -> None:
        """Delete a series with all its versions and grants. No-op if absent."""
        _require_name(name)

        with self.database.transaction(write=True) as tx:
            deleted = SecretSeriesStore(tx).delete_by_name(name)

        if deleted:
            logger.info("Deleted secret series", extra={"secret_name": name})

    def delete_secret_by_name_and_version(self, name: str, version: str) -> None:
        """Delete one version; the series goes with its last version.

        No-op if the series or version doesn't exist.
        """
        _require_name(name)
        _require_version(version)

        with self.database.transaction(write=True) as tx:
            series_store = SecretSeriesStore(tx)
            content_store = SecretContentStore(tx)

            series = series_store.get_by_name(name)
            if series is None:
                return

            content_store.delete_by_secret_id_and_version(series.id, version)

            if not content_store.get_by_secret_id(series.id):
                series_store.delete_by_id(series.id)
                logger.info(
                    "Deleted last version, removed secret series",
                    extra={"secret_name": name, "secret_id": series.id},
                )
