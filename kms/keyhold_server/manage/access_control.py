"""
Access control for Keyhold Server.

This module owns the two relations of the authorization graph:
- Membership: client -> group (enroll / evict)
- Access grant: group -> secret series (allow / revoke)

and answers traversal queries over them, including assembly of the
sanitized secret views a client or group may see.

Invariants:
    - Referenced entities are checked and the relation written in one
      transaction; a failed check leaves no partial writes
    - Duplicate memberships and grants are rejected by UNIQUE constraints
    - Revoke and evict are idempotent
    - sanitized_secret_for() returns None for a missing secret, an
      unauthorized client and a missing version alike

How to change safely:
    - Never make sanitized_secret_for() report why it returned None;
      callers needing that must check existence themselves
    - New traversals must run inside a single transaction
"""

from __future__ import annotations

import logging
import time

from ..errors import InvalidArgumentError, ReferenceNotFoundError
from ..models import (
    Client,
    Group,
    SanitizedSecret,
    SecretSeries,
    SecretSeriesAndContent,
)
from ..store import (
    ClientStore,
    Database,
    GroupStore,
    SecretContentStore,
    SecretSeriesStore,
    Transaction,
    check_id,
)
from ..store.clients import client_from_row
from ..store.groups import group_from_row
from ..store.secret_series import series_from_row

logger = logging.getLogger(__name__)


class AccessControlManager:
    """Manages memberships and access grants.

    This class provides:
    - Enrolling clients in groups and evicting them
    - Granting groups access to secrets and revoking it
    - Reverse lookups (groups of a client, clients of a secret, ...)
    - Sanitized secret views reachable by a client or a group

    Thread safety:
        Holds no state beyond the database; each call uses its own transaction.

    Example:
        >>> acl = AccessControlManager(database)
        >>> acl.enroll_client(client_id, group_id)
        >>> acl.allow_access(secret_id, group_id)
        >>> acl.sanitized_secret_for(client, "db-pass", "v1")
        SanitizedSecret(id=1, name='db-pass', version='v1', ...)
    """

    def __init__(self, database: Database) -> None:
        self.database = database

    def allow_access(self, secret_id: int, group_id: int) -> None:
        """Grant a group access to a secret series.

        Raises:
            ReferenceNotFoundError: If the group or secret doesn't exist
            ConstraintViolationError: If the grant already exists
        """
        check_id(secret_id, "secret_id")
        check_id(group_id, "group_id")

        with self.database.transaction(write=True) as tx:
            self._check_grant_references(tx, secret_id, group_id, "allow access")
            tx.execute(
                "INSERT INTO accessgrants (group_id, secret_id, created_at) VALUES (?, ?, ?)",
                (group_id, secret_id, int(time.time() * 1000)),
            )

        logger.debug("Allowed access", extra={"secret_id": secret_id, "group_id": group_id})

    def revoke_access(self, secret_id: int, group_id: int) -> None:
        """Revoke a group's access to a secret series. No-op if not granted.

        Raises:
            ReferenceNotFoundError: If the group or secret doesn't exist
        """
        check_id(secret_id, "secret_id")
        check_id(group_id, "group_id")

        with self.database.transaction(write=True) as tx:
            self._check_grant_references(tx, secret_id, group_id, "revoke access")
            tx.execute(
                "DELETE FROM accessgrants WHERE secret_id = ? AND group_id = ?",
                (secret_id, group_id),
            )

        logger.debug("Revoked access", extra={"secret_id": secret_id, "group_id": group_id})

    def enroll_client(self, client_id: int, group_id: int) -> None:
        """Add a client to a group.

        Raises:
            ReferenceNotFoundError: If the client or group doesn't exist
            ConstraintViolationError: If the client is already a member
        """
        check_id(client_id, "client_id")
        check_id(group_id, "group_id")

        with self.database.transaction(write=True) as tx:
            self._check_membership_references(tx, client_id, group_id, "enroll membership")
            tx.execute(
                "INSERT INTO memberships (client_id, group_id, created_at) VALUES (?, ?, ?)",
                (client_id, group_id, int(time.time() * 1000)),
            )

        logger.debug("Enrolled client", extra={"client_id": client_id, "group_id": group_id})

    def evict_client(self, client_id: int, group_id: int) -> None:
        """Remove a client from a group. No-op if not a member.

        Raises:
            ReferenceNotFoundError: If the client or group doesn't exist
        """
        check_id(client_id, "client_id")
        check_id(group_id, "group_id")

        with self.database.transaction(write=True) as tx:
            self._check_membership_references(tx, client_id, group_id, "evict membership")
            tx.execute(
                "DELETE FROM memberships WHERE client_id = ? AND group_id = ?",
                (client_id, group_id),
            )

        logger.debug("Evicted client", extra={"client_id": client_id, "group_id": group_id})

    def sanitized_secrets_for_group(self, group: Group) -> frozenset[SanitizedSecret]:
        """Every version of every secret the group has been granted."""
        if group is None:
            raise InvalidArgumentError("group is required", argument="group")

        with self.database.transaction() as tx:
            return self._sanitize_all(tx, self._series_for_group(tx, group))

    def sanitized_secrets_for_client(self, client: Client) -> frozenset[SanitizedSecret]:
        """Every version of every secret reachable through the client's groups."""
        if client is None:
            raise InvalidArgumentError("client is required", argument="client")

        with self.database.transaction() as tx:
            return self._sanitize_all(tx, self._series_for_client(tx, client))

    def sanitized_secret_for(
        self,
        client: Client,
        name: str,
        version: str,
    ) -> SanitizedSecret | None:
        """Look up one version of a secret on behalf of a client.

        Args:
            client: Client requesting the secret
            name: Secret series name
            version: Version label ("" for the unversioned default)

        Returns:
            The sanitized secret, or None when the secret doesn't exist, the
            client isn't authorized, or the version doesn't exist. These
            cases are deliberately indistinguishable; a caller that needs to
            tell them apart must query the secret store directly.

        Raises:
            InvalidArgumentError: If client is missing, name is empty or
                version is None
        """
        if client is None:
            raise InvalidArgumentError("client is required", argument="client")
        if not name:
            raise InvalidArgumentError("secret name must not be empty", argument="name")
        if version is None:
            raise InvalidArgumentError("version must not be None", argument="version")

        with self.database.transaction() as tx:
            row = tx.fetchone(
                """
                SELECT DISTINCT s.* FROM secrets s
                JOIN accessgrants a ON s.id = a.secret_id
                JOIN memberships m ON a.group_id = m.group_id
                JOIN clients c ON c.id = m.client_id
                WHERE s.name = ? AND c.name = ?
                """,
                (name, client.name),
            )
            if row is None:
                return None

            series = series_from_row(row)
            content = SecretContentStore(tx).get_by_secret_id_and_version(series.id, version)
            if content is None:
                return None

            return SanitizedSecret.from_series_and_content(
                SecretSeriesAndContent(series=series, content=content)
            )

    def secret_series_for_group(self, group: Group) -> frozenset[SecretSeries]:
        """Secret series the group has been granted."""
        with self.database.transaction() as tx:
            return self._series_for_group(tx, group)

    def secret_series_for_client(self, client: Client) -> frozenset[SecretSeries]:
        """Secret series reachable through the client's groups."""
        with self.database.transaction() as tx:
            return self._series_for_client(tx, client)

    def groups_for_secret(self, secret: SecretSeries | SanitizedSecret) -> set[Group]:
        """Groups holding a grant on the named secret."""
        with self.database.transaction() as tx:
            rows = tx.fetchall(
                """
                SELECT DISTINCT g.* FROM acl_groups g
                JOIN accessgrants a ON g.id = a.group_id
                JOIN secrets s ON a.secret_id = s.id
                WHERE s.name = ?
                """,
                (secret.name,),
            )
        return {group_from_row(row) for row in rows}

    def groups_for_client(self, client: Client) -> set[Group]:
        """Groups the named client belongs to."""
        with self.database.transaction() as tx:
            rows = tx.fetchall(
                """
                SELECT DISTINCT g.* FROM acl_groups g
                JOIN memberships m ON g.id = m.group_id
                JOIN clients c ON c.id = m.client_id
                WHERE c.name = ?
                """,
                (client.name,),
            )
        return {group_from_row(row) for row in rows}

    def clients_for_group(self, group: Group) -> set[Client]:
        """Direct members of the named group."""
        with self.database.transaction() as tx:
            rows = tx.fetchall(
                """
                SELECT DISTINCT c.* FROM clients c
                JOIN memberships m ON c.id = m.client_id
                JOIN acl_groups g ON g.id = m.group_id
                WHERE g.name = ?
                """,
                (group.name,),
            )
        return {client_from_row(row) for row in rows}

    def clients_for_secret(self, secret: SecretSeries | SanitizedSecret) -> set[Client]:
        """Clients reachable to the named secret through any of their groups."""
        with self.database.transaction() as tx:
            rows = tx.fetchall(
                """
                SELECT DISTINCT c.* FROM clients c
                JOIN memberships m ON c.id = m.client_id
                JOIN accessgrants a ON m.group_id = a.group_id
                JOIN secrets s ON s.id = a.secret_id
                WHERE s.name = ?
                """,
                (secret.name,),
            )
        return {client_from_row(row) for row in rows}

    def _check_grant_references(
        self,
        tx: Transaction,
        secret_id: int,
        group_id: int,
        action: str,
    ) -> None:
        if GroupStore(tx).get_by_id(group_id) is None:
            logger.info(
                f"Failure to {action} groupId {group_id}, secretId {secret_id}: "
                "groupId not found."
            )
            raise ReferenceNotFoundError("group", group_id)

        if SecretSeriesStore(tx).get_by_id(secret_id) is None:
            logger.info(
                f"Failure to {action} groupId {group_id}, secretId {secret_id}: "
                "secretId not found."
            )
            raise ReferenceNotFoundError("secret", secret_id)

    def _check_membership_references(
        self,
        tx: Transaction,
        client_id: int,
        group_id: int,
        action: str,
    ) -> None:
        if ClientStore(tx).get_by_id(client_id) is None:
            logger.info(
                f"Failure to {action} clientId {client_id}, groupId {group_id}: "
                "clientId not found."
            )
            raise ReferenceNotFoundError("client", client_id)

        if GroupStore(tx).get_by_id(group_id) is None:
            logger.info(
                f"Failure to {action} clientId {client_id}, groupId {group_id}: "
                "groupId not found."
            )
            raise ReferenceNotFoundError("group", group_id)

    def _series_for_group(self, tx: Transaction, group: Group) -> frozenset[SecretSeries]:
        rows = tx.fetchall(
            """
            SELECT DISTINCT s.* FROM secrets s
            JOIN accessgrants a ON s.id = a.secret_id
            JOIN acl_groups g ON g.id = a.group_id
            WHERE g.name = ?
            """,
            (group.name,),
        )
        return frozenset(series_from_row(row) for row in rows)

    def _series_for_client(self, tx: Transaction, client: Client) -> frozenset[SecretSeries]:
        rows = tx.fetchall(
            """
            SELECT DISTINCT s.* FROM secrets s
            JOIN accessgrants a ON s.id = a.secret_id
            JOIN memberships m ON a.group_id = m.group_id
            JOIN clients c ON c.id = m.client_id
            WHERE c.name = ?
            """,
            (client.name,),
        )
        return frozenset(series_from_row(row) for row in rows)

    def _sanitize_all(
        self,
        tx: Transaction,
        series_set: frozenset[SecretSeries],
    ) -> frozenset[SanitizedSecret]:
        contents = SecretContentStore(tx)
        return frozenset(
            SanitizedSecret.from_series_and_content(
                SecretSeriesAndContent(series=series, content=content)
            )
            for series in series_set
            for content in contents.get_by_secret_id(series.id)
        )
