"""
Client table gateway.

Clients are owned by the identity side of the service; the managers only
read them. create/delete exist so the identity layer (and tests) can seed
the table.
"""

from __future__ import annotations

import logging
import sqlite3
import time

from ..models import Client
from .database import Transaction, check_id

logger = logging.getLogger(__name__)


def client_from_row(row: sqlite3.Row) -> Client:
    """Map a clients row to a Client."""
    return Client(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        created_at=row["created_at"],
        created_by=row["created_by"],
        updated_at=row["updated_at"],
        updated_by=row["updated_by"],
        enabled=bool(row["enabled"]),
        automation_allowed=bool(row["automation_allowed"]),
    )


class ClientStore:
    """Reads and writes the clients table within one transaction."""

    def __init__(self, tx: Transaction) -> None:
        self.tx = tx

    def get_by_id(self, client_id: int) -> Client | None:
        row = self.tx.fetchone(
            "SELECT * FROM clients WHERE id = ?", (check_id(client_id, "client_id"),)
        )
        return client_from_row(row) if row else None

    def get_by_name(self, name: str) -> Client | None:
        row = self.tx.fetchone("SELECT * FROM clients WHERE name = ?", (name,))
        return client_from_row(row) if row else None

    def list_all(self) -> list[Client]:
        return [client_from_row(row) for row in self.tx.fetchall("SELECT * FROM clients")]

    def create(
        self,
        name: str,
        creator: str,
        description: str,
        enabled: bool = True,
        automation_allowed: bool = False,
    ) -> int:
        """Create a client.

        Returns:
            New client id

        Raises:
            ConstraintViolationError: If the name is taken
        """
        now = int(time.time() * 1000)
        cursor = self.tx.execute(
            """
            INSERT INTO clients (name, description, created_at, created_by,
                                 updated_at, updated_by, enabled, automation_allowed)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (name, description, now, creator, now, creator, int(enabled), int(automation_allowed)),
        )
        logger.debug("Created client", extra={"client_name": name, "client_id": cursor.lastrowid})
        return cursor.lastrowid

    def delete_by_id(self, client_id: int) -> bool:
        """Delete a client and its memberships. Returns True if deleted."""
        cursor = self.tx.execute(
            "DELETE FROM clients WHERE id = ?", (check_id(client_id, "client_id"),)
        )
        return cursor.rowcount > 0
