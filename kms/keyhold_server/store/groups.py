"""
Group table gateway.
"""

from __future__ import annotations

import logging
import sqlite3
import time

from ..models import Group
from .database import Transaction, check_id

logger = logging.getLogger(__name__)


def group_from_row(row: sqlite3.Row) -> Group:
    """Map an acl_groups row to a Group."""
    return Group(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        created_at=row["created_at"],
        created_by=row["created_by"],
        updated_at=row["updated_at"],
        updated_by=row["updated_by"],
    )


class GroupStore:
    """Reads and writes the acl_groups table within one transaction."""

    def __init__(self, tx: Transaction) -> None:
        self.tx = tx

    def get_by_id(self, group_id: int) -> Group | None:
        row = self.tx.fetchone(
            "SELECT * FROM acl_groups WHERE id = ?", (check_id(group_id, "group_id"),)
        )
        return group_from_row(row) if row else None

    def get_by_name(self, name: str) -> Group | None:
        row = self.tx.fetchone("SELECT * FROM acl_groups WHERE name = ?", (name,))
        return group_from_row(row) if row else None

    def list_all(self) -> list[Group]:
        return [group_from_row(row) for row in self.tx.fetchall("SELECT * FROM acl_groups")]

    def create(self, name: str, creator: str, description: str) -> int:
        """Create a group.

        Returns:
            New group id

        Raises:
            ConstraintViolationError: If the name is taken
        """
        now = int(time.time() * 1000)
        cursor = self.tx.execute(
            """
            INSERT INTO acl_groups (name, description, created_at, created_by,
                                    updated_at, updated_by)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (name, description, now, creator, now, creator),
        )
        logger.debug("Created group", extra={"group_name": name, "group_id": cursor.lastrowid})
        return cursor.lastrowid

    def delete_by_id(self, group_id: int) -> bool:
        """Delete a group with its memberships and grants. Returns True if deleted."""
        cursor = self.tx.execute(
            "DELETE FROM acl_groups WHERE id = ?", (check_id(group_id, "group_id"),)
        )
        return cursor.rowcount > 0
