"""
Secret series table gateway.

A series is the named identity of a secret. Deleting a series removes its
content versions and access grants through foreign key cascades.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time

from ..models import SecretSeries
from .database import Transaction, check_id

logger = logging.getLogger(__name__)


def series_from_row(row: sqlite3.Row) -> SecretSeries:
    """Map a secrets row to a SecretSeries."""
    return SecretSeries(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        created_at=row["created_at"],
        created_by=row["created_by"],
        updated_at=row["updated_at"],
        updated_by=row["updated_by"],
        type=row["type"],
        generation_options=json.loads(row["options_json"]),
    )


class SecretSeriesStore:
    """Reads and writes the secrets table within one transaction."""

    def __init__(self, tx: Transaction) -> None:
        self.tx = tx

    def get_by_id(self, secret_id: int) -> SecretSeries | None:
        row = self.tx.fetchone(
            "SELECT * FROM secrets WHERE id = ?", (check_id(secret_id, "secret_id"),)
        )
        return series_from_row(row) if row else None

    def get_by_name(self, name: str) -> SecretSeries | None:
        row = self.tx.fetchone("SELECT * FROM secrets WHERE name = ?", (name,))
        return series_from_row(row) if row else None

    def list_all(self) -> list[SecretSeries]:
        return [series_from_row(row) for row in self.tx.fetchall("SELECT * FROM secrets")]

    def create(
        self,
        name: str,
        creator: str,
        description: str,
        type: str | None = None,
        generation_options: dict[str, str] | None = None,
    ) -> int:
        """Create a secret series.

        Args:
            name: Unique secret name
            creator: Creator recorded on the series
            description: Free-form description
            type: Optional type tag
            generation_options: Optional options used to generate the secret

        Returns:
            New series id

        Raises:
            ConstraintViolationError: If the name is taken
        """
        now = int(time.time() * 1000)
        cursor = self.tx.execute(
            """
            INSERT INTO secrets (name, description, created_at, created_by,
                                 updated_at, updated_by, type, options_json)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                name,
                description,
                now,
                creator,
                now,
                creator,
                type,
                json.dumps(generation_options or {}),
            ),
        )
        logger.debug(
            "Created secret series",
            extra={"secret_name": name, "secret_id": cursor.lastrowid},
        )
        return cursor.lastrowid

    def delete_by_id(self, secret_id: int) -> bool:
        cursor = self.tx.execute(
            "DELETE FROM secrets WHERE id = ?", (check_id(secret_id, "secret_id"),)
        )
        return cursor.rowcount > 0

    def delete_by_name(self, name: str) -> bool:
        cursor = self.tx.execute("DELETE FROM secrets WHERE name = ?", (name,))
        return cursor.rowcount > 0
