"""
Secret content table gateway.

Each row is one immutable version of a series' encrypted payload. Version
labels are unique within a series; the empty label is the unversioned
default.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time

from ..models import SecretContent
from .database import Transaction, check_id

logger = logging.getLogger(__name__)


def content_from_row(row: sqlite3.Row) -> SecretContent:
    """Map a secrets_content row to a SecretContent."""
    return SecretContent(
        id=row["id"],
        secret_series_id=row["secret_id"],
        encrypted_content=row["encrypted_content"],
        version=row["version"],
        created_at=row["created_at"],
        created_by=row["created_by"],
        updated_at=row["updated_at"],
        updated_by=row["updated_by"],
        metadata=json.loads(row["metadata_json"]),
    )


class SecretContentStore:
    """Reads and writes the secrets_content table within one transaction."""

    def __init__(self, tx: Transaction) -> None:
        self.tx = tx

    def create(
        self,
        secret_id: int,
        encrypted_content: str,
        version: str,
        creator: str,
        metadata: dict[str, str] | None = None,
    ) -> int:
        """Add a content version to a series.

        Returns:
            New content id

        Raises:
            ConstraintViolationError: If the version already exists for the series
        """
        now = int(time.time() * 1000)
        cursor = self.tx.execute(
            """
            INSERT INTO secrets_content (secret_id, encrypted_content, version, created_at,
                                         created_by, updated_at, updated_by, metadata_json)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                check_id(secret_id, "secret_id"),
                encrypted_content,
                version,
                now,
                creator,
                now,
                creator,
                json.dumps(metadata or {}),
            ),
        )
        return cursor.lastrowid

    def get_by_secret_id(self, secret_id: int) -> list[SecretContent]:
        """Get every version of a series, oldest first."""
        rows = self.tx.fetchall(
            "SELECT * FROM secrets_content WHERE secret_id = ? ORDER BY id",
            (check_id(secret_id, "secret_id"),),
        )
        return [content_from_row(row) for row in rows]

    def get_by_secret_id_and_version(self, secret_id: int, version: str) -> SecretContent | None:
        row = self.tx.fetchone(
            "SELECT * FROM secrets_content WHERE secret_id = ? AND version = ?",
            (check_id(secret_id, "secret_id"), version),
        )
        return content_from_row(row) if row else None

    def list_versions(self, secret_id: int) -> list[str]:
        rows = self.tx.fetchall(
            "SELECT version FROM secrets_content WHERE secret_id = ? ORDER BY id",
            (check_id(secret_id, "secret_id"),),
        )
        return [row["version"] for row in rows]

    def delete_by_secret_id_and_version(self, secret_id: int, version: str) -> bool:
        cursor = self.tx.execute(
            "DELETE FROM secrets_content WHERE secret_id = ? AND version = ?",
            (check_id(secret_id, "secret_id"), version),
        )
        return cursor.rowcount > 0
