"""
Store module for Keyhold Server - SQLite persistence.

This module handles:
- The SQLite database, its schema and transaction handles
- Table gateways for clients, groups, secret series and secret content

Gateways never open their own transactions; they are constructed against
a Transaction acquired by the caller.

Invariants:
    - Absent rows are returned as None or an empty list, never an error
    - Identifiers are checked against the 32-bit key range before querying
    - Integrity errors surface as ConstraintViolationError
"""

from .clients import ClientStore
from .database import Database, DatabaseNotInitializedError, Transaction, check_id
from .groups import GroupStore
from .secret_content import SecretContentStore
from .secret_series import SecretSeriesStore

__all__ = [
    "Database",
    "DatabaseNotInitializedError",
    "Transaction",
    "check_id",
    "ClientStore",
    "GroupStore",
    "SecretSeriesStore",
    "SecretContentStore",
]
