"""
Error types for Keyhold Server.

This module defines the exceptions raised by the stores and managers:
- KeyholdError: Base exception
- ReferenceNotFoundError: A mutation referenced a missing entity
- ConstraintViolationError: A uniqueness constraint was violated
- InvalidArgumentError: Input rejected before any store access

Absent rows on read paths are not errors; they are returned as None or
an empty collection.

Invariants:
    - All errors inherit from KeyholdError
    - Errors include context for debugging
    - Errors raised inside a transaction roll it back
"""

from __future__ import annotations

from typing import Any


class KeyholdError(Exception):
    """Base exception for all Keyhold errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "KEYHOLD_ERROR"
        self.details = details or {}


class ReferenceNotFoundError(KeyholdError):
    """A referenced client, group or secret series does not exist.

    Raised when:
    - Granting or revoking access on a missing group or secret
    - Enrolling or evicting a missing client or group

    Attributes:
        kind: Entity kind ("client", "group", "secret")
        entity_id: The id that was not found
    """

    def __init__(self, kind: str, entity_id: int) -> None:
        super().__init__(
            f"{kind.capitalize()}Id {entity_id} doesn't exist.",
            code="REFERENCE_NOT_FOUND",
            details={"kind": kind, "id": entity_id},
        )
        self.kind = kind
        self.entity_id = entity_id


class ConstraintViolationError(KeyholdError):
    """A uniqueness constraint was violated.

    Raised when:
    - The same client is enrolled in a group twice
    - The same group is granted a secret twice
    - A version label is reused within a series
    - A client, group or secret name is reused
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, code="CONSTRAINT_VIOLATION")


class InvalidArgumentError(KeyholdError, ValueError):
    """An argument was rejected before touching the store.

    Raised when:
    - A secret name is empty
    - A version is None
    - An identifier does not fit the store's key range
    """

    def __init__(self, message: str, argument: str | None = None) -> None:
        super().__init__(
            message,
            code="INVALID_ARGUMENT",
            details={"argument": argument},
        )
        self.argument = argument
