"""Errors raised by the storage layer."""

from __future__ import annotations

from collections.abc import Hashable

LOCK_NOT_AVAILABLE_CODE = "55P03"


class GameLibraryError(Exception):
    """Base error of the game library."""


class NotFoundError(GameLibraryError, LookupError):
    """An entity with the given id does not exist."""

    def __init__(self, entity: str, entity_id: Hashable) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NotFoundError):
            return NotImplemented
        return (self.entity, self.entity_id) == (other.entity, other.entity_id)

    def __hash__(self) -> int:
        return hash((self.entity, self.entity_id))


class TransactionLockedError(GameLibraryError):
    """A row is locked by another transaction."""

    def __init__(self, message: str = "transaction locked") -> None:
        super().__init__(message)


def check_rows_affected(count: int, entity: str, entity_id: Hashable) -> None:
    """Raise NotFoundError when a statement touched no rows."""
    if count == 0:
        raise NotFoundError(entity, entity_id)