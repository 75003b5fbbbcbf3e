"""Exception hierarchy for the entity db.

Defines all custom exceptions used throughout the implementation.
"""

from __future__ import annotations


class EntityDbError(Exception):
    """Base exception for all entity db errors."""
    pass


class UnknownTypeError(EntityDbError, KeyError):
    """Raised when an entity definition id is not registered."""

    def __init__(self, entity_definition_id: object):
        self.entity_definition_id = entity_definition_id
        super().__init__(f"Unknown entity definition id: {entity_definition_id!r}")

    def __str__(self) -> str:
        # KeyError would repr() the message
        return str(self.args[0])


class InvalidArgumentError(EntityDbError, ValueError):
    """Raised for malformed lookups, prefixes or entity instances."""
    pass


class DefinitionError(EntityDbError, ValueError):
    """Raised when an entity definition or db config is invalid."""
    pass


class CommitFailedError(EntityDbError):
    """Raised when the store reports that an atomic commit did not apply."""
    pass


class KeyEncodingError(EntityDbError, ValueError):
    """Raised when a key part cannot be encoded or decoded."""
    pass


class StoreError(EntityDbError):
    """Base exception for key-value store failures."""
    pass


class WALCorruptionError(StoreError):
    """Raised when write-ahead log data is corrupted or invalid."""
    pass


class RecoveryError(StoreError):
    """Raised when recovery from persistent state fails."""
    pass


class StoreClosedError(StoreError):
    """Raised when a closed connection or store is used."""
    pass
