"""Entity DB - typed secondary indexing over an ordered key-value store."""

from .core.config import DbConfig, EntityDefinition, StoreConfig
from .core.entity_db import EntityDb
from .core.errors import (
    CommitFailedError,
    DefinitionError,
    EntityDbError,
    InvalidArgumentError,
    KeyEncodingError,
    RecoveryError,
    StoreClosedError,
    StoreError,
    UnknownTypeError,
    WALCorruptionError,
)
from .core.keys import KeyComposer
from .core.registry import EntityRegistry
from .core.types import CommitResult, EntityInstance, Key, KeyPart, KvEntry, KvEntryMaybe, PropertyLookupPair
from .kv import KvConnection, open_kv
from .session import db_runner, do_with_db, do_with_specific_db, session

__all__ = [
    "DbConfig",
    "EntityDefinition",
    "StoreConfig",
    "EntityDb",
    "EntityDbError",
    "UnknownTypeError",
    "InvalidArgumentError",
    "DefinitionError",
    "CommitFailedError",
    "KeyEncodingError",
    "StoreError",
    "WALCorruptionError",
    "RecoveryError",
    "StoreClosedError",
    "KeyComposer",
    "EntityRegistry",
    "CommitResult",
    "EntityInstance",
    "Key",
    "KeyPart",
    "KvEntry",
    "KvEntryMaybe",
    "PropertyLookupPair",
    "KvConnection",
    "open_kv",
    "session",
    "do_with_db",
    "do_with_specific_db",
    "db_runner",
]
