"""Common type definitions for the entity db.

Defines the key, value and record shapes shared by all components.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

# Store primitives
KeyPart = Union[bytes, str, int, float, bool]
Key = tuple[KeyPart, ...]
EncodedKey = bytes
EncodedValue = bytes
Versionstamp = int

# A stored record: (encoded_key, encoded_value, versionstamp)
Record = tuple[EncodedKey, EncodedValue, Versionstamp]

# A single mutation inside an atomic batch: (encoded_key, encoded_value_or_none)
Mutation = tuple[EncodedKey, Union[EncodedValue, None]]

# Entity shapes
EntityDefinitionId = str
EntityInstance = Mapping[str, Any]
PropertyLookupPair = tuple[str, KeyPart]
PropertyLookup = Union[str, Sequence[Union[PropertyLookupPair, str]]]

KEY_PART_TYPES = (bytes, str, int, float, bool)


def is_key_part(value: object) -> bool:
    """Return True if value can be used as one part of a store key."""
    return isinstance(value, KEY_PART_TYPES)


@dataclass(frozen=True)
class KvEntry:
    """A key with its stored value and the versionstamp of its last commit."""

    key: Key
    value: Any
    versionstamp: Versionstamp


@dataclass(frozen=True)
class KvEntryMaybe:
    """Result of a point read; value and versionstamp are None when absent."""

    key: Key
    value: Any = None
    versionstamp: Versionstamp | None = None

    @property
    def exists(self) -> bool:
        return self.versionstamp is not None


@dataclass(frozen=True)
class CommitResult:
    """Outcome of an atomic commit."""

    ok: bool
    versionstamp: Versionstamp | None = None
