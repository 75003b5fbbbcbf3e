"""Configuration for the entity db.

Defines entity definitions, the db configuration, and the tunable
parameters of the key-value store engine.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from .errors import InvalidArgumentError
from .types import EntityDefinitionId, Key, KeyPart


@dataclass(frozen=True)
class EntityDefinition:
    """Describes one kind of storable entity.

    For example, an entity definition with id "person", unique properties
    ("ssn", "email") and indexed property chains
    (("lastname", "firstname"), ("country", "zipcode")) stores each person
    instance at the following keys:

        ("person", "ssn", "123-45-6789")
        ("person", "email", "alice@example.com")
        ("person", "lastname", "Smith", "firstname", "Alice", "123-45-6789")
        ("person", "country", "US", "zipcode", "12345", "123-45-6789")

    The first two are unique keys, the last two are indexed keys. Indexed keys
    end with the value of the first unique property, the primary value.

    Attributes:
        id: Identifier of the entity kind, e.g. "person" or "invoice"
        unique_properties: Properties whose value identifies one instance
        indexed_property_chains: Chains of properties usable for prefix lookups
    """

    id: EntityDefinitionId
    unique_properties: Sequence[str]
    indexed_property_chains: Sequence[Sequence[str]] = ()

    def __post_init__(self):
        # Freeze caller-supplied lists so the definition cannot drift
        object.__setattr__(self, "unique_properties", tuple(self.unique_properties))
        object.__setattr__(
            self,
            "indexed_property_chains",
            tuple(tuple(chain) for chain in self.indexed_property_chains),
        )

    @property
    def primary_property(self) -> str:
        """The first unique property; its value ends every indexed key."""
        return self.unique_properties[0]


def as_key_prefix(prefix: Sequence[KeyPart]) -> Key:
    """Return prefix as a key tuple.

    Raises:
        InvalidArgumentError: if prefix is a str or bytes, which would
            otherwise be split into one key part per character.
    """
    if isinstance(prefix, (str, bytes, bytearray)):
        raise InvalidArgumentError(
            f"Key prefix must be a sequence of key parts, got {type(prefix).__name__} "
            f"{prefix!r}; use ({prefix!r},) for a single part"
        )
    return tuple(prefix)


@dataclass
class DbConfig:
    """Configuration of an EntityDb.

    Attributes:
        entity_definitions: Entity definitions keyed by their own id
        db_file_path: Directory of the store to open, or None for the
            process-default in-memory store
        prefix: Key parts prepended to every key the db writes or reads
    """

    entity_definitions: Mapping[EntityDefinitionId, EntityDefinition]
    db_file_path: str | None = None
    prefix: Key = field(default_factory=tuple)

    def __post_init__(self):
        self.prefix = as_key_prefix(self.prefix)


@dataclass
class StoreConfig:
    """Configuration parameters for the key-value store engine.

    Attributes:
        data_dir: Directory for the write-ahead log, or None for memory only
        wal_flush_every_write: Whether to fsync after each commit
        wal_compact_bytes: Log size that triggers rewriting it as a snapshot
    """

    data_dir: str | None = None
    wal_flush_every_write: bool = True
    wal_compact_bytes: int = 64 * 1024 * 1024  # 64 MB
