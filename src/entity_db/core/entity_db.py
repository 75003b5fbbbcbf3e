"""EntityDb - main public API.

Stores entity instances under all of their unique and indexed keys, and
looks them up by unique property or by indexed property prefix.

An EntityInstance is stored directly at each unique key derived from its
definition's unique properties. For each indexed property chain it is also
stored at (id, p1, v1, p2, v2, ..., primary_value), where primary_value is
the value of the first unique property. Every key holds a full copy of the
instance, and all keys of one instance are written or removed in a single
atomic commit.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

from ..session import session
from .errors import CommitFailedError, InvalidArgumentError
from .keys import KeyComposer
from .registry import EntityRegistry

if TYPE_CHECKING:
    from ..interfaces.kv import AtomicOperation, KvConnection
    from .config import DbConfig
    from .types import (
        EntityDefinitionId,
        EntityInstance,
        Key,
        KeyPart,
        PropertyLookup,
    )

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntityDb:
    """Typed, indexed entity storage over an ordered key-value store.

    Args:
        config: Entity definitions, store location and key prefix

    Public API:
        - save(id, instance): Write instance at all of its keys
        - delete(id, property, value): Delete the instance found by a unique property
        - delete_entity_instance(id, instance): Delete instance from all of its keys
        - find(id, property, value): Point lookup by unique property
        - find_all(id, lookup): Prefix lookup
        - clear_entity(id): Delete every key of one entity
        - clear_all_entities(): Delete every key under the prefix

    Invariants:
        - A saved instance is stored at len(unique_properties) +
          len(indexed_property_chains) keys, each holding the same instance
        - Each operation uses its own connection, closed on every exit path
        - No operation retries a failed commit
    """

    def __init__(self, config: DbConfig):
        self.config = config
        self.registry = EntityRegistry(config.entity_definitions)
        self.keys = KeyComposer(self.registry, config.prefix)

    async def save(self, entity_definition_id: EntityDefinitionId, entity_instance: EntityInstance) -> None:
        """Save an entity instance at all of its keys.

        Replaces any instance stored at the same keys. Indexed keys left over
        from an earlier save with different indexed values are not removed.
        """
        keys = self.keys.all_keys(entity_definition_id, entity_instance)
        snapshot = dict(entity_instance)

        async def write(connection: KvConnection) -> None:
            atomic = connection.atomic()
            for key in keys:
                atomic.set(key, snapshot)
            await self._commit(atomic, f"save {entity_definition_id}")

        await self.do_with_connection(write)
        logger.debug(f"Saved {entity_definition_id} at {len(keys)} keys")

    async def delete_entity_instance(
        self, entity_definition_id: EntityDefinitionId, entity_instance: EntityInstance
    ) -> None:
        """Delete an entity instance from all of its keys."""
        # find all keys the same way as when saving
        keys = self.keys.all_keys(entity_definition_id, entity_instance)

        async def remove(connection: KvConnection) -> None:
            atomic = connection.atomic()
            for key in keys:
                atomic.delete(key)
            await self._commit(atomic, f"delete {entity_definition_id}")

        await self.do_with_connection(remove)
        logger.debug(f"Deleted {entity_definition_id} from {len(keys)} keys")

    async def delete(
        self,
        entity_definition_id: EntityDefinitionId,
        unique_property_name: str,
        unique_property_value: KeyPart,
    ) -> None:
        """Delete the entity instance found by a unique property, if any.

        The stored instance is read first, since removing its indexed keys
        needs all of its indexed values. The delete is committed only if the
        unique key still holds the instance that was read.
        """
        key = self._lookup_unique_key(entity_definition_id, unique_property_name, unique_property_value)

        async def remove(connection: KvConnection) -> None:
            entry = await connection.get(key)
            if not entry.exists:
                logger.debug(f"Nothing to delete at {entity_definition_id}.{unique_property_name}")
                return
            atomic = connection.atomic().check(key, entry.versionstamp)
            for stored_key in self.keys.all_keys(entity_definition_id, entry.value):
                atomic.delete(stored_key)
            await self._commit(atomic, f"delete {entity_definition_id}")

        await self.do_with_connection(remove)

    async def find(
        self,
        entity_definition_id: EntityDefinitionId,
        unique_property_name: str,
        unique_property_value: KeyPart,
    ) -> dict[str, Any] | None:
        """Find an entity instance by a unique property.

        Returns:
            The stored instance, or None if nothing is stored at the key.
        """
        key = self._lookup_unique_key(entity_definition_id, unique_property_name, unique_property_value)

        async def read(connection: KvConnection) -> dict[str, Any] | None:
            entry = await connection.get(key)
            return entry.value if entry.exists else None

        return await self.do_with_connection(read)

    async def find_all(
        self,
        entity_definition_id: EntityDefinitionId | None = None,
        lookup: PropertyLookup | None = None,
    ) -> list[dict[str, Any]]:
        """Find all entity instances under a key prefix.

        Args:
            entity_definition_id: The entity to search, if any. If None, all
                entities are searched.
            lookup: If None, every key of the entity is searched. A property
                name searches every key of the entity under that property. A
                sequence of (property, value) pairs searches one indexed
                property chain, or a leading part of it.

        Returns:
            The stored values in ascending key order; one per matching key.
        """
        if entity_definition_id is not None:
            self.registry.definition(entity_definition_id)
        prefix = self.keys.scan_prefix(entity_definition_id, lookup)

        async def scan(connection: KvConnection) -> list[dict[str, Any]]:
            return [entry.value for entry in await connection.list(prefix)]

        return await self.do_with_connection(scan)

    async def clear_entity(self, entity_definition_id: EntityDefinitionId) -> None:
        """Delete every key of one entity, e.g. clear_entity("person").

        Raises:
            InvalidArgumentError: if the id is not a non-empty string. Use
                clear_all_entities() to clear everything.
        """
        if not isinstance(entity_definition_id, str) or not entity_definition_id:
            raise InvalidArgumentError(
                "EntityDefinition id must be a non-empty string. "
                "If you want to clear all entities, use clear_all_entities() instead."
            )
        self.registry.definition(entity_definition_id)
        await self._clear(self.keys.scan_prefix(entity_definition_id), entity_definition_id)

    async def clear_all_entities(self) -> None:
        """Delete every key known by this EntityDb."""
        await self._clear(self.keys.scan_prefix(), "all entities")

    async def _clear(self, prefix: Key, label: str) -> None:
        async def remove(connection: KvConnection) -> int:
            entries = await connection.list(prefix)
            atomic = connection.atomic()
            for entry in entries:
                atomic.check(entry.key, entry.versionstamp).delete(entry.key)
            await self._commit(atomic, f"clear {label}")
            return len(entries)

        count = await self.do_with_connection(remove)
        logger.info(f"Cleared {label}: {count} keys")

    async def do_with_connection(self, fn: Callable[[KvConnection], Awaitable[T]]) -> T:
        """Run fn against a fresh connection, closed on every exit path."""
        async with session(self.config.db_file_path) as connection:
            return await fn(connection)

    def _lookup_unique_key(
        self,
        entity_definition_id: EntityDefinitionId,
        unique_property_name: str,
        unique_property_value: KeyPart,
    ) -> Key:
        definition = self.registry.definition(entity_definition_id)
        if unique_property_name not in definition.unique_properties:
            raise InvalidArgumentError(
                f"{unique_property_name!r} is not a unique property of {entity_definition_id!r}; "
                f"expected one of {list(definition.unique_properties)}"
            )
        return self.keys.unique_key(entity_definition_id, unique_property_name, unique_property_value)

    @staticmethod
    async def _commit(atomic: AtomicOperation, label: str) -> None:
        result = await atomic.commit()
        if not result.ok:
            raise CommitFailedError(f"Commit failed: {label}")
