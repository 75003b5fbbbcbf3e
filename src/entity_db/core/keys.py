"""Key composition for entity instances.

Derives every key an entity instance is stored at, and the partial keys
used as scan prefixes. Pure functions of the registry and the global
prefix; no I/O.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from .config import as_key_prefix
from .errors import InvalidArgumentError
from .types import is_key_part

if TYPE_CHECKING:
    from .registry import EntityRegistry
    from .types import (
        EntityDefinitionId,
        EntityInstance,
        Key,
        KeyPart,
        PropertyLookup,
    )


class KeyComposer:
    """Computes unique keys, indexed keys and scan prefixes.

    Args:
        registry: Validated entity definitions
        prefix: Key parts prepended to every composed key

    Key layouts:
        unique:  (*prefix, id, property, value)
        indexed: (*prefix, id, p1, v1, p2, v2, ..., primary_value)
    """

    def __init__(self, registry: EntityRegistry, prefix: Sequence[KeyPart] = ()):
        self.registry = registry
        self.prefix: Key = as_key_prefix(prefix)
        for part in self.prefix:
            if not is_key_part(part):
                raise InvalidArgumentError(f"Key prefix part must be a key part, got {part!r}")

    def unique_key(
        self,
        entity_definition_id: EntityDefinitionId,
        unique_property_name: str,
        unique_property_value: KeyPart,
    ) -> Key:
        """Return the key an instance is stored at for one unique property."""
        if not is_key_part(unique_property_value):
            raise InvalidArgumentError(
                f"Value of {entity_definition_id}.{unique_property_name} must be a key part, "
                f"got {type(unique_property_value).__name__}"
            )
        return (*self.prefix, entity_definition_id, unique_property_name, unique_property_value)

    def unique_keys(
        self, entity_definition_id: EntityDefinitionId, entity_instance: EntityInstance
    ) -> list[Key]:
        """Return one unique key per unique property, in declaration order."""
        definition = self.registry.definition(entity_definition_id)
        return [
            self.unique_key(
                entity_definition_id,
                name,
                property_value(entity_definition_id, entity_instance, name),
            )
            for name in definition.unique_properties
        ]

    def indexed_key(
        self,
        entity_definition_id: EntityDefinitionId,
        chain: Sequence[str],
        entity_instance: EntityInstance,
        primary_value: KeyPart,
    ) -> Key:
        """Return the key an instance is stored at for one indexed property chain."""
        lookup = [
            (name, property_value(entity_definition_id, entity_instance, name)) for name in chain
        ]
        return self.scan_prefix(entity_definition_id, lookup, primary_value)

    def indexed_keys(
        self, entity_definition_id: EntityDefinitionId, entity_instance: EntityInstance
    ) -> list[Key]:
        """Return one indexed key per indexed property chain, in declaration order."""
        definition = self.registry.definition(entity_definition_id)
        primary_value = property_value(
            entity_definition_id, entity_instance, definition.primary_property
        )
        return [
            self.indexed_key(entity_definition_id, chain, entity_instance, primary_value)
            for chain in definition.indexed_property_chains
        ]

    def all_keys(
        self, entity_definition_id: EntityDefinitionId, entity_instance: EntityInstance
    ) -> list[Key]:
        """Return every key an instance is stored at: unique keys, then indexed keys."""
        return [
            *self.unique_keys(entity_definition_id, entity_instance),
            *self.indexed_keys(entity_definition_id, entity_instance),
        ]

    def scan_prefix(
        self,
        entity_definition_id: EntityDefinitionId | None = None,
        lookup: PropertyLookup | None = None,
        trailing_value: KeyPart | None = None,
    ) -> Key:
        """Return a partial key to scan for.

        Args:
            entity_definition_id: The entity to scan, if any. If None, every
                entity under the global prefix is targeted.
            lookup: A single property name, or a sequence of (property, value)
                pairs optionally ending in a bare property name. If None, every
                key of the entity is targeted.
            trailing_value: A primary value appended after the lookup.

        Raises:
            InvalidArgumentError: if lookup or trailing_value is given without
                an entity definition id, or trailing_value without a lookup.
        """
        result: list[KeyPart] = list(self.prefix)

        if entity_definition_id is None:
            if lookup is not None or trailing_value is not None:
                raise InvalidArgumentError(
                    "entity_definition_id must be provided if lookup or trailing_value are provided"
                )
            return tuple(result)
        result.append(entity_definition_id)

        if lookup is None:
            if trailing_value is not None:
                raise InvalidArgumentError("lookup must be provided if trailing_value is provided")
            return tuple(result)
        result.extend(_flatten_lookup(lookup))

        if trailing_value is not None:
            if not is_key_part(trailing_value):
                raise InvalidArgumentError(f"Trailing value must be a key part, got {trailing_value!r}")
            result.append(trailing_value)

        return tuple(result)


def property_value(
    entity_definition_id: EntityDefinitionId, entity_instance: EntityInstance, name: str
) -> KeyPart:
    """Read a key property from an instance.

    Raises:
        InvalidArgumentError: if the property is missing or not a key part.
    """
    if not isinstance(entity_instance, Mapping):
        raise InvalidArgumentError(
            f"{entity_definition_id} instance must be a mapping, got {type(entity_instance).__name__}"
        )
    try:
        value = entity_instance[name]
    except KeyError:
        raise InvalidArgumentError(
            f"{entity_definition_id} instance has no value for key property {name!r}"
        ) from None
    if not is_key_part(value):
        raise InvalidArgumentError(
            f"{entity_definition_id}.{name} must be str, bytes, int, float or bool, "
            f"got {type(value).__name__}"
        )
    return value


def _flatten_lookup(lookup: PropertyLookup) -> list[KeyPart]:
    """Flatten a property lookup into key parts."""
    if isinstance(lookup, str):
        return [lookup]
    if not isinstance(lookup, Sequence) or isinstance(lookup, (bytes, bytearray)):
        raise InvalidArgumentError(f"Lookup must be a property name or a sequence of pairs, got {lookup!r}")

    parts: list[KeyPart] = []
    last = len(lookup) - 1
    for i, item in enumerate(lookup):
        if isinstance(item, str):
            if i != last:
                raise InvalidArgumentError(
                    f"A bare property name may only end a lookup, got {item!r} at position {i}"
                )
            parts.append(item)
            continue
        if not isinstance(item, Sequence) or isinstance(item, (bytes, bytearray)) or len(item) != 2:
            raise InvalidArgumentError(f"Lookup pair must be (property, value), got {item!r}")
        name, value = item
        if not isinstance(name, str):
            raise InvalidArgumentError(f"Lookup property name must be a string, got {name!r}")
        if not is_key_part(value):
            raise InvalidArgumentError(f"Lookup value for {name!r} must be a key part, got {value!r}")
        parts.extend((name, value))
    return parts
