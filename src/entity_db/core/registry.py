"""Entity definition registry.

Validates the entity definitions of a db config once, then answers
read-only questions about them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType

from .config import EntityDefinition
from .errors import DefinitionError, UnknownTypeError
from .types import EntityDefinitionId

logger = logging.getLogger(__name__)


class EntityRegistry(Mapping[EntityDefinitionId, EntityDefinition]):
    """Immutable mapping from entity definition id to its definition.

    Args:
        entity_definitions: Definitions keyed by their own id

    Invariants:
        - Every definition is registered under its own id
        - Every definition has at least one unique property
        - Every indexed property chain is non-empty
        - No unique property or indexed property chain is declared twice
        - Contents never change after construction
    """

    def __init__(self, entity_definitions: Mapping[EntityDefinitionId, EntityDefinition]):
        definitions: dict[EntityDefinitionId, EntityDefinition] = {}
        for entity_definition_id, definition in entity_definitions.items():
            self._validate(entity_definition_id, definition)
            definitions[entity_definition_id] = definition
        self._definitions = MappingProxyType(definitions)
        logger.debug(f"Registered entity definitions: {sorted(definitions)}")

    @staticmethod
    def _validate(entity_definition_id: object, definition: EntityDefinition) -> None:
        if not isinstance(definition, EntityDefinition):
            raise DefinitionError(
                f"Entity definition for {entity_definition_id!r} must be an EntityDefinition, "
                f"got {type(definition).__name__}"
            )
        if not isinstance(definition.id, str) or not definition.id:
            raise DefinitionError(f"Entity definition id must be a non-empty string: {definition.id!r}")
        if entity_definition_id != definition.id:
            raise DefinitionError(
                f"Entity definition registered as {entity_definition_id!r} declares id {definition.id!r}"
            )
        if not definition.unique_properties:
            raise DefinitionError(f"Entity definition {definition.id!r} has no unique properties")

        properties = list(definition.unique_properties)
        for chain in definition.indexed_property_chains:
            if not chain:
                raise DefinitionError(
                    f"Entity definition {definition.id!r} has an empty indexed property chain"
                )
            properties.extend(chain)

        for name in properties:
            if not isinstance(name, str) or not name:
                raise DefinitionError(
                    f"Entity definition {definition.id!r} has an invalid property name: {name!r}"
                )

        # Each unique property and each chain must yield its own key
        if len(set(definition.unique_properties)) != len(definition.unique_properties):
            raise DefinitionError(
                f"Entity definition {definition.id!r} has duplicate unique properties: "
                f"{list(definition.unique_properties)}"
            )
        if len(set(definition.indexed_property_chains)) != len(definition.indexed_property_chains):
            raise DefinitionError(
                f"Entity definition {definition.id!r} has duplicate indexed property chains"
            )

    def __getitem__(self, entity_definition_id: EntityDefinitionId) -> EntityDefinition:
        return self.definition(entity_definition_id)

    def __iter__(self) -> Iterator[EntityDefinitionId]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, entity_definition_id: object) -> bool:
        return entity_definition_id in self._definitions

    def definition(self, entity_definition_id: EntityDefinitionId) -> EntityDefinition:
        """Return the definition for an id, or raise UnknownTypeError."""
        try:
            return self._definitions[entity_definition_id]
        except (KeyError, TypeError):
            raise UnknownTypeError(entity_definition_id) from None

    def unique_properties(self, entity_definition_id: EntityDefinitionId) -> tuple[str, ...]:
        return tuple(self.definition(entity_definition_id).unique_properties)

    def indexed_property_chains(
        self, entity_definition_id: EntityDefinitionId
    ) -> tuple[tuple[str, ...], ...]:
        return tuple(self.definition(entity_definition_id).indexed_property_chains)

    def primary_property(self, entity_definition_id: EntityDefinitionId) -> str:
        return self.definition(entity_definition_id).primary_property
