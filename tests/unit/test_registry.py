"""Unit tests for entity definitions and the registry."""

import pytest

from entity_db.core.config import DbConfig, EntityDefinition
from entity_db.core.errors import DefinitionError, UnknownTypeError
from entity_db.core.registry import EntityRegistry

PERSON = EntityDefinition(
    id="person",
    unique_properties=["ssn", "email"],
    indexed_property_chains=[["lastname", "firstname"], ["country", "zipcode"]],
)
INVOICE = EntityDefinition(
    id="invoice",
    unique_properties=["invoiceNumber"],
    indexed_property_chains=[["customerEmail"]],
)


@pytest.fixture
def registry():
    return EntityRegistry({"person": PERSON, "invoice": INVOICE})


def test_definition_freezes_sequences():
    """Test that list arguments are stored as tuples."""
    chain = ["a", "b"]
    definition = EntityDefinition(id="x", unique_properties=["id"], indexed_property_chains=[chain])
    chain.append("c")

    assert definition.unique_properties == ("id",)
    assert definition.indexed_property_chains == (("a", "b"),)
    assert definition.primary_property == "id"


def test_db_config_defaults():
    config = DbConfig(entity_definitions={"person": PERSON}, prefix=["tenant", 1])
    assert config.db_file_path is None
    assert config.prefix == ("tenant", 1)


def test_registry_lookup(registry):
    assert registry.definition("person") is PERSON
    assert registry["invoice"] is INVOICE
    assert "person" in registry
    assert "product" not in registry
    assert sorted(registry) == ["invoice", "person"]
    assert len(registry) == 2


def test_registry_property_accessors(registry):
    assert registry.unique_properties("person") == ("ssn", "email")
    assert registry.indexed_property_chains("person") == (("lastname", "firstname"), ("country", "zipcode"))
    assert registry.primary_property("invoice") == "invoiceNumber"


def test_registry_unknown_type(registry):
    with pytest.raises(UnknownTypeError, match="product"):
        registry.definition("product")
    # Mapping.get still works since UnknownTypeError is a KeyError
    assert registry.get("product") is None


def test_registry_unhashable_id_is_unknown(registry):
    with pytest.raises(UnknownTypeError):
        registry.definition(["person"])


def test_registry_is_read_only(registry):
    with pytest.raises(TypeError):
        registry["product"] = PERSON


def test_registry_does_not_follow_caller_mapping():
    definitions = {"person": PERSON}
    registry = EntityRegistry(definitions)
    definitions["invoice"] = INVOICE

    assert "invoice" not in registry


def test_rejects_id_mismatch():
    """Test that a definition must be registered under its own id."""
    with pytest.raises(DefinitionError, match="declares id"):
        EntityRegistry({"people": PERSON})


def test_rejects_empty_unique_properties():
    definition = EntityDefinition(id="thing", unique_properties=[])
    with pytest.raises(DefinitionError, match="no unique properties"):
        EntityRegistry({"thing": definition})


def test_rejects_empty_chain():
    definition = EntityDefinition(id="thing", unique_properties=["id"], indexed_property_chains=[[]])
    with pytest.raises(DefinitionError, match="empty indexed property chain"):
        EntityRegistry({"thing": definition})


def test_rejects_duplicate_unique_properties():
    """Test that duplicate unique properties are rejected, since they would share one key."""
    definition = EntityDefinition(id="thing", unique_properties=["ssn", "ssn"])
    with pytest.raises(DefinitionError, match="duplicate unique properties"):
        EntityRegistry({"thing": definition})


def test_rejects_duplicate_chains():
    definition = EntityDefinition(
        id="thing", unique_properties=["ssn"], indexed_property_chains=[["a"], ("a",)]
    )
    with pytest.raises(DefinitionError, match="duplicate indexed property chains"):
        EntityRegistry({"thing": definition})


def test_chains_sharing_a_leading_property_are_distinct():
    definition = EntityDefinition(
        id="thing", unique_properties=["ssn"], indexed_property_chains=[["a"], ["a", "b"]]
    )
    assert EntityRegistry({"thing": definition}).indexed_property_chains("thing") == (("a",), ("a", "b"))


def test_rejects_invalid_property_names():
    definition = EntityDefinition(id="thing", unique_properties=["id", ""])
    with pytest.raises(DefinitionError, match="invalid property name"):
        EntityRegistry({"thing": definition})


def test_rejects_non_string_id():
    definition = EntityDefinition(id=7, unique_properties=["id"])
    with pytest.raises(DefinitionError, match="non-empty string"):
        EntityRegistry({7: definition})


def test_rejects_non_definition_values():
    with pytest.raises(DefinitionError, match="must be an EntityDefinition"):
        EntityRegistry({"person": {"id": "person", "unique_properties": ["ssn"]}})
