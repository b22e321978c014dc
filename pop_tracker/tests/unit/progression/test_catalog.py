"""Unit tests for catalog.py"""

import pytest

from pop_tracker.services.progression.catalog import (
    POP_CATALOG,
    POP_CATEGORIES,
    SEVEN_TRIALS,
    FlagCatalog,
    validate_categories,
)
from pop_tracker.services.progression.errors import InvalidCatalogError, UnknownFlagError
from pop_tracker.tests.fixtures.progression import CHAIN_FLAGS, DIAMOND_FLAGS, chain_catalog, diamond_catalog


def test_pop_catalog_root_and_terminal():
    """Plane of Knowledge is the root and Quarm the terminal flag."""
    assert POP_CATALOG.root_key == "knowledge"
    assert POP_CATALOG.terminal_key == "quarm"
    assert POP_CATALOG.root.name == "Plane of Knowledge"
    assert POP_CATALOG.terminal.name == "Plane of Time B (Quarm)"


def test_pop_catalog_has_nineteen_flags():
    assert len(POP_CATALOG) == 19
    assert POP_CATALOG.keys()[0] == "knowledge"
    assert POP_CATALOG.keys()[-1] == "quarm"


def test_storms_requires_the_seven_trials():
    assert list(POP_CATALOG.dependencies_of("storms")) == SEVEN_TRIALS


def test_time_a_requires_storms_and_eight_lower_flags():
    deps = POP_CATALOG.dependencies_of("timeA")
    assert deps[0] == "storms"
    assert set(deps) == {"storms", "smoke", "water", "air", "earth", "innovation", "tactics", "disease", "valor"}


def test_categories_cover_every_flag_except_root():
    listed = [key for keys in POP_CATEGORIES.values() for key in keys]
    assert sorted(listed) == sorted(key for key in POP_CATALOG.keys() if key != "knowledge")


def test_dependents_of_root():
    dependents = POP_CATALOG.dependents_of("knowledge")
    assert len(dependents) == 15
    assert "storms" not in dependents


def test_topological_order_places_dependencies_first():
    order = POP_CATALOG.topological_order()
    position = {key: index for index, key in enumerate(order)}

    assert len(order) == len(POP_CATALOG)
    for flag in POP_CATALOG:
        for dep in flag.depends_on:
            assert position[dep] < position[flag.key]


def test_unknown_key_lookups():
    catalog = chain_catalog()

    assert catalog.get("Z") is None
    assert "Z" not in catalog
    with pytest.raises(UnknownFlagError):
        catalog.dependencies_of("Z")
    with pytest.raises(UnknownFlagError):
        catalog.dependents_of("Z")


def test_root_and_terminal_inferred_when_not_given():
    catalog = FlagCatalog(DIAMOND_FLAGS)

    assert catalog.root_key == "A"
    assert catalog.terminal_key == "D"
    assert catalog.dependents_of("A") == ("B", "C")


def test_iteration_follows_definition_order():
    assert [flag.key for flag in diamond_catalog()] == ["A", "B", "C", "D"]


def test_is_root_property():
    catalog = chain_catalog()
    assert catalog.get("A").is_root
    assert not catalog.get("B").is_root


def test_empty_catalog_rejected():
    with pytest.raises(InvalidCatalogError):
        FlagCatalog({})


def test_unknown_dependency_rejected():
    flags = dict(CHAIN_FLAGS, D={"name": "Flag D", "depends_on": ["missing"]})

    with pytest.raises(InvalidCatalogError, match="unknown flag missing"):
        FlagCatalog(flags)


def test_self_dependency_rejected():
    flags = {
        "A": {"name": "Flag A", "depends_on": []},
        "B": {"name": "Flag B", "depends_on": ["A", "B"]},
    }

    with pytest.raises(InvalidCatalogError, match="depends on itself"):
        FlagCatalog(flags)


def test_duplicate_dependency_rejected():
    flags = {
        "A": {"name": "Flag A", "depends_on": []},
        "B": {"name": "Flag B", "depends_on": ["A", "A"]},
    }

    with pytest.raises(InvalidCatalogError, match="more than once"):
        FlagCatalog(flags)


def test_cycle_rejected():
    """B and C depend on each other, so neither can ever be completed."""
    flags = {
        "A": {"name": "Flag A", "depends_on": []},
        "B": {"name": "Flag B", "depends_on": ["A", "C"]},
        "C": {"name": "Flag C", "depends_on": ["B"]},
    }

    with pytest.raises(InvalidCatalogError, match="cycle"):
        FlagCatalog(flags)


def test_two_roots_rejected():
    flags = {
        "A": {"name": "Flag A", "depends_on": []},
        "B": {"name": "Flag B", "depends_on": []},
        "C": {"name": "Flag C", "depends_on": ["A", "B"]},
    }

    with pytest.raises(InvalidCatalogError, match="exactly one root"):
        FlagCatalog(flags)


def test_wrong_root_key_rejected():
    with pytest.raises(InvalidCatalogError):
        FlagCatalog(CHAIN_FLAGS, root_key="B")


def test_terminal_with_dependents_rejected():
    with pytest.raises(InvalidCatalogError, match="has dependents"):
        FlagCatalog(CHAIN_FLAGS, terminal_key="B")


def test_ambiguous_terminal_rejected():
    """Two sinks, with or without an explicit terminal key."""
    flags = {
        "A": {"name": "Flag A", "depends_on": []},
        "B": {"name": "Flag B", "depends_on": ["A"]},
        "C": {"name": "Flag C", "depends_on": ["A"]},
    }

    with pytest.raises(InvalidCatalogError, match="exactly one terminal"):
        FlagCatalog(flags)

    # Naming one of the sinks does not make the other one go away
    with pytest.raises(InvalidCatalogError, match="exactly one terminal"):
        FlagCatalog(flags, terminal_key="C")


def test_missing_name_rejected():
    with pytest.raises(InvalidCatalogError, match="missing a name"):
        FlagCatalog({"A": {"depends_on": []}})


def test_string_depends_on_rejected():
    flags = {
        "A": {"name": "Flag A", "depends_on": []},
        "B": {"name": "Flag B", "depends_on": "A"},
    }

    with pytest.raises(InvalidCatalogError):
        FlagCatalog(flags)


def test_validate_categories_rejects_unknown_key():
    with pytest.raises(InvalidCatalogError, match="Category Extra"):
        validate_categories(chain_catalog(), {"Extra": ["B", "Z"]})
