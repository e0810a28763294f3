"""Tests for selection of test nodes."""

import pytest

from munit_bridge.catalogue.importer import import_catalogue
from munit_bridge.selection import (
    UnknownTestItemError,
    make_selection,
    select_nodes,
)
from munit_bridge.testing.catalogue import sample_catalogue


def test_select_nodes_resolves_paths() -> None:
    """Resolves id paths in the order given, without duplicates."""
    tree = import_catalogue(sample_catalogue())

    selection = select_nodes(
        tree,
        [
            "product:core",
            "product:app/module:app_tests",
            "product:core",
        ],
    )

    assert [node.id for node in selection] == ["product:core", "module:app_tests"]


def test_select_nodes_raises_for_unknown_path() -> None:
    """Raises UnknownTestItemError when a path matches nothing."""
    tree = import_catalogue(sample_catalogue())

    with pytest.raises(UnknownTestItemError, match="product:missing"):
        select_nodes(tree, ["product:missing"])


def test_make_selection_keeps_distinct_nodes_with_equal_ids() -> None:
    """Nodes are de-duplicated by identity, not by id."""
    tree = import_catalogue(sample_catalogue())
    methods = [node for node in tree.walk() if node.id == "method:test_a"]

    assert len(make_selection([*methods, *methods])) == 2
