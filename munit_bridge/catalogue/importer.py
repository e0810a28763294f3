"""Build a test tree from the catalogue descriptor."""

import logging
from collections.abc import Sequence

from munit_bridge.models.catalogue import CatalogueItem
from munit_bridge.models.tree import NodeKind, TestNode, TestTree

log = logging.getLogger(__name__)


def import_catalogue(items: Sequence[CatalogueItem]) -> TestTree:
    """Convert catalogue items into a fresh test tree.

    The items follow the hierarchy product -> module -> test_case -> method.
    Every call builds a new forest; nothing is shared with a previous tree.
    """
    tree = TestTree()
    for item in items:
        tree.items.add(create_node(item))

    log.debug("Imported %d catalogue root(s)", len(tree.items))
    return tree


def create_node(item: CatalogueItem, parent: TestNode | None = None) -> TestNode:
    """Create a node for the item and, recursively, for its children.

    The node is attached to its parent before its children are visited, so
    parent references are valid throughout construction.
    """
    node = TestNode(
        id=item.id,
        label=item.label,
        kind=NodeKind.from_id(item.id),
        location=item.location,
    )
    if parent is not None:
        parent.add_child(node)

    for child in item.children:
        create_node(child, node)

    return node
