"""Selection of test nodes to run."""

from collections.abc import Iterable, Sequence

from munit_bridge.models.tree import TestNode, TestTree


class UnknownTestItemError(LookupError):
    """Raised when a selected path does not resolve to a test node."""


def make_selection(nodes: Iterable[TestNode]) -> Sequence[TestNode]:
    """De-duplicate nodes, keeping the order they were chosen in."""
    return list({id(node): node for node in nodes}.values())


def select_nodes(tree: TestTree, paths: Iterable[str]) -> Sequence[TestNode]:
    """Resolve id paths such as ``product:p/module:m`` into a selection.

    Raises:
        UnknownTestItemError: If a path matches no node

    """
    nodes: list[TestNode] = []
    for path in paths:
        node = tree.find(path)
        if node is None:
            raise UnknownTestItemError(f"Test item not found: {path}")
        nodes.append(node)
    return make_selection(nodes)
