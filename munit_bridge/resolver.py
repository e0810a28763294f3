"""Resolve the products and modules a selection of tests depends on."""

from collections.abc import Iterable, Sequence

from munit_bridge.models.tree import NodeKind, TestNode


def ancestors_of(
    nodes: Iterable[TestNode],
    kind: NodeKind | None = None,
    *,
    include_self: bool = True,
) -> Sequence[TestNode]:
    """Collect the nodes and their ancestors, optionally filtered by kind.

    Each node is tested itself (unless ``include_self`` is false), then every
    parent up to its root. The result is de-duplicated, keeping first-seen
    order. A node without a matching ancestor contributes nothing.
    """
    found: dict[int, TestNode] = {}
    for node in nodes:
        current = node if include_self else node.parent
        while current is not None:
            if kind is None or current.kind is kind:
                found.setdefault(id(current), current)
            current = current.parent
    return list(found.values())


def descendants_of(
    nodes: Iterable[TestNode],
    kind: NodeKind | None = None,
    *,
    include_self: bool = True,
) -> Sequence[TestNode]:
    """Collect the nodes and their descendants, optionally filtered by kind.

    Depth-first in child order, de-duplicated, keeping first-seen order.
    """
    found: dict[int, TestNode] = {}
    for node in nodes:
        if include_self:
            _collect_descendants([node], kind, found)
        else:
            _collect_descendants(node.children.values(), kind, found)
    return list(found.values())


def _collect_descendants(
    nodes: Iterable[TestNode], kind: NodeKind | None, found: dict[int, TestNode]
) -> None:
    for node in nodes:
        if kind is None or node.kind is kind:
            found.setdefault(id(node), node)
        _collect_descendants(node.children.values(), kind, found)


def products_to_require(nodes: Sequence[TestNode]) -> Sequence[TestNode]:
    """Products that must be registered before the tests can run."""
    return ancestors_of(nodes, NodeKind.PRODUCT)


def modules_to_load(nodes: Sequence[TestNode]) -> Sequence[TestNode]:
    """Modules containing the tests plus nested modules providing test content."""
    found: dict[int, TestNode] = {}
    for module in [
        *ancestors_of(nodes, NodeKind.MODULE),
        *descendants_of(nodes, NodeKind.MODULE),
    ]:
        found.setdefault(id(module), module)
    return list(found.values())
