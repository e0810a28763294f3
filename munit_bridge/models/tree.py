"""In-memory test tree: products, modules, test cases and test methods."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import StrEnum

from munit_bridge.models.catalogue import Location

PATH_SEPARATOR = "/"


class NodeKind(StrEnum):
    """Kind of a test node, taken from the prefix of its id."""

    PRODUCT = "product"
    MODULE = "module"
    TEST_CASE = "test_case"
    METHOD = "method"

    @classmethod
    def from_id(cls, node_id: str) -> "NodeKind":
        """Parse the kind from an id such as ``module:my_module``.

        Raises:
            ValueError: If the id has no known ``<type>:`` prefix

        """
        prefix, separator, _ = node_id.partition(":")
        if not separator:
            raise ValueError(f"Test item id without type prefix: {node_id!r}")
        try:
            return cls(prefix)
        except ValueError:
            raise ValueError(
                f"Unknown test item type {prefix!r} in id {node_id!r}"
            ) from None

    def make_id(self, name: str) -> str:
        """Build the id of a node of this kind."""
        return f"{self.value}:{name}"


class TestItemCollection:
    """Ordered map of test nodes keyed by id.

    Adding a node with an id already present replaces it in place.
    """

    __test__ = False

    def __init__(self, *nodes: "TestNode") -> None:
        self._items: dict[str, TestNode] = {}
        for node in nodes:
            self.add(node)

    def __iter__(self) -> Iterator[tuple[str, "TestNode"]]:
        return iter(self._items.items())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._items

    def __repr__(self) -> str:
        return f"TestItemCollection({list(self._items)!r})"

    def add(self, node: "TestNode") -> None:
        self._items[node.id] = node

    def delete(self, node_id: str) -> None:
        self._items.pop(node_id, None)

    def get(self, node_id: str) -> "TestNode | None":
        return self._items.get(node_id)

    def values(self) -> list["TestNode"]:
        return list(self._items.values())


@dataclass(eq=False, kw_only=True)
class TestNode:
    """A node of the test tree.

    Nodes compare by identity: method ids repeat across test cases, so the id
    is only unique among siblings. ``parent`` is a lookup-only back reference
    and is kept out of the repr to avoid walking the cycle.
    """

    __test__ = False

    id: str
    label: str
    kind: NodeKind
    location: Location | None = None
    children: TestItemCollection = field(default_factory=TestItemCollection)
    parent: "TestNode | None" = field(default=None, repr=False)

    @property
    def name(self) -> str:
        """Id without its type prefix."""
        return self.id.partition(":")[2]

    @property
    def is_container(self) -> bool:
        return self.kind is not NodeKind.METHOD

    @property
    def path(self) -> str:
        """Slash-joined ids from the root down to this node."""
        ids: list[str] = []
        node: TestNode | None = self
        while node is not None:
            ids.append(node.id)
            node = node.parent
        return PATH_SEPARATOR.join(reversed(ids))

    def add_child(self, child: "TestNode") -> None:
        """Attach a child, setting its parent reference."""
        child.parent = self
        self.children.add(child)


@dataclass(kw_only=True)
class TestTree:
    """Forest of test nodes built from one catalogue refresh."""

    __test__ = False

    items: TestItemCollection = field(default_factory=TestItemCollection)

    def __len__(self) -> int:
        return sum(1 for _ in self.walk())

    def roots(self) -> list[TestNode]:
        return self.items.values()

    def walk(self) -> Iterator[TestNode]:
        """Yield every node depth-first, in discovery order."""
        yield from _walk(self.items.values())

    def find(self, path: str) -> TestNode | None:
        """Find a node by its slash-joined id path.

        Example: ``product:p/module:m/test_case:t/method:test_a``.
        """
        ids = [part for part in path.split(PATH_SEPARATOR) if part]
        if not ids:
            return None

        node = self.items.get(ids[0])
        for node_id in ids[1:]:
            if node is None:
                return None
            node = node.children.get(node_id)
        return node


def _walk(nodes: Iterable[TestNode]) -> Iterator[TestNode]:
    for node in nodes:
        yield node
        yield from _walk(node.children.values())
