"""Catalogue source scanning Magik sources in a workspace.

Used when no language server is available. Test methods are the methods
whose name starts with ``test`` on exemplars inheriting from ``test_case``;
they are grouped by the product and module their file belongs to, found by
walking up to the nearest ``product.def`` and ``module.def``.
"""

import asyncio
import logging
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel

from munit_bridge.catalogue.base import CatalogueError, CatalogueSource
from munit_bridge.models.catalogue import CatalogueItem, Location, Position, Range
from munit_bridge.models.tree import NodeKind

log = logging.getLogger(__name__)

PRODUCT_DEF = "product.def"
MODULE_DEF = "module.def"
NO_PRODUCT = "<no_product>"
NO_MODULE = "<no_module>"
DEFAULT_PACKAGE = "user"
TEST_CASE_EXEMPLAR = "test_case"
TEST_METHOD_PREFIX = "test"

PACKAGE_RE = re.compile(r"^\s*_package\s+(\w+)", re.MULTILINE)
EXEMPLAR_RE = re.compile(r"\bdef_(slotted|indexed)_exemplar\s*\(")
METHOD_RE = re.compile(
    r"^[ \t]*(?:(?:_abstract|_private|_iter)\s+)*_method\s+"
    r"(?P<owner>[\w!?:|]+)\s*\.\s*(?P<name>[\w!?|]+)",
    re.MULTILINE,
)
SYMBOL_RE = re.compile(r":\|?([\w!?:]+)\|?")


class WorkspaceCatalogueConfig(BaseModel):
    """Configuration for the workspace scanner."""

    root: Path
    file_pattern: str = "*.magik"


@dataclass(frozen=True, kw_only=True)
class ExemplarDefinition:
    """Exemplar found in a source file."""

    name: str
    parents: Sequence[str]
    location: Location


@dataclass(frozen=True, kw_only=True)
class MethodDefinition:
    """Method found in a source file."""

    owner: str
    name: str
    path: Path
    location: Location


@dataclass(kw_only=True)
class _ItemBuilder:
    id: str
    label: str
    location: Location | None = None
    children: dict[str, "_ItemBuilder"] = field(default_factory=dict)

    def add_child(self, child: "_ItemBuilder") -> "_ItemBuilder":
        """Add the child unless one with its id exists; return the stored one."""
        return self.children.setdefault(child.id, child)

    def build(self) -> CatalogueItem:
        return CatalogueItem(
            id=self.id,
            label=self.label,
            location=self.location,
            children=[child.build() for child in self.children.values()],
        )


@dataclass(frozen=True, kw_only=True)
class WorkspaceCatalogue(CatalogueSource):
    """Builds the catalogue by scanning the workspace itself."""

    config: WorkspaceCatalogueConfig

    async def fetch(self) -> Sequence[CatalogueItem]:
        """Scan the workspace in a worker thread."""
        try:
            return await asyncio.to_thread(
                scan_workspace, self.config.root, self.config.file_pattern
            )
        except OSError as e:
            raise CatalogueError(
                f"Failed to scan workspace {self.config.root}: {e}"
            ) from e


def scan_workspace(root: Path, file_pattern: str = "*.magik") -> list[CatalogueItem]:
    """Scan all matching files below root and build the catalogue roots."""
    if not root.is_dir():
        raise CatalogueError(f"Workspace root is not a directory: {root}")

    exemplars: dict[str, ExemplarDefinition] = {}
    methods: list[MethodDefinition] = []
    for path in sorted(root.rglob(file_pattern)):
        text = path.read_text(encoding="utf-8", errors="replace")
        for exemplar in find_exemplars(path, text):
            exemplars[exemplar.name] = exemplar
        methods.extend(find_methods(path, text))

    test_cases = {
        name: exemplar
        for name, exemplar in exemplars.items()
        if is_test_case(name, exemplars)
    }
    log.debug(
        "Scanned %s: %d exemplar(s), %d test case(s), %d method(s)",
        root,
        len(exemplars),
        len(test_cases),
        len(methods),
    )

    products: dict[str, _ItemBuilder] = {}
    def_files = _DefFileLocator()
    for method in methods:
        exemplar = test_cases.get(method.owner)
        if exemplar is None or not method.name.lower().startswith(TEST_METHOD_PREFIX):
            continue

        product_name, product_location = def_files.find(method.path, PRODUCT_DEF)
        product = products.setdefault(
            product_name,
            _ItemBuilder(
                id=NodeKind.PRODUCT.make_id(product_name or NO_PRODUCT),
                label=product_name or NO_PRODUCT,
                location=product_location,
            ),
        )
        module_name, module_location = def_files.find(method.path, MODULE_DEF)
        module = product.add_child(
            _ItemBuilder(
                id=NodeKind.MODULE.make_id(module_name or NO_MODULE),
                label=module_name or NO_MODULE,
                location=module_location,
            )
        )
        test_case = module.add_child(
            _ItemBuilder(
                id=NodeKind.TEST_CASE.make_id(exemplar.name),
                label=exemplar.name,
                location=exemplar.location,
            )
        )
        test_case.add_child(
            _ItemBuilder(
                id=NodeKind.METHOD.make_id(method.name),
                label=method.name,
                location=method.location,
            )
        )

    return [product.build() for product in products.values()]


def find_exemplars(path: Path, text: str) -> Iterator[ExemplarDefinition]:
    """Find slotted and indexed exemplar definitions."""
    for match in EXEMPLAR_RE.finditer(text):
        arguments = _split_arguments(text, match.end())
        if len(arguments) < 1:
            continue
        names = SYMBOL_RE.findall(arguments[0])
        if not names:
            continue
        parents = SYMBOL_RE.findall(arguments[2]) if len(arguments) > 2 else []
        yield ExemplarDefinition(
            name=_qualify(names[0], _package_at(text, match.start())),
            parents=[_base_name(parent) for parent in parents],
            location=_location(path, text, match.start(), match.end()),
        )


def find_methods(path: Path, text: str) -> Iterator[MethodDefinition]:
    """Find method definitions."""
    for match in METHOD_RE.finditer(text):
        owner = match.group("owner").replace("|", "")
        yield MethodDefinition(
            owner=_qualify(owner, _package_at(text, match.start())),
            name=match.group("name").replace("|", ""),
            path=path,
            location=_location(path, text, match.start("owner"), match.end()),
        )


def is_test_case(
    name: str,
    exemplars: dict[str, ExemplarDefinition],
    seen: frozenset[str] = frozenset(),
) -> bool:
    """Whether the exemplar inherits, directly or not, from test_case."""
    exemplar = exemplars.get(name)
    if exemplar is None or name in seen:
        return False

    for parent in exemplar.parents:
        if parent == TEST_CASE_EXEMPLAR:
            return True
        candidates = [key for key in exemplars if _base_name(key) == parent]
        if any(is_test_case(key, exemplars, seen | {name}) for key in candidates):
            return True
    return False


class _DefFileLocator:
    """Finds the nearest definition file above a path, caching per directory."""

    def __init__(self) -> None:
        self._cache: dict[tuple[Path, str], tuple[str | None, Location | None]] = {}

    def find(self, path: Path, def_name: str) -> tuple[str | None, Location | None]:
        directory = path.parent
        key = (directory, def_name)
        if key not in self._cache:
            self._cache[key] = self._lookup(directory, def_name)
        return self._cache[key]

    def _lookup(
        self, directory: Path, def_name: str
    ) -> tuple[str | None, Location | None]:
        for candidate in (directory, *directory.parents):
            def_path = candidate / def_name
            if def_path.is_file():
                return read_def_name(def_path), _file_location(def_path)
        return None, None


def read_def_name(def_path: Path) -> str | None:
    """Read the name from a product.def or module.def: its first token."""
    for line in def_path.read_text(encoding="utf-8", errors="replace").splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("#"):
            return stripped.split()[0]
    return None


def _split_arguments(text: str, start: int) -> list[str]:
    """Split the top-level arguments of a call whose ``(`` ends at start."""
    arguments: list[str] = []
    depth = 0
    current: list[str] = []
    quote: str | None = None
    for char in text[start:]:
        if quote is not None:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if char in "\"'":
            quote = char
        elif char in "({[":
            depth += 1
        elif char in ")}]":
            if depth == 0:
                break
            depth -= 1
        elif char == "," and depth == 0:
            arguments.append("".join(current))
            current = []
            continue
        elif char == "$" and depth == 0:
            break
        current.append(char)
    arguments.append("".join(current))
    return arguments


def _package_at(text: str, offset: int) -> str:
    package = DEFAULT_PACKAGE
    for match in PACKAGE_RE.finditer(text, 0, offset):
        package = match.group(1)
    return package


def _qualify(name: str, package: str) -> str:
    return name if ":" in name else f"{package}:{name}"


def _base_name(name: str) -> str:
    return name.rpartition(":")[2]


def _position(text: str, offset: int) -> Position:
    line = text.count("\n", 0, offset)
    line_start = text.rfind("\n", 0, offset) + 1
    return Position(line=line, character=offset - line_start)


def _location(path: Path, text: str, start: int, end: int) -> Location:
    return Location(
        uri=path.resolve().as_uri(),
        range=Range(start=_position(text, start), end=_position(text, end)),
    )


def _file_location(path: Path) -> Location:
    origin = Position(line=0, character=0)
    return Location(uri=path.resolve().as_uri(), range=Range(start=origin, end=origin))
