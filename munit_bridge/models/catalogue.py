"""Models for the test catalogue descriptor sent by the language server."""

from collections.abc import Sequence

from pydantic import Field

from munit_bridge.models.base import Model


class Position(Model):
    """Zero-based line/character position in a source file."""

    line: int = Field(..., ge=0)
    character: int = Field(..., ge=0)


class Range(Model):
    """Half-open range between two positions."""

    start: Position
    end: Position


class Location(Model):
    """Source location of a catalogue item."""

    uri: str = Field(..., description="URI of the source file")
    range: Range


class CatalogueItem(Model):
    """Single entry of the recursive catalogue descriptor.

    Follows the hierarchy product -> module -> test_case -> method, the kind
    being encoded in the id prefix (e.g. ``test_case:sw:my_test``).
    """

    id: str = Field(..., description="Hierarchical id, <type>:<name>")
    label: str = Field(..., description="Human-readable name")
    children: Sequence["CatalogueItem"] = Field(default_factory=list)
    location: Location | None = None
