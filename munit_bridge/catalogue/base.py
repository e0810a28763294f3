"""Abstract base class for test catalogue sources."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from munit_bridge.models.catalogue import CatalogueItem


class CatalogueError(Exception):
    """Raised when the test catalogue cannot be fetched."""


@dataclass(frozen=True, kw_only=True)
class CatalogueSource(ABC):
    """Supplies the recursive test catalogue descriptor."""

    @abstractmethod
    async def fetch(self) -> Sequence[CatalogueItem]:
        """Fetch the catalogue roots (products).

        Raises:
            CatalogueError: If the catalogue could not be obtained

        """
