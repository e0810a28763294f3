"""Keeps the test tree in sync with the catalogue source."""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from watchfiles import Change, awatch

from munit_bridge.catalogue.base import CatalogueError, CatalogueSource
from munit_bridge.catalogue.importer import import_catalogue
from munit_bridge.models.tree import TestTree

log = logging.getLogger(__name__)

SOURCE_SUFFIX = ".magik"


def magik_filter(change: Change, path: str) -> bool:
    """Only Magik sources affect the catalogue."""
    return path.endswith(SOURCE_SUFFIX)


@dataclass(kw_only=True)
class CatalogueService:
    """Owns the current test tree.

    Every refresh replaces the tree wholesale. When fetching fails, the error
    is logged and the previous tree is kept.
    """

    source: CatalogueSource
    on_refresh: Callable[[TestTree], None] | None = None
    tree: TestTree = field(default_factory=TestTree)
    loaded: bool = False

    async def refresh(self) -> bool:
        """Fetch the catalogue and rebuild the tree.

        Returns:
            True if the tree was replaced, False if fetching failed

        """
        try:
            items = await self.source.fetch()
        except CatalogueError as e:
            log.error("Error getting test items: %s", e)
            return False

        try:
            tree = import_catalogue(items)
        except ValueError as e:
            log.error("Error importing test items: %s", e)
            return False

        self.tree = tree
        self.loaded = True
        log.info("Test catalogue refreshed: %d test item(s)", len(tree))
        if self.on_refresh is not None:
            self.on_refresh(tree)
        return True

    async def watch(self, paths: Sequence[Path], **awatch_kwargs: object) -> None:
        """Refresh on start and once per batch of Magik source changes.

        Runs until cancelled or until ``stop_event`` (passed through to
        ``awatch``) is set.
        """
        await self.refresh()

        async for changes in awatch(
            *paths,
            watch_filter=magik_filter,
            **awatch_kwargs,  # type: ignore[arg-type]
        ):
            log.debug(
                "Detected %d source change(s), refreshing catalogue", len(changes)
            )
            await self.refresh()
