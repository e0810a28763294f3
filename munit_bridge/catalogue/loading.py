"""Creation of catalogue sources from configuration."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from munit_bridge.catalogue.base import CatalogueSource
from munit_bridge.catalogue.language_server import (
    LanguageServerCatalogue,
    LanguageServerConfig,
)
from munit_bridge.catalogue.workspace import (
    WorkspaceCatalogue,
    WorkspaceCatalogueConfig,
)
from munit_bridge.config import CatalogueSettings


@asynccontextmanager
async def open_catalogue_source(
    settings: CatalogueSettings,
) -> AsyncGenerator[CatalogueSource, None]:
    """Create the configured catalogue source for the duration of the context."""
    if settings.source == "language-server":
        config = LanguageServerConfig.model_validate(settings.options)
        async with LanguageServerCatalogue.from_config(config) as source:
            yield source
    else:
        yield WorkspaceCatalogue(
            config=WorkspaceCatalogueConfig.model_validate(settings.options)
        )
