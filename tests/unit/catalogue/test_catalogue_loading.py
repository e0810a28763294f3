"""Tests for catalogue source creation."""

from pathlib import Path

from munit_bridge.catalogue.language_server import LanguageServerCatalogue
from munit_bridge.catalogue.loading import open_catalogue_source
from munit_bridge.catalogue.workspace import WorkspaceCatalogue
from munit_bridge.config import CatalogueSettings


async def test_opens_workspace_source(tmp_path: Path) -> None:
    """The workspace source scans the configured root."""
    settings = CatalogueSettings(options={"root": tmp_path, "file_pattern": "*.m"})

    async with open_catalogue_source(settings) as source:
        assert isinstance(source, WorkspaceCatalogue)
        assert source.config.root == tmp_path
        assert source.config.file_pattern == "*.m"


async def test_opens_language_server_source() -> None:
    """The language server source posts to the configured URL."""
    settings = CatalogueSettings(
        source="language-server", options={"url": "http://localhost:9123/rpc"}
    )

    async with open_catalogue_source(settings) as source:
        assert isinstance(source, LanguageServerCatalogue)
        assert source.config.url == "http://localhost:9123/rpc"
        assert not source.session.closed
