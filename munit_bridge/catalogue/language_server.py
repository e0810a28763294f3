"""Catalogue source backed by the Magik language server."""

import itertools
import logging
from collections.abc import AsyncGenerator, Iterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from pydantic import BaseModel, ValidationError

from munit_bridge.catalogue.base import CatalogueError, CatalogueSource
from munit_bridge.models.catalogue import CatalogueItem

log = logging.getLogger(__name__)

GET_TEST_ITEMS_METHOD = "custom/munit/getTestItems"


class LanguageServerConfig(BaseModel):
    """Configuration for the language server JSON-RPC endpoint."""

    url: str
    method: str = GET_TEST_ITEMS_METHOD
    request_timeout: float = 60.0


class JsonRpcError(BaseModel):
    """JSON-RPC error member."""

    code: int
    message: str
    data: Any = None


class TestItemsResponse(BaseModel):
    """JSON-RPC response carrying the test items."""

    __test__ = False

    jsonrpc: str = "2.0"
    id: int | str | None = None
    result: Sequence[CatalogueItem] | None = None
    error: JsonRpcError | None = None


@dataclass(frozen=True, kw_only=True)
class LanguageServerCatalogue(CatalogueSource):
    """Requests the test items over JSON-RPC."""

    config: LanguageServerConfig
    session: aiohttp.ClientSession = field(repr=False)
    _request_ids: Iterator[int] = field(
        default_factory=lambda: itertools.count(1), init=False, repr=False
    )

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: LanguageServerConfig
    ) -> AsyncGenerator["LanguageServerCatalogue", None]:
        """Create source with managed HTTP client lifecycle."""
        async with aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=config.request_timeout),
        ) as session:
            yield cls(config=config, session=session)

    async def fetch(self) -> Sequence[CatalogueItem]:
        """Send the request, without parameters, and return the test items."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": self.config.method,
        }
        log.debug("Requesting %s from %s", self.config.method, self.config.url)

        try:
            async with self.session.post(self.config.url, json=payload) as response:
                if response.status != 200:
                    text = await response.text()
                    raise CatalogueError(
                        f"Failed to get test items: {response.status} {text}"
                    )
                data = await response.json()
        except aiohttp.ClientError as e:
            raise CatalogueError(f"Failed to get test items: {e}") from e

        try:
            rpc_response = TestItemsResponse.model_validate(data)
        except ValidationError as e:
            raise CatalogueError(f"Invalid test items response: {e}") from e

        if rpc_response.error is not None:
            raise CatalogueError(
                f"Failed to get test items: {rpc_response.error.code} "
                f"{rpc_response.error.message}"
            )

        items = rpc_response.result or []
        log.info("Received %d test item root(s)", len(items))
        return items
