"""Session reached through an HTTP REPL bridge."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from os import PathLike

import aiohttp

from munit_bridge.sessions.base import Session, SessionError
from munit_bridge.sessions.remote.config import RemoteSessionConfig

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class RemoteSession(Session):
    """Posts scripts to a bridge which feeds them to the Magik session."""

    config: RemoteSessionConfig
    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: RemoteSessionConfig
    ) -> AsyncGenerator["RemoteSession", None]:
        """Create session with managed HTTP client lifecycle."""
        headers = {}
        if config.token is not None:
            headers["Authorization"] = f"Bearer {config.token.get_secret_value()}"
        async with aiohttp.ClientSession(
            base_url=config.base_url,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=config.request_timeout),
        ) as session:
            yield cls(config=config, session=session)

    async def send(
        self, text: str, source_path: str | PathLike[str] | None = None
    ) -> None:
        """Post the source to the bridge."""
        payload = {
            "script": text,
            "source_path": str(source_path) if source_path is not None else None,
        }
        log.info(
            "Posting script to session: base_url=%s, endpoint=%s",
            self.config.base_url,
            self.config.endpoint,
        )
        try:
            async with self.session.post(
                self.config.endpoint, json=payload
            ) as response:
                if not 200 <= response.status < 300:
                    body = await response.text()
                    raise SessionError(
                        f"Failed to send script to session: {response.status} {body}"
                    )
        except aiohttp.ClientError as e:
            raise SessionError(f"Failed to send script to session: {e}") from e
