"""Integration tests for remote session."""

from collections.abc import AsyncGenerator

import aiohttp
import pytest
from aioresponses import aioresponses as aioresponses_cls
from pydantic import SecretStr
from yarl import URL

from munit_bridge.sessions.base import SessionError
from munit_bridge.sessions.remote import RemoteSession, RemoteSessionConfig

BASE_URL = "http://session.test"
SCRIPTS_URL = f"{BASE_URL}/session/scripts"


@pytest.fixture
def config() -> RemoteSessionConfig:
    """Create test configuration."""
    return RemoteSessionConfig(base_url=BASE_URL, token=SecretStr("test-token"))


@pytest.fixture
async def session(
    config: RemoteSessionConfig, aioresponses: aioresponses_cls
) -> AsyncGenerator[RemoteSession, None]:
    """Create session with managed HTTP client."""
    async with RemoteSession.from_config(config) as impl:
        yield impl


class TestSend:
    """Tests for send."""

    async def test_posts_script(
        self, session: RemoteSession, aioresponses: aioresponses_cls
    ) -> None:
        """Posts the script and source path as JSON."""
        aioresponses.post(SCRIPTS_URL, status=202)

        await session.send("write(1)\n$\n", source_path="/src/foo_test.magik")

        call = aioresponses.requests[("POST", URL(SCRIPTS_URL))][0]
        assert call.kwargs["json"] == {
            "script": "write(1)\n$\n",
            "source_path": "/src/foo_test.magik",
        }

    async def test_sends_bearer_token(
        self, session: RemoteSession, aioresponses: aioresponses_cls
    ) -> None:
        """The configured token is sent as bearer authorization."""
        aioresponses.post(SCRIPTS_URL, status=200)

        await session.send("write(1)\n$\n")

        assert session.session.headers["Authorization"] == "Bearer test-token"
        call = aioresponses.requests[("POST", URL(SCRIPTS_URL))][0]
        assert call.kwargs["json"]["source_path"] is None

    async def test_raises_on_error_status(
        self, session: RemoteSession, aioresponses: aioresponses_cls
    ) -> None:
        """Raises SessionError on a non-2xx response."""
        aioresponses.post(SCRIPTS_URL, status=503, body="session busy")

        with pytest.raises(SessionError, match="503 session busy"):
            await session.send("write(1)\n$\n")

    async def test_raises_on_connection_error(
        self, session: RemoteSession, aioresponses: aioresponses_cls
    ) -> None:
        """Wraps client errors in SessionError."""
        aioresponses.post(
            SCRIPTS_URL, exception=aiohttp.ClientConnectionError("refused")
        )

        with pytest.raises(SessionError, match="refused"):
            await session.send("write(1)\n$\n")
