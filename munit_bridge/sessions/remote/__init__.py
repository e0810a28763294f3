"""Remote session module."""

from munit_bridge.sessions.remote.config import RemoteSessionConfig
from munit_bridge.sessions.remote.manifest import remote_session_manifest
from munit_bridge.sessions.remote.session import RemoteSession

__all__ = ["RemoteSession", "RemoteSessionConfig", "remote_session_manifest"]
