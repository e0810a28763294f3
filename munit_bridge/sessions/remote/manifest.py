"""Remote session manifest."""

from munit_bridge.sessions.manifest import SessionManifest
from munit_bridge.sessions.remote.config import RemoteSessionConfig
from munit_bridge.sessions.remote.session import RemoteSession

remote_session_manifest = SessionManifest(
    config_cls=RemoteSessionConfig,
    session_factory=RemoteSession.from_config,
)
