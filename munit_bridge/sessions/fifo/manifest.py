"""FIFO session manifest."""

from munit_bridge.sessions.fifo.config import FifoSessionConfig
from munit_bridge.sessions.fifo.session import FifoSession
from munit_bridge.sessions.manifest import SessionManifest

fifo_session_manifest = SessionManifest(
    config_cls=FifoSessionConfig,
    session_factory=FifoSession.from_config,
)
