"""FIFO session module."""

from munit_bridge.sessions.fifo.config import FifoSessionConfig
from munit_bridge.sessions.fifo.manifest import fifo_session_manifest
from munit_bridge.sessions.fifo.session import FifoSession

__all__ = ["FifoSession", "FifoSessionConfig", "fifo_session_manifest"]
