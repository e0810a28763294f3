"""Lookup of session plugins by key."""

from importlib.metadata import entry_points
from typing import Any

from munit_bridge.sessions.manifest import SessionManifest

ENTRY_POINT_GROUP = "munit_bridge.sessions"


class SessionNotFoundError(Exception):
    """Raised when no session plugin is registered under a key."""


def load_session_manifest(key: str) -> SessionManifest[Any]:
    """Return the manifest registered as ``key``, e.g. ``fifo`` or ``remote``.

    Raises:
        SessionNotFoundError: If no installed distribution registers the key;
            the message lists the keys that are available

    """
    entries = entry_points(group=ENTRY_POINT_GROUP)
    for entry in entries:
        if entry.name == key:
            manifest: SessionManifest[Any] = entry.load()
            return manifest

    available = sorted(entry.name for entry in entries)
    raise SessionNotFoundError(
        f"Unknown session {key!r}. Available sessions: {', '.join(available)}"
    )
