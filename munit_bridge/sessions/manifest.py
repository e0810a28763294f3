"""Session plugin manifests."""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel

from munit_bridge.sessions.base import Session

ConfigT = TypeVar("ConfigT", bound=BaseModel)


@dataclass(frozen=True, kw_only=True)
class SessionManifest(Generic[ConfigT]):
    """What a session plugin registers under ``munit_bridge.sessions``.

    ``config_cls`` validates the ``session.options`` mapping of the bridge
    configuration; ``session_factory`` opens a session from the validated
    options for the duration of a run.
    """

    config_cls: type[ConfigT]
    session_factory: Callable[[ConfigT], AbstractAsyncContextManager[Session]]
