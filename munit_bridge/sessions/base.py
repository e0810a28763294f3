"""Abstract base class for interactive Magik sessions."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from os import PathLike


class SessionError(Exception):
    """Raised when a script cannot be handed to the session."""


@dataclass(frozen=True, kw_only=True)
class Session(ABC):
    """An interactive session accepting Magik source.

    The session has no structured return channel: sending is fire-and-forget,
    the only observable effects of a script are on the filesystem.
    """

    @abstractmethod
    async def send(
        self, text: str, source_path: str | PathLike[str] | None = None
    ) -> None:
        """Hand Magik source to the session for execution.

        Args:
            text: Magik source, terminated by ``$``
            source_path: Originating source file, used by the session for
                error reporting

        Raises:
            SessionError: If the source could not be delivered

        """
