"""Session fed through the input pipe of a running Magik process."""

import asyncio
import logging
import shutil
import tempfile
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from os import PathLike
from pathlib import Path

from munit_bridge.sessions.base import Session, SessionError
from munit_bridge.sessions.fifo.config import FifoSessionConfig

log = logging.getLogger(__name__)

CLEAR_LINE = "\u0015"  # NAK, ^U


@dataclass(frozen=True, kw_only=True)
class FifoSession(Session):
    """Writes scripts to temp files and asks the session to load them.

    Only a short ``load_file`` statement travels through the input pipe; the
    session unlinks the temp file once loaded.
    """

    config: FifoSessionConfig
    workdir: Path

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: FifoSessionConfig
    ) -> AsyncGenerator["FifoSession", None]:
        """Create session with a private workdir for script files."""
        workdir = Path(tempfile.mkdtemp(prefix="munit-bridge-", dir=config.workdir))
        try:
            yield cls(config=config, workdir=workdir)
        finally:
            shutil.rmtree(workdir, ignore_errors=True)

    async def send(
        self, text: str, source_path: str | PathLike[str] | None = None
    ) -> None:
        """Save the source to a temp file and send a load statement."""
        script_path = self.get_temp_file()
        source_param = f'"{source_path}"' if source_path is not None else "_unset"
        statement = (
            f'_protect sw:load_file("{script_path}", _unset, {source_param}) '
            f'_protection sw:system.unlink("{script_path}", _true, _true) '
            "_endprotect\n$\n"
        )
        if self.config.clear_line:
            statement = CLEAR_LINE + statement

        log.info(
            "Sending %s to session input %s", script_path, self.config.input_path
        )
        try:
            await asyncio.to_thread(script_path.write_text, text, encoding="utf-8")
            await asyncio.to_thread(self._write_input, statement)
        except OSError as e:
            raise SessionError(
                f"Failed to send to session {self.config.input_path}: {e}"
            ) from e

    def get_temp_file(self) -> Path:
        """Return the first unused ``tmp<N>.magik`` path in the workdir."""
        index = 0
        while (path := self.workdir / f"tmp{index}.magik").exists():
            index += 1
        return path

    def _write_input(self, statement: str) -> None:
        # Opening a FIFO blocks until the session opens its reading end.
        with open(self.config.input_path, "a", encoding="utf-8") as stream:
            stream.write(statement)
