"""Run coordinator: dispatches runner scripts and awaits their results."""

import asyncio
import itertools
import logging
import shutil
import tempfile
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from types import TracebackType
from typing import Self

from munit_bridge.compiler import CompileError, ScriptCompiler
from munit_bridge.correlator import (
    ResultDocumentError,
    correlate,
    parse_result_document,
)
from munit_bridge.models.tree import TestNode, TestTree
from munit_bridge.run import TestRun
from munit_bridge.sessions.base import Session, SessionError

log = logging.getLogger(__name__)

OUTPUT_FILE_NAME = "test_run.xml"
DEFAULT_POLL_INTERVAL = 0.25


class RunState(StrEnum):
    """Lifecycle of the coordinator's active run."""

    IDLE = "idle"
    DISPATCHED = "dispatched"
    AWAITING_RESULT = "awaiting_result"
    FINALIZING = "finalizing"


async def wait_for_file(
    path: Path,
    timeout: float | None = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> None:
    """Wait until a file exists at path.

    The runner script publishes its report by renaming a completed file, so
    existence means the report is fully written.

    Args:
        path: File to wait for
        timeout: Maximum wait time in seconds, None to wait forever
        poll_interval: Seconds between checks

    Raises:
        TimeoutError: If the file does not appear within timeout

    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout if timeout is not None else None

    while True:
        if path.exists():
            return

        if deadline is not None and loop.time() >= deadline:
            raise TimeoutError(
                f"Result file {path} did not appear within {timeout} seconds"
            )

        await asyncio.sleep(poll_interval)


@dataclass(eq=False, kw_only=True)
class ActiveRun:
    """Handle on a dispatched run."""

    run: TestRun
    output_path: Path
    task: asyncio.Task[None] | None = field(default=None, repr=False)

    async def wait(self) -> TestRun:
        """Wait until the run has ended, by completion or by being superseded."""
        if self.task is not None:
            await asyncio.wait({self.task})
            if not self.task.cancelled() and (error := self.task.exception()):
                raise error
        return self.run


@dataclass(kw_only=True)
class RunCoordinator:
    """Owns the single active run.

    Starting a run ends the previous one first: its watch stops and it keeps
    whatever outcomes it had. The result file of a superseded run is left
    alone, and output paths are never reused within the coordinator's
    workdir.
    """

    session: Session
    compiler: ScriptCompiler = field(default_factory=ScriptCompiler)
    poll_interval: float = DEFAULT_POLL_INTERVAL
    timeout: float | None = None
    workdir_parent: Path | None = None
    state: RunState = RunState.IDLE

    _workdir: Path | None = field(default=None, init=False, repr=False)
    _current: ActiveRun | None = field(default=None, init=False, repr=False)
    _allocated: set[Path] = field(default_factory=set, init=False, repr=False)
    _run_ids: Iterator[int] = field(
        default_factory=lambda: itertools.count(1), init=False, repr=False
    )

    async def __aenter__(self) -> Self:
        self._workdir = Path(
            tempfile.mkdtemp(prefix="munit-bridge-", dir=self.workdir_parent)
        )
        log.debug("Using workdir %s", self._workdir)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def current(self) -> ActiveRun | None:
        return self._current

    async def close(self) -> None:
        """End the active run and remove the workdir."""
        await self._end_current()
        if self._workdir is not None:
            shutil.rmtree(self._workdir, ignore_errors=True)
            self._workdir = None

    async def run(self, selection: Sequence[TestNode], tree: TestTree) -> TestRun:
        """Start a run and wait for it to end."""
        active = await self.start(selection, tree)
        return await active.wait()

    async def start(self, selection: Sequence[TestNode], tree: TestTree) -> ActiveRun:
        """Dispatch a run of the selection, or of the whole tree if empty.

        Returns once the script is handed to the session; the result file is
        awaited in the background. A run superseded while its script was
        being sent is returned ended, without a watch.
        """
        await self._end_current()

        nodes = list(selection) or tree.roots()
        run = TestRun(name=f"run-{next(self._run_ids)}", requested=nodes)
        for node in selection:
            run.enqueued(node)

        active = ActiveRun(run=run, output_path=self.get_temp_file(OUTPUT_FILE_NAME))
        self._current = active
        self.state = RunState.DISPATCHED
        log.info(
            "Dispatching %s: %d test item(s), output=%s",
            run.name,
            len(nodes),
            active.output_path,
        )

        try:
            script = self.compiler.compile(nodes, active.output_path)
            await self.session.send(script)
        except (CompileError, SessionError) as e:
            log.error("Failed to dispatch %s: %s", run.name, e)
            self._mark_errored(run, str(e), type(e).__name__)
            self._finish(active)
            return active

        if self._current is not active:
            log.info("%s was superseded while being dispatched", run.name)
            return active

        self.state = RunState.AWAITING_RESULT
        active.task = asyncio.create_task(self._await_result(active))
        return active

    def get_temp_file(self, filename: str) -> Path:
        """Return an unused, never allocated ``<base><N><ext>`` path in the workdir."""
        if self._workdir is None:
            raise RuntimeError("RunCoordinator used outside of its context")

        base = Path(filename)
        index = 0
        while (
            path := self._workdir / f"{base.stem}{index}{base.suffix}"
        ) in self._allocated or path.exists():
            index += 1
        self._allocated.add(path)
        return path

    async def _await_result(self, active: ActiveRun) -> None:
        run = active.run
        try:
            await wait_for_file(active.output_path, self.timeout, self.poll_interval)
        except TimeoutError as e:
            log.error("%s: %s", run.name, e)
            self._mark_errored(run, str(e), type(e).__name__)
            self._finish(active)
            return

        self.state = RunState.FINALIZING
        try:
            try:
                content = await asyncio.to_thread(active.output_path.read_bytes)
                log.debug(
                    "XML test runner output for %s:\n%s",
                    run.name,
                    content.decode("utf-8", errors="replace"),
                )
                result = parse_result_document(content)
            except (OSError, ResultDocumentError) as e:
                log.error("Failed to read results of %s: %s", run.name, e)
                self._mark_errored(run, str(e), type(e).__name__)
            else:
                correlate(result, run.requested, run)

            try:
                active.output_path.unlink(missing_ok=True)
            except OSError as e:
                log.warning("Failed to delete %s: %s", active.output_path, e)
            summary = run.summary()
            log.info(
                "%s completed: passed=%d failed=%d errored=%d",
                run.name,
                summary["passed"],
                summary["failed"],
                summary["errored"],
            )
        finally:
            self._finish(active)

    async def _end_current(self) -> None:
        active = self._current
        if active is None:
            return

        log.info("Ending %s", active.run.name)
        if active.task is not None and not active.task.done():
            active.task.cancel()
            await asyncio.wait({active.task})
        self._finish(active)

    def _finish(self, active: ActiveRun) -> None:
        active.run.end()
        if self._current is active:
            self._current = None
            self.state = RunState.IDLE

    @staticmethod
    def _mark_errored(run: TestRun, message: str, kind: str) -> None:
        for node in run.requested:
            run.errored(node, message, kind=kind)
