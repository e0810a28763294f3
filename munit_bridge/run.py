"""Recording of outcomes for a single test run."""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from munit_bridge.models.result import Outcome
from munit_bridge.models.tree import TestNode

log = logging.getLogger(__name__)


@dataclass(eq=False, kw_only=True)
class TestRun:
    """Outcomes of one run, keyed by node.

    Once ended, a run ignores further outcomes; a superseded run must not be
    updated by results arriving late.
    """

    __test__ = False

    name: str
    requested: Sequence[TestNode] = field(default_factory=list)
    _enqueued: list[TestNode] = field(default_factory=list, init=False, repr=False)
    _outcomes: dict[TestNode, Outcome] = field(
        default_factory=dict, init=False, repr=False
    )
    _ended: bool = field(default=False, init=False, repr=False)

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def enqueued_nodes(self) -> Sequence[TestNode]:
        return list(self._enqueued)

    @property
    def outcomes(self) -> Mapping[TestNode, Outcome]:
        return dict(self._outcomes)

    def outcome(self, node: TestNode) -> Outcome | None:
        return self._outcomes.get(node)

    def enqueued(self, node: TestNode) -> None:
        if self._check_open(node) and node not in self._enqueued:
            self._enqueued.append(node)

    def passed(self, node: TestNode, duration: float | None = None) -> None:
        self._record(node, Outcome(status="passed", duration=duration))

    def failed(
        self, node: TestNode, message: str, duration: float | None = None
    ) -> None:
        self._record(node, Outcome(status="failed", message=message, duration=duration))

    def errored(
        self,
        node: TestNode,
        message: str,
        kind: str | None = None,
        duration: float | None = None,
    ) -> None:
        self._record(
            node,
            Outcome(status="errored", message=message, kind=kind, duration=duration),
        )

    def end(self) -> None:
        if not self._ended:
            log.debug("Run %s ended with %d outcome(s)", self.name, len(self._outcomes))
        self._ended = True

    def summary(self) -> dict[str, int]:
        """Count outcomes per status."""
        counts = {"total": len(self._outcomes), "passed": 0, "failed": 0, "errored": 0}
        for outcome in self._outcomes.values():
            counts[outcome.status] += 1
        return counts

    def _record(self, node: TestNode, outcome: Outcome) -> None:
        if self._check_open(node):
            self._outcomes[node] = outcome

    def _check_open(self, node: TestNode) -> bool:
        if self._ended:
            log.debug("Ignoring outcome for %s, run %s has ended", node.id, self.name)
            return False
        return True
