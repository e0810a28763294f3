"""Tests for test run recording."""

import pytest

from munit_bridge.models.result import Outcome
from munit_bridge.models.tree import NodeKind, TestNode
from munit_bridge.run import TestRun


@pytest.fixture
def method() -> TestNode:
    """Create a method node."""
    return TestNode(id="method:test_a", label="test_a", kind=NodeKind.METHOD)


def test_records_outcomes(method: TestNode) -> None:
    """Records the latest outcome per node."""
    run = TestRun(name="run-1", requested=[method])

    run.enqueued(method)
    run.failed(method, "boom", duration=12.0)

    assert run.enqueued_nodes == [method]
    assert run.outcome(method) == Outcome(
        status="failed", message="boom", duration=12.0
    )


def test_enqueues_node_once(method: TestNode) -> None:
    """Enqueuing the same node twice keeps one entry."""
    run = TestRun(name="run-1")

    run.enqueued(method)
    run.enqueued(method)

    assert run.enqueued_nodes == [method]


def test_summary_counts_statuses() -> None:
    """Counts outcomes per status."""
    nodes = [
        TestNode(id=f"method:test_{i}", label=f"test_{i}", kind=NodeKind.METHOD)
        for i in range(4)
    ]
    run = TestRun(name="run-1", requested=nodes)

    run.passed(nodes[0], 1.0)
    run.passed(nodes[1])
    run.failed(nodes[2], "boom")
    run.errored(nodes[3], "E\ndetails", kind="E")

    assert run.summary() == {"total": 4, "passed": 2, "failed": 1, "errored": 1}


def test_ignores_outcomes_after_end(method: TestNode) -> None:
    """An ended run keeps the outcomes it had."""
    run = TestRun(name="run-1", requested=[method])
    run.passed(method)

    run.end()
    run.errored(method, "late")
    run.enqueued(method)

    assert run.ended
    assert run.outcome(method) == Outcome(status="passed")
    assert run.enqueued_nodes == []
