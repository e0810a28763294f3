"""Models for parsed result documents and per-node outcomes."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal, TypeAlias

OutcomeStatus: TypeAlias = Literal["passed", "failed", "errored"]


@dataclass(frozen=True, kw_only=True)
class ResultPayload:
    """An ``error`` or ``failure`` element of a test case."""

    kind: str | None = None
    message: str | None = None
    text: str | None = None


@dataclass(frozen=True, kw_only=True)
class ResultCase:
    """A ``testcase`` element."""

    name: str
    time: float | None = None
    error: ResultPayload | None = None
    failure: ResultPayload | None = None


@dataclass(frozen=True, kw_only=True)
class ResultSuite:
    """A ``testsuite`` element with its nested suites and cases."""

    name: str
    time: float | None = None
    suites: Sequence["ResultSuite"] = field(default_factory=list)
    cases: Sequence[ResultCase] = field(default_factory=list)


@dataclass(frozen=True, kw_only=True)
class Outcome:
    """Outcome assigned to a test node.

    Duration is in milliseconds, ``None`` when the runner did not report it.
    """

    status: OutcomeStatus
    message: str | None = None
    kind: str | None = None
    duration: float | None = None
