"""Parse XML result documents and map them back onto the test tree."""

import logging
import xml.etree.ElementTree as ET
from collections.abc import Sequence

from munit_bridge.models.result import ResultCase, ResultPayload, ResultSuite
from munit_bridge.models.tree import NodeKind, TestNode
from munit_bridge.run import TestRun

log = logging.getLogger(__name__)

ROOT_TAGS = frozenset(["testsuite", "testsuites"])


class ResultDocumentError(Exception):
    """Raised when a result document cannot be parsed."""


def parse_result_document(content: str | bytes) -> ResultSuite:
    """Parse the XML written by the runner script.

    Raises:
        ResultDocumentError: If the document is not well-formed XML or its root
            is not a test suite

    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise ResultDocumentError(f"Malformed result document: {e}") from e

    if root.tag not in ROOT_TAGS:
        raise ResultDocumentError(
            f"Unexpected result document root element: <{root.tag}>"
        )

    return _parse_suite(root)


def _parse_suite(element: ET.Element) -> ResultSuite:
    return ResultSuite(
        name=element.get("name", ""),
        time=_parse_time(element),
        suites=[_parse_suite(child) for child in element.findall("testsuite")],
        cases=[_parse_case(child) for child in element.findall("testcase")],
    )


def _parse_case(element: ET.Element) -> ResultCase:
    return ResultCase(
        name=element.get("name", ""),
        time=_parse_time(element),
        error=_parse_payload(element.find("error")),
        failure=_parse_payload(element.find("failure")),
    )


def _parse_payload(element: ET.Element | None) -> ResultPayload | None:
    if element is None:
        return None
    return ResultPayload(
        kind=element.get("type"),
        message=element.get("message"),
        text=element.text,
    )


def _parse_time(element: ET.Element) -> float | None:
    value = element.get("time")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        log.warning("Ignoring invalid time %r on %s", value, element.get("name"))
        return None


def correlate(
    result: ResultSuite, requested: Sequence[TestNode], run: TestRun
) -> None:
    """Walk the result tree alongside the test tree, recording outcomes.

    Suites match nodes by id, test cases match ``method:<name>``. At the root
    the requested nodes are searched, below a matched suite only that node's
    children are. Results without a matching node are skipped; the children
    of an unmatched suite are searched for among the requested nodes again.
    """
    _correlate_suite(result, None, requested, run)


def _correlate_suite(
    suite: ResultSuite,
    parent: TestNode | None,
    requested: Sequence[TestNode],
    run: TestRun,
) -> None:
    for child_suite in suite.suites:
        matched = _match(child_suite.name, parent, requested)
        _correlate_suite(child_suite, matched, requested, run)

    for case in suite.cases:
        node = _match(NodeKind.METHOD.make_id(case.name), parent, requested)
        if node is None:
            log.debug("No test item for result %s in suite %s", case.name, suite.name)
            continue

        duration = case.time * 1000 if case.time is not None else None
        if case.error is not None:
            run.errored(
                node,
                _message(case.error.kind, case.error.text),
                kind=case.error.kind,
                duration=duration,
            )
        elif case.failure is not None:
            run.failed(
                node, _message(case.failure.message, case.failure.text), duration
            )
        else:
            run.passed(node, duration)


def _match(
    node_id: str, parent: TestNode | None, requested: Sequence[TestNode]
) -> TestNode | None:
    if parent is not None:
        return parent.children.get(node_id)
    return next((node for node in requested if node.id == node_id), None)


def _message(head: str | None, text: str | None) -> str:
    return "\n".join(part for part in (head, text) if part)
