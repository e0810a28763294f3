"""CLI entry point for running MUnit tests in a Magik session."""

import argparse
import asyncio
import json
import logging
import sys
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from munit_bridge.catalogue.loading import open_catalogue_source
from munit_bridge.catalogue.service import CatalogueService
from munit_bridge.compiler import CompileError, ScriptCompiler
from munit_bridge.config import BridgeConfig, SessionSettings
from munit_bridge.config_loader import CONFIG_FILE_NAME, load_bridge_config
from munit_bridge.coordinator import RunCoordinator
from munit_bridge.models.tree import TestTree
from munit_bridge.run import TestRun
from munit_bridge.selection import UnknownTestItemError, select_nodes
from munit_bridge.sessions.loading import SessionNotFoundError, load_session_manifest

STATUS_SYMBOLS = {
    "passed": "✓",
    "failed": "✗",
    "errored": "!",
}

EXIT_OK = 0
EXIT_TEST_FAILURES = 1
EXIT_USAGE_ERROR = 2

DEFAULT_OUTPUT_PATH = Path(tempfile.gettempdir()) / "munit_bridge_test_run.xml"


def log_results_summary(log: logging.Logger, run: TestRun) -> None:
    """Log a formatted summary of the outcomes of a run."""
    log.info("=" * 80)
    log.info("Test Results Summary:")
    log.info("=" * 80)

    for node, outcome in run.outcomes.items():
        symbol = STATUS_SYMBOLS.get(outcome.status, "?")
        if outcome.duration is not None:
            log.info(
                "%s %s: %s (%.0fms)",
                symbol,
                node.path,
                outcome.status,
                outcome.duration,
            )
        else:
            log.info("%s %s: %s", symbol, node.path, outcome.status)
        if outcome.message:
            log.info("  Message: %s", outcome.message)


def format_output(run: TestRun) -> dict[str, Any]:
    """Format run outcomes for JSON output."""
    results = [
        {
            "id": node.path,
            "label": node.label,
            "status": outcome.status,
            "duration": outcome.duration,
            "message": outcome.message,
            "kind": outcome.kind,
        }
        for node, outcome in run.outcomes.items()
    ]
    summary = run.summary()
    return {
        "total": summary["total"],
        "passed": summary["passed"],
        "failed": summary["failed"],
        "errored": summary["errored"],
        "results": results,
    }


def format_tree(tree: TestTree) -> list[dict[str, Any]]:
    """Flatten the tree for JSON output."""
    return [
        {
            "id": node.path,
            "label": node.label,
            "kind": node.kind.value,
            "uri": node.location.uri if node.location else None,
        }
        for node in tree.walk()
    ]


async def load_config(
    config_path: Path | None,
    session_key: str | None = None,
    session_config_json: str | None = None,
) -> BridgeConfig:
    """Load the config file and apply command line overrides.

    Without an explicit path, munit-bridge.yaml is used when present and the
    defaults otherwise.
    """
    if config_path is not None:
        config = await load_bridge_config(config_path)
    elif Path(CONFIG_FILE_NAME).is_file():
        config = await load_bridge_config(Path(CONFIG_FILE_NAME))
    else:
        config = BridgeConfig()

    if session_key is not None or session_config_json is not None:
        options = (
            json.loads(session_config_json)
            if session_config_json is not None
            else (config.session.options if config.session else {})
        )
        provider = session_key or (
            config.session.provider if config.session else None
        )
        if not provider:
            raise ValueError("--session-config given without a session key")
        session = SessionSettings(provider=provider, options=options)
        config = config.model_copy(update={"session": session})
    return config


async def load_tree(config: BridgeConfig) -> TestTree | None:
    """Fetch the catalogue once, returning None when it cannot be loaded."""
    async with open_catalogue_source(config.catalogue) as source:
        service = CatalogueService(source=source)
        if not await service.refresh():
            return None
        return service.tree


async def list_tests(config: BridgeConfig) -> int:
    """Print the test catalogue and return exit code."""
    log = logging.getLogger("munit_bridge")

    tree = await load_tree(config)
    if tree is None:
        log.error("Test catalogue could not be loaded")
        return EXIT_USAGE_ERROR

    print(json.dumps({"items": format_tree(tree)}, indent=2))
    return EXIT_OK


async def watch_tests(config: BridgeConfig) -> int:
    """Print the test catalogue on start and after every source change."""

    def print_tree(tree: TestTree) -> None:
        print(json.dumps({"items": format_tree(tree)}), flush=True)

    async with open_catalogue_source(config.catalogue) as source:
        service = CatalogueService(source=source, on_refresh=print_tree)
        await service.watch(config.watch_paths)
    return EXIT_OK


async def compile_tests(
    config: BridgeConfig, selected: Sequence[str], output_path: Path
) -> int:
    """Print the runner script for the selection and return exit code."""
    log = logging.getLogger("munit_bridge")

    tree = await load_tree(config)
    if tree is None:
        log.error("Test catalogue could not be loaded")
        return EXIT_USAGE_ERROR

    try:
        nodes = select_nodes(tree, selected) or tree.roots()
        script = ScriptCompiler().compile(nodes, output_path)
    except (UnknownTestItemError, CompileError) as e:
        log.error("%s", e)
        return EXIT_USAGE_ERROR

    print(script)
    return EXIT_OK


async def run(config: BridgeConfig, selected: Sequence[str]) -> int:
    """Run the selected tests in the session and return exit code."""
    log = logging.getLogger("munit_bridge")

    tree = await load_tree(config)
    if tree is None:
        log.error("Test catalogue could not be loaded")
        return EXIT_USAGE_ERROR

    try:
        selection = select_nodes(tree, selected)
    except UnknownTestItemError as e:
        log.error("%s", e)
        return EXIT_USAGE_ERROR

    if config.session is None:
        log.error("No session configured, use --session or the session setting")
        return EXIT_USAGE_ERROR

    log.info("Loading session: %s", config.session.provider)
    try:
        manifest = load_session_manifest(config.session.provider)
        session_config = manifest.config_cls(**config.session.options)
    except (SessionNotFoundError, ValueError) as e:
        log.error("%s", e)
        return EXIT_USAGE_ERROR

    async with (
        manifest.session_factory(session_config) as session,
        RunCoordinator(
            session=session,
            poll_interval=config.poll_interval,
            timeout=config.timeout,
            workdir_parent=config.workdir,
        ) as coordinator,
    ):
        test_run = await coordinator.run(selection, tree)

    log_results_summary(log, test_run)
    print(json.dumps(format_output(test_run), indent=2))

    summary = test_run.summary()
    has_failures = summary["failed"] > 0 or summary["errored"] > 0
    return EXIT_TEST_FAILURES if has_failures else EXIT_OK


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Run MUnit tests in a Smallworld Magik session"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to the configuration file (default: {CONFIG_FILE_NAME})",
    )
    parser.add_argument(
        "--session",
        help="Session key overriding the configuration (fifo, remote)",
    )
    parser.add_argument(
        "--session-config",
        help="JSON configuration for the session, overriding the configuration",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output, including the raw XML test results",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("list", help="List the test catalogue")
    subparsers.add_parser(
        "watch", help="List the test catalogue again whenever Magik sources change"
    )

    compile_parser = subparsers.add_parser(
        "compile", help="Print the runner script for a selection"
    )
    compile_parser.add_argument(
        "--select",
        action="append",
        default=[],
        help="Test item id path to include, e.g. product:p/module:m (repeatable)",
    )
    compile_parser.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_OUTPUT_PATH,
        help="Result file path written by the script",
    )

    run_parser = subparsers.add_parser("run", help="Run tests in the session")
    run_parser.add_argument(
        "--select",
        action="append",
        default=[],
        help="Test item id path to include, e.g. product:p/module:m (repeatable)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    sys.exit(asyncio.run(dispatch_command(args)))


async def dispatch_command(args: argparse.Namespace) -> int:
    """Load configuration and run the chosen command."""
    log = logging.getLogger("munit_bridge")
    try:
        config = await load_config(args.config, args.session, args.session_config)
    except (FileNotFoundError, ValueError) as e:
        log.error("%s", e)
        return EXIT_USAGE_ERROR

    if args.command == "list":
        return await list_tests(config)
    if args.command == "watch":
        return await watch_tests(config)
    if args.command == "compile":
        return await compile_tests(config, args.select, args.output)
    return await run(config, args.select)


if __name__ == "__main__":  # pragma: no cover
    main()
