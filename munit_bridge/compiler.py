"""Compile a selection of test nodes into a Magik MUnit runner script."""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from os import PathLike

from munit_bridge.models.tree import NodeKind, TestNode
from munit_bridge.resolver import modules_to_load, products_to_require

log = logging.getLogger(__name__)

RUNNER_SUITE_NAME = "munit_bridge_test_runner"
TEMP_FILE_NAME = "munit_bridge_test_run.xml"
INDENT = "\t"


class CompileError(Exception):
    """Raised when a selection cannot be rendered into a runner script."""


@dataclass(frozen=True, kw_only=True)
class ScriptCompiler:
    """Renders the runner script executed by the Magik session.

    The script requires the products of the selected tests, loads their
    modules when not loaded yet, rebuilds the selection as nested
    ``sw:test_suite`` objects, runs it with the ``sw:xml_test_runner`` and
    publishes the XML report at the output path by renaming a completed temp
    file. Whatever happens, the protection block leaves a placeholder report
    behind so the caller's wait for the output file always ends.

    Ids and paths are interpolated as-is; characters meaningful to Magik are
    not escaped.
    """

    runner_suite_name: str = RUNNER_SUITE_NAME
    temp_file_name: str = TEMP_FILE_NAME

    def compile(
        self, nodes: Sequence[TestNode], output_path: str | PathLike[str]
    ) -> str:
        """Render the runner script for the given nodes.

        Args:
            nodes: Selected nodes, or the roots of the full forest
            output_path: Path the XML report is published at

        Returns:
            Magik source, terminated by ``$``

        Raises:
            CompileError: If there is nothing to run or a method has no
                test case to instantiate it from

        """
        if not nodes:
            raise CompileError("No tests to compile")

        products = _symbols(products_to_require(nodes))
        modules = _symbols(modules_to_load(nodes))
        suites = "\n".join(
            line for node in nodes for line in self._render_node(node, "top_suite", 2)
        )
        log.debug(
            "Compiling runner script: %d node(s), products=%s, modules=%s",
            len(nodes),
            products,
            modules,
        )

        return f"""_protect
	# Require products to be added.
	_block
		_for product _over {{{products}}}.fast_elements()
		_loop
			_if sw:smallworld_product.product(product) _is _unset
			_then
				sw:condition.raise(:error, :string, sw:write_string('Product could not be found: ', product))
			_endif
		_endloop
	_endblock

	# Load modules if needed.
	_block
		_for module _over {{{modules}}}.fast_elements()
		_loop
			_if _not sw:sw_module_manager.module(module).loaded?
			_then
				sw:sw_module_manager.load_module(module)
			_endif
		_endloop
	_endblock

	# Load munit_xml for xml_test_runner.
	sw:sw_module_manager.load_module(:munit_xml)

	_dynamic sw:!global_auto_declare?! << _false

	# Create test_suite and run it.
	_block
		_local top_suite << sw:get_global_value(:|sw:test_suite|).new(_unset, :{self.runner_suite_name})

		# Add all test_cases.
{suites}

		# Run tests.
		_local tmp_file << sw:system.temp_file_name('{self.temp_file_name}')
		_local output << sw:external_text_output_stream.new(tmp_file, :utf8)
		_protect
			_local runner << sw:get_global_value(:|sw:xml_test_runner|).new(output)
			runner.run_in_foreground(top_suite)
		_protection
			output.close()
		_endprotect

		_local output_path << "{output_path}"
		sw:system.rename(tmp_file, output_path)
	_endblock
_protection
	_local output_path << "{output_path}"
	_if _not sw:system.file_exists?(output_path)
	_then
		# Place a placeholder report.
		_local tmp_file << sw:system.temp_file_name('{self.temp_file_name}')
		_local os << sw:external_text_output_stream.new(tmp_file)
		os.write('<testsuite name="{self.runner_suite_name}" />')
		os.close()
		sw:system.rename(tmp_file, output_path)
	_endif
_endprotect
$
"""

    def _render_node(self, node: TestNode, parent_var: str, depth: int) -> list[str]:
        indent = INDENT * depth
        if node.is_container:
            suite_var = f"{node.kind.value}_suite_{depth}"
            lines = [
                f"{indent}_block",
                f"{indent}{INDENT}_local {suite_var} << "
                f'sw:get_global_value(:|sw:test_suite|).new(_unset, "{node.id}")',
                f"{indent}{INDENT}{parent_var}.add_test({suite_var})",
            ]
            for child in node.children.values():
                lines.extend(self._render_node(child, suite_var, depth + 1))
            lines.append(f"{indent}_endblock")
            return lines

        test_case = node.parent
        if test_case is None or test_case.kind is not NodeKind.TEST_CASE:
            raise CompileError(f"Test method {node.id!r} is not part of a test case")

        return [
            f"{indent}{parent_var}.add_test("
            f"sw:get_global_value(:|{test_case.name}|).new(:|{node.name}|))"
        ]


def _symbols(nodes: Iterable[TestNode]) -> str:
    names = dict.fromkeys(node.name for node in nodes)
    return ",".join(f":{name}" for name in names)
