"""Tests for script compiler."""

import re
from pathlib import Path

import pytest

from munit_bridge.catalogue.importer import import_catalogue
from munit_bridge.compiler import CompileError, ScriptCompiler
from munit_bridge.models.tree import TestNode, TestTree
from munit_bridge.testing.catalogue import item, sample_catalogue

FOO_TEST = "product:app/module:app_tests/test_case:user:foo_test"
OUTPUT_PATH = Path("/tmp/munit-bridge-run/test_run0.xml")


@pytest.fixture
def tree() -> TestTree:
    """Import the sample catalogue."""
    return import_catalogue(sample_catalogue())


@pytest.fixture
def compiler() -> ScriptCompiler:
    """Create compiler with default names."""
    return ScriptCompiler()


def find(tree: TestTree, path: str) -> TestNode:
    node = tree.find(path)
    assert node is not None
    return node


def test_requires_products_of_selection(
    tree: TestTree, compiler: ScriptCompiler
) -> None:
    """Verifies the products containing the selected tests."""
    script = compiler.compile([find(tree, f"{FOO_TEST}/method:test_a")], OUTPUT_PATH)

    assert "_for product _over {:app}.fast_elements()" in script
    assert "sw:smallworld_product.product(product) _is _unset" in script


def test_loads_modules_only_when_not_loaded(
    tree: TestTree, compiler: ScriptCompiler
) -> None:
    """Running everything twice renders the same guarded module load."""
    first = compiler.compile(tree.roots(), OUTPUT_PATH)
    second = compiler.compile(tree.roots(), OUTPUT_PATH)

    assert first == second
    assert (
        "_for module _over {:app_tests,:app_extra_tests,:core_tests}.fast_elements()"
        in first
    )
    assert "_if _not sw:sw_module_manager.module(module).loaded?" in first
    assert first.count("sw:sw_module_manager.load_module(module)") == 1


def test_adds_method_to_top_suite(tree: TestTree, compiler: ScriptCompiler) -> None:
    """A selected method is instantiated from its test case exemplar."""
    script = compiler.compile([find(tree, f"{FOO_TEST}/method:test_b")], OUTPUT_PATH)

    assert (
        "\t\ttop_suite.add_test(sw:get_global_value(:|user:foo_test|).new(:|test_b|))"
        in script
    )
    assert "test_case_suite" not in script


def test_nests_container_suites(tree: TestTree, compiler: ScriptCompiler) -> None:
    """Containers become suites named after their id, added to their parent."""
    script = compiler.compile([find(tree, "product:app/module:app_tests")], OUTPUT_PATH)
    lines = script.splitlines()
    new_suite = "sw:get_global_value(:|sw:test_suite|).new"

    start = lines.index("\t\t_block")
    expected = [
        "\t\t_block",
        f'\t\t\t_local module_suite_2 << {new_suite}(_unset, "module:app_tests")',
        "\t\t\ttop_suite.add_test(module_suite_2)",
        "\t\t\t_block",
        "\t\t\t\t_local test_case_suite_3 << "
        f'{new_suite}(_unset, "test_case:user:foo_test")',
        "\t\t\t\tmodule_suite_2.add_test(test_case_suite_3)",
        "\t\t\t\ttest_case_suite_3.add_test("
        "sw:get_global_value(:|user:foo_test|).new(:|test_a|))",
        "\t\t\t\ttest_case_suite_3.add_test("
        "sw:get_global_value(:|user:foo_test|).new(:|test_b|))",
        "\t\t\t_endblock",
        "\t\t\t_block",
        "\t\t\t\t_local module_suite_3 << "
        f'{new_suite}(_unset, "module:app_extra_tests")',
        "\t\t\t\tmodule_suite_2.add_test(module_suite_3)",
        "\t\t\t\t_block",
        "\t\t\t\t\t_local test_case_suite_4 << "
        f'{new_suite}(_unset, "test_case:user:extra_test")',
        "\t\t\t\t\tmodule_suite_3.add_test(test_case_suite_4)",
        "\t\t\t\t\ttest_case_suite_4.add_test("
        "sw:get_global_value(:|user:extra_test|).new(:|test_a|))",
        "\t\t\t\t_endblock",
        "\t\t\t_endblock",
        "\t\t_endblock",
    ]
    assert lines[start : start + len(expected)] == expected


def test_nested_suite_is_never_added_to_itself(
    tree: TestTree, compiler: ScriptCompiler
) -> None:
    """Every suite variable is added to a different, enclosing variable."""
    script = compiler.compile(tree.roots(), OUTPUT_PATH)

    additions = re.findall(r"(\w+)\.add_test\((\w+_suite_\d+)\)", script)
    assert additions
    assert all(parent != child for parent, child in additions)
    assert ("module_suite_3", "module_suite_4") in additions


def test_publishes_report_at_output_path(
    tree: TestTree, compiler: ScriptCompiler
) -> None:
    """Renames the completed report and leaves a placeholder otherwise."""
    script = compiler.compile(tree.roots(), OUTPUT_PATH)

    assert script.count(f'_local output_path << "{OUTPUT_PATH}"') == 2
    assert "sw:system.rename(tmp_file, output_path)" in script
    assert '<testsuite name="munit_bridge_test_runner" />' in script
    assert script.startswith("_protect\n")
    assert script.endswith("_endprotect\n$\n")


def test_uses_configured_names(tree: TestTree) -> None:
    """Runner suite and temp file names can be changed."""
    compiler = ScriptCompiler(runner_suite_name="my_runner", temp_file_name="r.xml")

    script = compiler.compile(tree.roots(), OUTPUT_PATH)

    assert ".new(_unset, :my_runner)" in script
    assert "sw:system.temp_file_name('r.xml')" in script


def test_raises_for_empty_selection(compiler: ScriptCompiler) -> None:
    """Raises CompileError when there is nothing to run."""
    with pytest.raises(CompileError, match="No tests to compile"):
        compiler.compile([], OUTPUT_PATH)


def test_raises_for_method_outside_test_case(compiler: ScriptCompiler) -> None:
    """Raises CompileError when a method has no test case parent."""
    tree = import_catalogue([item("module:loose", item("method:test_x"))])

    with pytest.raises(CompileError, match="method:test_x"):
        compiler.compile(tree.roots(), OUTPUT_PATH)
