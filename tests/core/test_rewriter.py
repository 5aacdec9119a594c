from __future__ import annotations

import ast

import pytest

from testx.core.attributes import NoSetup, SetupPath, UseDefault, UsePath
from testx.core.rewriter import (
    Declaration,
    inner_name,
    invoke_setup,
    rewrite_declaration,
)

DEFAULT = UseDefault(SetupPath(("setup",)))


def _declaration(source: str) -> Declaration:
    node = ast.parse(source).body[0]
    return Declaration(node, tuple(node.decorator_list))


def _marker() -> ast.expr:
    return SetupPath.parse("_testx.entry_point").to_expr()


def test_inner_name_is_private():
    assert inner_name("sample") == "_sample_inner"
    assert inner_name("_helper") == "_helper_inner"
    assert inner_name("sample", "_body") == "_sample_body"


def test_one_argument_with_default_setup():
    declaration = _declaration("def sample(num: int):\n    assert num == 4711\n")

    rewritten = rewrite_declaration(declaration, DEFAULT, marker=_marker())

    assert ast.unparse(rewritten.inner) == (
        "def _sample_inner(num: int):\n    assert num == 4711"
    )
    assert ast.unparse(rewritten.outer) == (
        "@_testx.entry_point\n"
        "def sample():\n"
        "    sr = setup()\n"
        "    _sample_inner(sr)"
    )


def test_custom_setup_path():
    declaration = _declaration("def sample(num):\n    pass\n")

    rewritten = rewrite_declaration(declaration, UsePath(SetupPath.parse("helpers.setup_666")))

    assert ast.unparse(rewritten.outer).splitlines()[1:] == [
        "    sr = helpers.setup_666()",
        "    _sample_inner(sr)",
    ]


def test_no_argument_never_calls_setup():
    declaration = _declaration("def sample():\n    pass\n")

    for outcome in (DEFAULT, UsePath(SetupPath.parse("x")), NoSetup()):
        rewritten = rewrite_declaration(declaration, outcome)
        assert ast.unparse(rewritten.outer) == "def sample():\n    _sample_inner()"
        assert not invoke_setup(declaration, outcome)


def test_no_setup_with_argument_calls_inner_without_arguments():
    declaration = _declaration("def sample(num):\n    pass\n")

    rewritten = rewrite_declaration(declaration, NoSetup())

    assert ast.unparse(rewritten.outer) == "def sample():\n    _sample_inner()"
    assert ast.unparse(rewritten.inner).startswith("def _sample_inner(num):")


@pytest.mark.parametrize(
    "signature",
    ["*args", "**kwargs", "*, value", "value, /"],
)
def test_any_parameter_kind_counts_as_argument(signature):
    declaration = _declaration(f"def sample({signature}):\n    pass\n")

    assert declaration.has_argument
    assert invoke_setup(declaration, DEFAULT)


def test_auxiliary_decorators_move_to_outer_in_order():
    source = (
        "@pytest.mark.xfail(reason='flaky')\n"
        "@pytest.mark.slow\n"
        "def sample(num):\n"
        "    pass\n"
    )
    declaration = _declaration(source)

    rewritten = rewrite_declaration(declaration, DEFAULT, marker=_marker())

    assert rewritten.inner.decorator_list == []
    assert [ast.unparse(d) for d in rewritten.outer.decorator_list] == [
        "_testx.entry_point",
        "pytest.mark.xfail(reason='flaky')",
        "pytest.mark.slow",
    ]


def test_outer_drops_signature_details():
    declaration = _declaration("def sample(num: int = 3) -> None:\n    pass\n")

    outer = rewrite_declaration(declaration, DEFAULT).outer

    assert outer.returns is None
    assert ast.unparse(outer.args) == ""


def test_async_outer_awaits_inner():
    declaration = _declaration("async def sample(num):\n    pass\n")

    rewritten = rewrite_declaration(declaration, DEFAULT)

    assert isinstance(rewritten.outer, ast.AsyncFunctionDef)
    assert ast.unparse(rewritten.outer) == (
        "async def sample():\n    sr = setup()\n    await _sample_inner(sr)"
    )


def test_original_node_is_untouched():
    declaration = _declaration("@slow\ndef sample(num):\n    pass\n")
    before = ast.dump(declaration.node)

    rewrite_declaration(declaration, DEFAULT, marker=_marker())

    assert ast.dump(declaration.node) == before


def test_custom_suffix_and_result_name():
    declaration = _declaration("def sample(num):\n    pass\n")

    rewritten = rewrite_declaration(declaration, DEFAULT, suffix="_body", result_name="data")

    assert ast.unparse(rewritten.outer) == (
        "def sample():\n    data = setup()\n    _sample_body(data)"
    )


def test_outer_compiles():
    declaration = _declaration("@slow\ndef sample(num):\n    pass\n")

    rewritten = rewrite_declaration(declaration, DEFAULT, marker=_marker())
    module = ast.Module(body=[rewritten.inner, rewritten.outer], type_ignores=[])

    compile(module, "<test>", "exec")
