from __future__ import annotations

import ast
import copy
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from testx.core.attributes import SetupOutcome, describe, setup_reference
from testx.logging_config import get_logger

logger = get_logger(__name__)

FunctionNode = Union[ast.FunctionDef, ast.AsyncFunctionDef]

INNER_SUFFIX = "_inner"
RESULT_NAME = "sr"


@dataclass(frozen=True)
class Declaration:
    """Snapshot of a marked test function.

    ``attributes`` are the decorators other than ``@testx``, in source order.
    The node is never modified by the rewriter.
    """

    node: FunctionNode
    attributes: Tuple[ast.expr, ...] = ()

    @property
    def name(self) -> str:
        return self.node.name

    @property
    def is_async(self) -> bool:
        return isinstance(self.node, ast.AsyncFunctionDef)

    @property
    def has_argument(self) -> bool:
        args = self.node.args
        return bool(
            args.posonlyargs
            or args.args
            or args.vararg
            or args.kwonlyargs
            or args.kwarg
        )


@dataclass(frozen=True)
class RewrittenDeclaration:
    inner: FunctionNode
    outer: FunctionNode


def inner_name(name: str, suffix: str = INNER_SUFFIX) -> str:
    """Module-private name of the function holding the test body."""
    private = name if name.startswith("_") else f"_{name}"
    return f"{private}{suffix}"


def invoke_setup(declaration: Declaration, outcome: SetupOutcome) -> bool:
    return declaration.has_argument and setup_reference(outcome) is not None


def to_inner_func(declaration: Declaration, suffix: str = INNER_SUFFIX) -> FunctionNode:
    inner = copy.deepcopy(declaration.node)
    inner.name = inner_name(declaration.name, suffix)
    inner.decorator_list = []
    return inner


def _empty_arguments() -> ast.arguments:
    return ast.arguments(
        posonlyargs=[],
        args=[],
        vararg=None,
        kwonlyargs=[],
        kw_defaults=[],
        kwarg=None,
        defaults=[],
    )


def _outer_body(
    declaration: Declaration,
    outcome: SetupOutcome,
    inner: str,
    result_name: str,
) -> list:
    body: list = []
    call_args: list = []

    if invoke_setup(declaration, outcome):
        setup = setup_reference(outcome)
        body.append(
            ast.Assign(
                targets=[ast.Name(id=result_name, ctx=ast.Store())],
                value=ast.Call(func=setup.to_expr(), args=[], keywords=[]),
            )
        )
        call_args.append(ast.Name(id=result_name, ctx=ast.Load()))

    inner_call: ast.expr = ast.Call(
        func=ast.Name(id=inner, ctx=ast.Load()), args=call_args, keywords=[]
    )
    if declaration.is_async:
        inner_call = ast.Await(value=inner_call)
    body.append(ast.Expr(value=inner_call))
    return body


def to_outer_func(
    declaration: Declaration,
    outcome: SetupOutcome,
    inner: str,
    *,
    marker: Optional[ast.expr] = None,
    result_name: str = RESULT_NAME,
) -> FunctionNode:
    outer = copy.deepcopy(declaration.node)
    outer.args = _empty_arguments()
    outer.returns = None
    outer.type_comment = None
    if hasattr(outer, "type_params"):
        outer.type_params = []
    outer.body = _outer_body(declaration, outcome, inner, result_name)

    decorators: list = [copy.deepcopy(attr) for attr in declaration.attributes]
    if marker is not None:
        decorators.insert(0, marker)
    outer.decorator_list = decorators

    # Synthesized nodes take the position of the original ``def``.
    return ast.fix_missing_locations(outer)


def rewrite_declaration(
    declaration: Declaration,
    outcome: SetupOutcome,
    *,
    marker: Optional[ast.expr] = None,
    suffix: str = INNER_SUFFIX,
    result_name: str = RESULT_NAME,
) -> RewrittenDeclaration:
    """Split a marked test into its inner body and outer entry point.

    Parameters
    ----------
    declaration : Declaration
        The marked function and its remaining decorators
    outcome : SetupOutcome
        Resolved setup configuration for the declaration
    marker : ast.expr | None
        Decorator that marks the outer function as a test entry point
    suffix : str
        Suffix appended to the inner function name
    result_name : str
        Local variable holding the setup result in the outer function

    Returns
    -------
    RewrittenDeclaration
        Inner function first, outer entry point second
    """
    inner = to_inner_func(declaration, suffix)
    outer = to_outer_func(
        declaration,
        outcome,
        inner.name,
        marker=marker,
        result_name=result_name,
    )
    logger.debug(
        f"Rewrote {declaration.name} into {inner.name} "
        f"({describe(outcome)}, setup called: {invoke_setup(declaration, outcome)})"
    )
    return RewrittenDeclaration(inner=inner, outer=outer)


__all__ = [
    "Declaration",
    "RewrittenDeclaration",
    "inner_name",
    "invoke_setup",
    "to_inner_func",
    "to_outer_func",
    "rewrite_declaration",
]
