"""Import-time support for ``@testx`` so marked modules run under plain pytest.

The decorator reads the decorated function's own source, runs the same
resolver and rewriter as the source transform and compiles the resulting
inner and outer functions into the defining module.
"""

from __future__ import annotations

import ast
import inspect
import textwrap
from typing import Any, Callable

from testx.core.errors import (
    MalformedDeclarationError,
    SourceLocation,
    UnsupportedAttributeError,
)
from testx.logging_config import get_logger
from testx.pipeline.service import marker_index, rewrite_node
from testx.settings import get_settings

logger = get_logger(__name__)


class _NoSetupMarker:
    def __repr__(self) -> str:
        return "no_setup"


no_setup = _NoSetupMarker()


def entry_point(func: Callable[..., Any]) -> Callable[..., Any]:
    """Mark ``func`` as a test entry point for the test runner."""
    func.__test__ = True
    return func


def _location(func: Callable[..., Any]) -> SourceLocation:
    code = func.__code__
    return SourceLocation(code.co_filename, code.co_firstlineno, 1)


def _parse_function(func: Callable[..., Any]) -> ast.Module:
    try:
        source = inspect.getsource(func)
    except (OSError, TypeError) as exc:
        raise MalformedDeclarationError(
            f"source of '{func.__qualname__}' is not available", _location(func)
        ) from exc

    tree = ast.parse(textwrap.dedent(source), filename=func.__code__.co_filename)
    ast.increment_lineno(tree, func.__code__.co_firstlineno - 1)
    return tree


def materialize(func: Callable[..., Any], *, bare: bool = False) -> Callable[..., Any]:
    """Replace ``func`` by its outer entry point.

    Decorators written above ``@testx`` are applied by Python to the returned
    function, so only the ones below it are carried over to the outer one.
    Those may already have wrapped ``func``; the checks below run on the
    original function.
    """
    if not inspect.isfunction(func):
        raise MalformedDeclarationError(f"@testx can only mark functions, got {func!r}")
    func = inspect.unwrap(func)
    if func.__code__.co_freevars or func.__qualname__ != func.__name__:
        raise MalformedDeclarationError(
            f"@testx can only mark module-level functions, '{func.__qualname__}' is nested",
            _location(func),
        )

    settings = get_settings().rewrite
    filename = func.__code__.co_filename
    tree = _parse_function(func)
    node = tree.body[0]
    if not isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
        raise MalformedDeclarationError(
            f"'{func.__qualname__}' is not a function declaration", _location(func)
        )

    index = marker_index(node, settings.decorator)
    if index is None and bare:
        # ``@testx(setup_666)``: a function given as an attribute name.
        raise UnsupportedAttributeError(func.__name__, _location(func))
    if index is None:
        raise MalformedDeclarationError(
            f"@{settings.decorator} decorator not found on '{func.__name__}'",
            _location(func),
        )

    rewritten = rewrite_node(
        node,
        index,
        node.decorator_list[index + 1 :],
        settings,
        filename=filename,
    )
    module = ast.Module(body=[rewritten.inner, rewritten.outer], type_ignores=[])
    code = compile(module, filename, "exec")

    namespace = func.__globals__
    exec(code, namespace)
    outer = namespace[node.name]
    logger.debug(f"Materialized {func.__module__}.{node.name} via {rewritten.inner.name}")
    return entry_point(outer)


def testx(*entries: Any, **options: Any) -> Any:
    """Mark a test function, optionally with a setup function.

    ``@testx``, ``@testx()``, ``@testx(no_setup)``, ``@testx(setup="name")``
    and ``@testx(setup=name)`` are accepted. The arguments are read back from
    the source of the decorated function, so what is passed at runtime only
    decides between the bare and the called form.
    """
    if len(entries) == 1 and not options and inspect.isfunction(entries[0]):
        return materialize(entries[0], bare=True)
    return materialize


# Keep pytest from collecting the decorator when it is imported into a test module.
testx.__test__ = False


__all__ = ["entry_point", "materialize", "no_setup", "testx"]
