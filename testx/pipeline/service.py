from __future__ import annotations

import ast
import difflib
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from testx.core.attributes import SetupPath, parse_decorator
from testx.core.errors import (
    MalformedDeclarationError,
    RewriteError,
    SourceLocation,
    TransformError,
)
from testx.core.rewriter import (
    Declaration,
    FunctionNode,
    RewrittenDeclaration,
    rewrite_declaration,
)
from testx.logging_config import get_logger
from testx.settings import RewriteSettings, get_settings

logger = get_logger(__name__)


@dataclass
class TransformResult:
    source: str
    rewritten: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.rewritten)


@dataclass
class FileResult:
    path: Path
    original: str
    source: str
    rewritten: List[str]

    @property
    def changed(self) -> bool:
        return self.source != self.original

    def diff(self) -> str:
        return "".join(
            difflib.unified_diff(
                self.original.splitlines(keepends=True),
                self.source.splitlines(keepends=True),
                fromfile=f"a/{self.path}",
                tofile=f"b/{self.path}",
            )
        )


def is_marker_decorator(decorator: ast.expr, name: str) -> bool:
    """True for ``@name``, ``@name(...)`` and ``@pkg.name(...)``."""
    target = decorator.func if isinstance(decorator, ast.Call) else decorator
    if isinstance(target, ast.Name):
        return target.id == name
    if isinstance(target, ast.Attribute):
        return target.attr == name
    return False


def marker_index(node: FunctionNode, name: str) -> Optional[int]:
    for index, decorator in enumerate(node.decorator_list):
        if is_marker_decorator(decorator, name):
            return index
    return None


def rewrite_node(
    node: FunctionNode,
    index: int,
    attributes: Sequence[ast.expr],
    settings: RewriteSettings,
    *,
    filename: str = "<unknown>",
    marker: Optional[ast.expr] = None,
) -> RewrittenDeclaration:
    """Resolve the marker decorator at ``index`` and rewrite ``node``."""
    outcome = parse_decorator(
        node.decorator_list[index],
        default_setup=settings.default_setup,
        filename=filename,
        strict=settings.strict_entries,
    ).resolve()
    return rewrite_declaration(
        Declaration(node, tuple(attributes)),
        outcome,
        marker=marker,
        suffix=settings.inner_suffix,
        result_name=settings.result_name,
    )


_DEF_TEMPLATE = r"\bdef\s+{name}\b"


def _rename_def(line: str, old: str, new: str) -> Optional[str]:
    pattern = re.compile(_DEF_TEMPLATE.format(name=re.escape(old)))
    renamed, count = pattern.subn(f"def {new}", line, count=1)
    return renamed if count else None


def render_declaration(
    rewritten: RewrittenDeclaration, node: FunctionNode, lines: Sequence[str]
) -> str:
    """Source text for the inner and outer functions.

    The inner function reuses the original text from the ``def`` line on, so
    comments and formatting of the test body are kept.
    """
    inner_lines = list(lines[node.lineno - 1 : node.end_lineno])
    renamed = _rename_def(inner_lines[0], node.name, rewritten.inner.name)
    if renamed is None:
        inner_text = ast.unparse(rewritten.inner)
    else:
        inner_lines[0] = renamed
        inner_text = "".join(inner_lines)
    if not inner_text.endswith("\n"):
        inner_text += "\n"
    return f"{inner_text}\n\n{ast.unparse(rewritten.outer)}\n"


def _has_marker_import(tree: ast.Module, settings: RewriteSettings) -> bool:
    for stmt in tree.body:
        if isinstance(stmt, ast.Import):
            for alias in stmt.names:
                if alias.name == "testx" and (alias.asname or alias.name) == settings.marker_alias:
                    return True
    return False


def _import_position(tree: ast.Module, lines: Sequence[str]) -> int:
    position = 0
    for index, stmt in enumerate(tree.body):
        is_docstring = (
            index == 0
            and isinstance(stmt, ast.Expr)
            and isinstance(stmt.value, ast.Constant)
            and isinstance(stmt.value.value, str)
        )
        is_future = isinstance(stmt, ast.ImportFrom) and stmt.module == "__future__"
        if not (is_docstring or is_future):
            break
        position = stmt.end_lineno
    if position == 0:
        # Keep shebang and encoding lines first.
        while position < len(lines) and lines[position].startswith("#"):
            position += 1
    return position


def transform_source(
    source: str,
    *,
    filename: str = "<string>",
    settings: RewriteSettings | None = None,
) -> TransformResult:
    """Rewrite every ``@testx`` declaration of a module.

    Parameters
    ----------
    source : str
        Module source text
    filename : str
        Name used in error locations
    settings : RewriteSettings | None
        Rewrite options, defaults to the loaded configuration

    Returns
    -------
    TransformResult
        The new source and the names of the rewritten tests

    Raises
    ------
    TransformError
        If any marked declaration could not be rewritten
    MalformedDeclarationError
        If the module does not parse
    """
    settings = settings or get_settings().rewrite
    try:
        tree = ast.parse(source, filename=filename)
    except SyntaxError as exc:
        raise MalformedDeclarationError(
            f"cannot parse module: {exc.msg}",
            SourceLocation(filename, exc.lineno or 0, exc.offset or 0),
        ) from exc

    lines = source.splitlines(keepends=True)
    top_level = {id(stmt) for stmt in tree.body}
    replacements: List[Tuple[int, int, str]] = []
    errors: List[RewriteError] = []
    rewritten_names: List[str] = []

    for node in ast.walk(tree):
        if not isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            continue
        index = marker_index(node, settings.decorator)
        if index is None:
            continue
        try:
            if id(node) not in top_level:
                raise MalformedDeclarationError(
                    f"@{settings.decorator} can only mark module-level functions, "
                    f"'{node.name}' is nested",
                    SourceLocation.of(node, filename),
                )
            attributes = node.decorator_list[:index] + node.decorator_list[index + 1 :]
            rewritten = rewrite_node(
                node,
                index,
                attributes,
                settings,
                filename=filename,
                marker=SetupPath.parse(settings.entry_marker).to_expr(),
            )
        except RewriteError as exc:
            logger.debug(f"Cannot rewrite {node.name}: {exc}")
            errors.append(exc)
            continue

        start = node.decorator_list[0].lineno - 1
        replacements.append((start, node.end_lineno, render_declaration(rewritten, node, lines)))
        rewritten_names.append(node.name)

    if errors:
        errors.sort(key=lambda error: error.location.line if error.location else 0)
        raise TransformError(errors)

    for start, end, text in sorted(replacements, reverse=True):
        lines[start:end] = [text]

    if replacements and not _has_marker_import(tree, settings):
        lines.insert(_import_position(tree, lines), f"{settings.marker_import}\n")

    return TransformResult(source="".join(lines), rewritten=rewritten_names)


def transform_file(
    path: Path,
    *,
    write: bool = False,
    settings: RewriteSettings | None = None,
) -> FileResult:
    logger.debug(f"Transforming {path}")
    original = path.read_text(encoding="utf-8")
    result = transform_source(original, filename=str(path), settings=settings)
    file_result = FileResult(
        path=path, original=original, source=result.source, rewritten=result.rewritten
    )

    if write and file_result.changed:
        path.write_text(file_result.source, encoding="utf-8")
        logger.info(f"Rewrote {result.count} test(s) in {path}")
    return file_result


def python_files(paths: Iterable[Path]) -> Iterator[Path]:
    for path in paths:
        if path.is_dir():
            yield from sorted(path.rglob("*.py"))
        elif path.exists():
            yield path
        else:
            raise FileNotFoundError(f"No such file or directory: {path}")


def transform_paths(
    paths: Iterable[Path],
    *,
    write: bool = False,
    settings: RewriteSettings | None = None,
) -> List[FileResult]:
    results = [
        transform_file(path, write=write, settings=settings)
        for path in python_files(paths)
    ]
    changed = sum(1 for result in results if result.changed)
    logger.info(f"Processed {len(results)} file(s), {changed} with testx declarations")
    return results


__all__ = [
    "TransformResult",
    "FileResult",
    "is_marker_decorator",
    "marker_index",
    "rewrite_node",
    "render_declaration",
    "transform_source",
    "transform_file",
    "python_files",
    "transform_paths",
]
